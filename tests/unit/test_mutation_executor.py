"""
Tests unitarios para MutationExecutor.

Verifica reintentos (rate limit / transporte), fallos permanentes y
publicacion no fatal.
"""
from __future__ import annotations

import pytest

from cms_sync.application.services.mutation_executor import MutationExecutor, RetryPolicy
from cms_sync.domain.entities.plan import Mutation, MutationKind
from cms_sync.domain.entities.records import MappedFields, MirrorRecord
from cms_sync.shared.exceptions.sync import MutationError, MutationErrorKind
from tests.factories import FakeWebflow, mirror, source


def _rate_limited(retry_after: float | None = None) -> MutationError:
    return MutationError(MutationErrorKind.RATE_LIMITED, "Webflow 429", status_code=429, retry_after_s=retry_after)


def _rejected(status: int = 400) -> MutationError:
    return MutationError(MutationErrorKind.REJECTED, f"Webflow {status}", status_code=status)


def _transport() -> MutationError:
    return MutationError(MutationErrorKind.TRANSPORT, "connection reset")


def _create() -> Mutation:
    return Mutation(
        kind=MutationKind.CREATE,
        source=source("rec1", Name="Warsaw Loft"),
        fields=MappedFields({"name": "Warsaw Loft", "slug": "warsaw-loft"}),
    )


def _update() -> Mutation:
    return Mutation(
        kind=MutationKind.UPDATE,
        source=source("rec1", Name="Loft", City="Krakow"),
        mirror=mirror("wf1", "loft", name="Loft", city="Warsaw"),
        target_fields={"name": "Loft", "city": "Krakow"},
        changed_fields={"city": "Krakow"},
    )


def _delete(item_id: str = "wf1") -> Mutation:
    return Mutation(kind=MutationKind.DELETE, mirror=mirror(item_id, "old-listing"))


class TestExecute:
    """Tests para MutationExecutor.execute()."""

    def test_create_sends_slug_and_flags_and_returns_id(self, no_sleep) -> None:
        webflow = FakeWebflow()
        executor = MutationExecutor(webflow, sleep=no_sleep)

        result = executor.execute(_create())

        assert result.success is True
        assert result.mirror_id == "wf1"
        assert result.attempts == 1
        item = webflow.items["wf1"]
        assert item["fieldData"] == {"name": "Warsaw Loft", "slug": "warsaw-loft"}
        assert item["isArchived"] is False
        assert item["isDraft"] is False

    def test_update_sends_target_fields_only(self, no_sleep) -> None:
        webflow = FakeWebflow()
        webflow.add_item("wf1", name="Loft", slug="loft", city="Warsaw")
        executor = MutationExecutor(webflow, sleep=no_sleep)

        result = executor.execute(_update())

        assert result.success is True
        assert webflow.calls == [("update", ("wf1", {"name": "Loft", "city": "Krakow"}))]

    def test_rate_limit_then_success_counts_as_success(self, no_sleep) -> None:
        webflow = FakeWebflow()
        webflow.failures["create"] = [_rate_limited()]
        executor = MutationExecutor(webflow, policy=RetryPolicy(min_backoff_s=1.0), sleep=no_sleep)

        result = executor.execute(_create())

        assert result.success is True
        assert result.error is None
        assert result.attempts == 2
        assert len(result.retries) == 1
        assert result.retries[0].kind == "rate_limited"
        assert no_sleep.waits == pytest.approx([1.15])

    def test_retry_after_is_honored(self, no_sleep) -> None:
        webflow = FakeWebflow()
        webflow.failures["delete"] = [_rate_limited(retry_after=7.0)]
        executor = MutationExecutor(webflow, sleep=no_sleep)

        result = executor.execute(_delete())

        assert result.success is True
        assert no_sleep.waits == [7.0]

    def test_backoff_grows_exponentially_until_max_attempts(self, no_sleep) -> None:
        webflow = FakeWebflow()
        webflow.failures["create"] = [_transport() for _ in range(5)]
        policy = RetryPolicy(max_attempts=3, min_backoff_s=1.0, max_backoff_s=10.0)
        executor = MutationExecutor(webflow, policy=policy, sleep=no_sleep)

        result = executor.execute(_create())

        assert result.success is False
        assert result.attempts == 3
        assert result.error.kind is MutationErrorKind.TRANSPORT
        assert no_sleep.waits == pytest.approx([1.15, 2.3])
        assert not webflow.items

    def test_rejected_is_not_retried(self, no_sleep) -> None:
        webflow = FakeWebflow()
        webflow.failures["create"] = [_rejected(400)]
        executor = MutationExecutor(webflow, sleep=no_sleep)

        result = executor.execute(_create())

        assert result.success is False
        assert result.attempts == 1
        assert result.error.kind is MutationErrorKind.REJECTED
        assert result.error.retryable is False
        assert no_sleep.waits == []

    def test_delete_of_missing_item_is_success(self, no_sleep) -> None:
        webflow = FakeWebflow()
        webflow.failures["delete"] = [_rejected(404)]
        executor = MutationExecutor(webflow, sleep=no_sleep)

        result = executor.execute(_delete())

        assert result.success is True
        assert result.attempts == 1

    def test_delete_of_published_item_unpublishes_first(self, no_sleep) -> None:
        webflow = FakeWebflow()
        executor = MutationExecutor(webflow, sleep=no_sleep)

        result = executor.execute(_delete())

        assert result.success is True
        assert webflow.calls == [("unpublish", "wf1"), ("delete", "wf1")]

    def test_delete_of_unpublished_item_skips_unpublish(self, no_sleep) -> None:
        webflow = FakeWebflow()
        executor = MutationExecutor(webflow, sleep=no_sleep)
        item = MirrorRecord(item_id="wf2", slug="draft", fields={}, published=False)

        executor.execute(Mutation(kind=MutationKind.DELETE, mirror=item))

        assert webflow.calls == [("delete", "wf2")]

    def test_unpublish_of_item_missing_from_live_still_deletes(self, no_sleep) -> None:
        webflow = FakeWebflow()
        webflow.failures["unpublish"] = [_rejected(404)]
        executor = MutationExecutor(webflow, sleep=no_sleep)

        result = executor.execute(_delete())

        assert result.success is True
        assert ("delete", "wf1") in webflow.calls

    def test_create_without_returned_id_is_rejected(self, no_sleep) -> None:
        class _NoIdWebflow(FakeWebflow):
            def create_item(self, field_data, *, is_archived=False, is_draft=False):
                return {}

        executor = MutationExecutor(_NoIdWebflow(), sleep=no_sleep)

        result = executor.execute(_create())

        assert result.success is False
        assert result.error.kind is MutationErrorKind.REJECTED


class TestPublish:
    """Tests para MutationExecutor.publish()."""

    def test_publish_batches_and_deduplicates(self, no_sleep) -> None:
        webflow = FakeWebflow()
        executor = MutationExecutor(webflow, sleep=no_sleep)
        ids = [f"wf{i}" for i in range(150)] + ["wf0"]

        result = executor.publish(ids)

        batches = [c[1] for c in webflow.calls if c[0] == "publish"]
        assert [len(b) for b in batches] == [100, 50]
        assert len(result.published) == 150
        assert result.failed == []

    def test_publish_failure_is_reported_not_raised(self, no_sleep) -> None:
        webflow = FakeWebflow()
        webflow.failures["publish"] = [_rejected(400)]
        executor = MutationExecutor(webflow, sleep=no_sleep)

        result = executor.publish(["wf1", "wf2"])

        assert result.published == []
        assert result.failed == ["wf1", "wf2"]
        assert "Publicacion" in result.errors[0]
