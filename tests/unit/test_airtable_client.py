from __future__ import annotations

from typing import Any

import pytest
import requests

from cms_sync.infrastructure.external.airtable_sync.airtable_client import (
    AirtableApiError,
    AirtableClient,
)
from cms_sync.infrastructure.external.airtable_sync.source_reader import AirtableSourceReader
from cms_sync.infrastructure.external.airtable_sync.types import AirtableCredentials
from cms_sync.shared.exceptions.sync import FetchError


class _DummyResponse:
    def __init__(self, status_code: int, payload: Any = None, headers: dict | None = None) -> None:
        self.status_code = status_code
        self._payload = payload or {}
        self.headers = headers or {}
        self.text = str(payload)

    def json(self) -> Any:
        return self._payload


class _DummySession:
    """Devuelve respuestas en orden y registra cada request."""

    def __init__(self, responses: list[Any]) -> None:
        self._responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    def request(self, **kwargs: Any) -> _DummyResponse:
        self.requests.append(kwargs)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(session: _DummySession, sleeps: list[float] | None = None, **kwargs: Any) -> AirtableClient:
    waits = sleeps if sleeps is not None else []
    return AirtableClient(
        AirtableCredentials(token="pat_test", base_id="appBase"),
        session=session,
        sleep=waits.append,
        **kwargs,
    )


def test_iter_records_follows_offset_and_repeats_fields() -> None:
    session = _DummySession([
        _DummyResponse(200, {"records": [{"id": "rec1", "fields": {"Name": "A"}}], "offset": "itr1"}),
        _DummyResponse(200, {"records": [{"id": "rec2", "fields": {"Name": "B"}}]}),
    ])

    records = list(_client(session).iter_records(table_name="Listings", fields=["Name", "City"]))

    assert [r.record_id for r in records] == ["rec1", "rec2"]
    first, second = session.requests
    assert first["url"] == "https://api.airtable.com/v0/appBase/Listings"
    assert first["headers"]["Authorization"] == "Bearer pat_test"
    assert ("fields[]", "Name") in first["params"] and ("fields[]", "City") in first["params"]
    assert ("offset", "itr1") in second["params"]


def test_table_name_is_url_encoded() -> None:
    session = _DummySession([_DummyResponse(200, {"records": []})])

    list(_client(session).iter_records(table_name="My Listings"))

    assert session.requests[0]["url"].endswith("/appBase/My%20Listings")


def test_rate_limit_honors_retry_after() -> None:
    sleeps: list[float] = []
    session = _DummySession([
        _DummyResponse(429, headers={"Retry-After": "2"}),
        _DummyResponse(200, {"records": []}),
    ])

    assert list(_client(session, sleeps).iter_records(table_name="Listings")) == []
    assert sleeps == [2.0]


def test_network_error_is_retried_then_raised() -> None:
    sleeps: list[float] = []
    session = _DummySession([requests.ConnectionError("boom")] * 3)

    with pytest.raises(AirtableApiError):
        list(_client(session, sleeps, max_retries=2).iter_records(table_name="Listings"))

    assert len(sleeps) == 2


def test_client_error_is_not_retried() -> None:
    sleeps: list[float] = []
    session = _DummySession([_DummyResponse(403, {"error": "NOT_AUTHORIZED"})])

    with pytest.raises(AirtableApiError) as exc_info:
        list(_client(session, sleeps).iter_records(table_name="Listings"))

    assert exc_info.value.status_code == 403
    assert sleeps == []


def test_update_records_batches_of_ten() -> None:
    updates = [(f"rec{i}", {"Webflow Item ID": f"wf{i}"}) for i in range(23)]
    session = _DummySession([
        _DummyResponse(200, {"records": [{}] * 10}),
        _DummyResponse(200, {"records": [{}] * 10}),
        _DummyResponse(200, {"records": [{}] * 3}),
    ])

    updated = _client(session).update_records(table_name="Listings", updates=updates)

    assert updated == 23
    assert [len(r["json"]["records"]) for r in session.requests] == [10, 10, 3]
    assert all(r["method"] == "PATCH" for r in session.requests)
    assert session.requests[0]["json"]["records"][0] == {"id": "rec0", "fields": {"Webflow Item ID": "wf0"}}


class TestSourceReader:

    def _reader(self, session: _DummySession, mappings) -> AirtableSourceReader:
        return AirtableSourceReader(_client(session), table_name="Listings", mappings=mappings)

    def test_read_all_splits_mirror_ref_from_fields(self, mappings) -> None:
        session = _DummySession([
            _DummyResponse(200, {"records": [
                {"id": "rec1", "fields": {"Name": "Loft", "Webflow Item ID": " wf1 "}},
                {"id": "rec2", "fields": {"Name": "House"}},
            ]}),
        ])

        records = self._reader(session, mappings).read_all()

        assert records[0].mirror_ref == "wf1"
        assert "Webflow Item ID" not in records[0].fields
        assert records[1].mirror_ref is None
        requested = [v for k, v in session.requests[0]["params"] if k == "fields[]"]
        assert "Webflow Item ID" in requested
        assert "Slug" not in requested

    def test_read_failure_becomes_fetch_error(self, mappings) -> None:
        session = _DummySession([_DummyResponse(404, {"error": "TABLE_NOT_FOUND"})])

        with pytest.raises(FetchError) as exc_info:
            self._reader(session, mappings).read_all()

        assert exc_info.value.side == "airtable"

    def test_write_mirror_refs_reports_failed_batch(self, mappings) -> None:
        refs = [(f"rec{i}", f"wf{i}") for i in range(12)]
        session = _DummySession([
            _DummyResponse(422, {"error": "INVALID_VALUE"}),
            _DummyResponse(200, {"records": [{}, {}]}),
        ])

        failed = self._reader(session, mappings).write_mirror_refs(refs)

        assert failed == [f"rec{i}" for i in range(10)]
        assert len(session.requests) == 2
