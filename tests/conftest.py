"""
Configuración de fixtures para pytest.
"""
from __future__ import annotations

from typing import List

import pytest

from cms_sync.infrastructure.external.airtable_sync.table_mappings import get_listing_field_mappings
from tests.factories import FakeAirtable, FakeWebflow


@pytest.fixture
def mappings():
    return get_listing_field_mappings()


@pytest.fixture
def fake_webflow() -> FakeWebflow:
    return FakeWebflow()


@pytest.fixture
def fake_airtable() -> FakeAirtable:
    return FakeAirtable()


@pytest.fixture
def no_sleep():
    """Reemplazo de time.sleep que registra las esperas."""
    waits: List[float] = []

    def _sleep(seconds: float) -> None:
        waits.append(seconds)

    _sleep.waits = waits
    return _sleep
