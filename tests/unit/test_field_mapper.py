"""
Tests del mapeo Airtable -> Webflow.
"""
from __future__ import annotations

import pytest

from cms_sync.application.services.field_mapper import is_empty, map_fields, validate_field_mappings
from cms_sync.domain.entities.records import FieldMapping
from cms_sync.infrastructure.external.airtable_sync.table_mappings import first_attachment_url, to_number
from cms_sync.shared.exceptions.sync import MappingError, SyncConfigError
from tests.factories import source


class TestMapFields:
    """Tests para map_fields()."""

    def test_maps_present_fields_and_computes_slug(self, mappings) -> None:
        record = source("rec1", Name="Warsaw Loft", City="Warsaw")

        mapped = map_fields(record, mappings)

        assert mapped.as_dict() == {"name": "Warsaw Loft", "city": "Warsaw", "slug": "warsaw-loft"}

    def test_drops_unmapped_and_omits_empty_fields(self, mappings) -> None:
        record = source(
            "rec1",
            Name="Loft",
            City="",
            Description="   ",
            Category=None,
            Notes="interno",
        )

        mapped = map_fields(record, mappings)

        assert mapped.as_dict() == {"name": "Loft", "slug": "loft"}

    def test_slug_field_in_source_is_ignored(self, mappings) -> None:
        """El slug siempre se deriva del nombre, nunca se copia."""
        record = source("rec1", Name="Warsaw Loft", Slug="something-else")

        assert map_fields(record, mappings).slug == "warsaw-loft"

    def test_string_values_are_copied_unchanged(self, mappings) -> None:
        record = source("rec1", Name=" Loft ", City="Warsaw ")

        mapped = map_fields(record, mappings)

        assert mapped.as_dict() == {"name": " Loft ", "city": "Warsaw ", "slug": "-loft-"}

    def test_zero_price_is_a_value(self, mappings) -> None:
        record = source("rec1", Name="Free", Price=0)

        assert map_fields(record, mappings).as_dict()["price"] == 0

    def test_without_slug_excludes_slug(self, mappings) -> None:
        mapped = map_fields(source("rec1", Name="Loft", City="Krakow"), mappings)

        assert mapped.without_slug() == {"name": "Loft", "city": "Krakow"}

    def test_missing_name_raises_mapping_error(self, mappings) -> None:
        with pytest.raises(MappingError) as exc:
            map_fields(source("rec9", City="Warsaw"), mappings)
        assert exc.value.record_id == "rec9"
        assert exc.value.field == "Name"

    def test_name_without_slug_characters_raises(self, mappings) -> None:
        with pytest.raises(MappingError):
            map_fields(source("rec9", Name="!!!"), mappings)

    def test_transform_error_raises_mapping_error(self, mappings) -> None:
        with pytest.raises(MappingError, match="Price"):
            map_fields(source("rec9", Name="Loft", Price="a lot"), mappings)

    def test_photo_attachment_is_reduced_to_url(self, mappings) -> None:
        record = source(
            "rec1",
            Name="Loft",
            **{"Photo URL": [{"url": "https://cdn/a.jpg", "filename": "a.jpg"}]},
        )

        assert map_fields(record, mappings).as_dict()["photo"] == "https://cdn/a.jpg"

    def test_mapped_fields_are_immutable(self, mappings) -> None:
        mapped = map_fields(source("rec1", Name="Loft"), mappings)

        with pytest.raises(TypeError):
            mapped.values["name"] = "Other"


class TestValidateFieldMappings:
    """Tests para validate_field_mappings()."""

    def test_listing_mappings_are_valid(self, mappings) -> None:
        validate_field_mappings(mappings)

    def test_duplicated_target_is_rejected(self) -> None:
        mappings = [
            FieldMapping("Name", "name", required=True),
            FieldMapping("City", "city"),
            FieldMapping("Town", "city"),
            FieldMapping("Slug", "slug", derived=True),
        ]
        with pytest.raises(SyncConfigError, match="city"):
            validate_field_mappings(mappings)

    def test_name_must_be_required(self) -> None:
        mappings = [FieldMapping("Name", "name"), FieldMapping("Slug", "slug", derived=True)]
        with pytest.raises(SyncConfigError):
            validate_field_mappings(mappings)

    def test_slug_must_be_derived(self) -> None:
        mappings = [FieldMapping("Name", "name", required=True), FieldMapping("Slug", "slug")]
        with pytest.raises(SyncConfigError):
            validate_field_mappings(mappings)


def test_is_empty_rules() -> None:
    assert is_empty(None)
    assert is_empty("  ")
    assert is_empty([])
    assert not is_empty(0)
    assert not is_empty(False)
    assert not is_empty("x")


def test_to_number_parses_localized_strings() -> None:
    assert to_number("1 200,50") == 1200.5
    assert to_number("300") == 300
    assert to_number(45.5) == 45.5


def test_first_attachment_url_accepts_plain_string() -> None:
    assert first_attachment_url(" https://cdn/b.png ") == "https://cdn/b.png"
    assert first_attachment_url([]) is None
