from __future__ import annotations

import pytest

from cms_sync.shared.utils.slug import disambiguate_slug, slugify


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Warsaw Loft", "warsaw-loft"),
        ("Dom   z   ogrodem", "dom-z-ogrodem"),
        ("Villa #1 (Sea View)!", "villa-1-sea-view"),
        ("already-a_slug", "already-a_slug"),
        ("Łódź Centrum", "d-centrum"),
        ("Tab\tand\nnewline", "tab-and-newline"),
    ],
)
def test_slugify_normalizes_names(name: str, expected: str) -> None:
    assert slugify(name) == expected


@pytest.mark.parametrize("name", [None, "", "   ", "\t\n"])
def test_slugify_empty_or_blank_returns_empty_string(name) -> None:
    assert slugify(name) == ""


@pytest.mark.parametrize(
    "name",
    ["Warsaw Loft", "  A  B  ", "Ünïcödé Hoüse", "x--y__z", "100% Pure!!", "!!!"],
)
def test_slugify_is_idempotent(name: str) -> None:
    once = slugify(name)
    assert slugify(once) == once


def test_disambiguate_slug_appends_slugified_record_id() -> None:
    assert disambiguate_slug("warsaw-loft", "recAbC123") == "warsaw-loft-recabc123"


@pytest.mark.parametrize(
    "name, expected",
    [
        (" Loft ", "-loft-"),
        ("  Dom   z   ogrodem ", "-dom-z-ogrodem-"),
        ("\tLoft", "-loft"),
    ],
)
def test_slugify_keeps_leading_and_trailing_whitespace_as_hyphen(name: str, expected: str) -> None:
    """Los slugs creados a partir de nombres con espacios en los bordes deben seguir emparejando."""
    assert slugify(name) == expected
