from __future__ import annotations

import pytest

from baseplane.services.slugs import MAX_SLUG_LENGTH, slugify, to_identifier


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("My App", "my-app"),
        ("  Acme -- Production!! ", "acme-production"),
        ("already-a-slug", "already-a-slug"),
        ("Ünïcode Näme", "n-code-n-me"),
        ("2024 Q1 / Analytics", "2024-q1-analytics"),
    ],
)
def test_slugify_normalizes_names(name: str, expected: str) -> None:
    assert slugify(name) == expected


def test_slugify_returns_empty_for_names_without_alphanumerics() -> None:
    assert slugify("!!! ---") == ""


def test_slugify_truncates_after_trimming() -> None:
    slug = slugify("x" * 80)
    assert len(slug) == MAX_SLUG_LENGTH
    assert slug == "x" * MAX_SLUG_LENGTH


def test_to_identifier_replaces_hyphens() -> None:
    assert to_identifier("my-cool-app") == "my_cool_app"
