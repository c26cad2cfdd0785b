from __future__ import annotations

import re


MAX_SLUG_LENGTH = 50

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    # Collapse every non-alphanumeric run to one hyphen, trim edge hyphens, then cap the length.
    slug = _NON_ALNUM_RUN.sub("-", name.lower())
    slug = slug.strip("-")
    return slug[:MAX_SLUG_LENGTH]


def to_identifier(slug: str) -> str:
    # Database names and roles cannot contain hyphens.
    return slug.replace("-", "_")
