"""Slug and dedup-key normalisation."""

from __future__ import annotations

import re


_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_QUOTES = re.compile(r"[\"'`‘’“”]")


def slugify(value: str | None) -> str:
    """Normalise a name into a hyphenated slug.

    Lowercases, collapses every run of non-alphanumeric characters to a single
    hyphen and trims hyphens from both ends.

    Args:
        value: The text to slugify.

    Returns:
        The slug, or an empty string when nothing alphanumeric remains.

    Example:
        >>> slugify("  Ancient Red Dragon! ")
        'ancient-red-dragon'
    """
    if not value:
        return ""
    return _NON_ALNUM.sub("-", value.strip().lower()).strip("-")


def normalize_key(value: str | None) -> str:
    """Build a name-based dedup key.

    Quote characters are dropped before slugifying so that "Dragon's Breath"
    and "Dragons Breath" collide.
    """
    if not value:
        return ""
    return slugify(_QUOTES.sub("", value))


__all__ = ["slugify", "normalize_key"]
