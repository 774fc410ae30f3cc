"""Trait and list normalisation.

The host only understands trait keys from its own dictionary. That
dictionary is passed in explicitly as ``allowed``; an empty set means the
dictionary is unavailable and every trait is accepted.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from canonforge.parsing.slugs import slugify


_LIST_SEPARATORS = re.compile(r"[,;\n]")


@dataclass(frozen=True)
class TraitPartition:
    """Traits split by whether the host recognises them.

    Attributes:
        recognized: Trait keys present in the allowed set.
        extra: Overflow keys the host does not know.
    """

    recognized: list[str] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)


def split_list(value: object) -> list[str]:
    """Accept a list or a ``,``/``;``/newline separated string.

    Entries are trimmed and empty entries dropped; anything else yields an
    empty list.
    """
    if isinstance(value, str):
        parts: Iterable[object] = _LIST_SEPARATORS.split(value)
    elif isinstance(value, (list, tuple)):
        parts = value
    else:
        return []
    return [part.strip() for part in parts if isinstance(part, str) and part.strip()]


def dedupe_casefold(values: Iterable[str]) -> list[str]:
    """Drop case-insensitive duplicates, keeping the first-seen casing."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        key = value.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(value)
    return result


def sanitize_traits(traits: object, allowed: Iterable[str] = ()) -> TraitPartition:
    """Normalise trait keys and partition them against ``allowed``.

    Args:
        traits: A list of traits or a delimited string.
        allowed: Trait keys the host recognises. Empty means unrestricted.

    Returns:
        The partition, with keys slugified and de-duplicated in order.

    Example:
        >>> sanitize_traits(["Fire", "evocation", "magical"], {"fire", "magical"})
        TraitPartition(recognized=['fire', 'magical'], extra=['evocation'])
    """
    keys = dedupe_casefold(key for key in map(slugify, split_list(traits)) if key)
    allowed_keys = {slugify(key) for key in allowed}
    if not allowed_keys:
        return TraitPartition(recognized=keys, extra=[])
    return TraitPartition(
        recognized=[key for key in keys if key in allowed_keys],
        extra=[key for key in keys if key not in allowed_keys],
    )


__all__ = ["TraitPartition", "split_list", "dedupe_casefold", "sanitize_traits"]
