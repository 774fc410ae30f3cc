"""Sense parsing.

Senses arrive either as structured ``{type, acuity, range}`` mappings or as
free text like "scent (imprecise) 30 feet". Ranges are converted to feet.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from canonforge.core.logging import get_logger
from canonforge.models.enums import SenseAcuity
from canonforge.parsing.slugs import slugify


logger = get_logger(__name__)


@dataclass(frozen=True)
class Sense:
    """A structured sense.

    Attributes:
        type: Sense slug (``darkvision``, ``scent``, ``low-light-vision``).
        acuity: Precise, imprecise or vague, if stated.
        range: Range in whole feet, if stated.
    """

    type: str
    acuity: SenseAcuity | None = None
    range: int | None = None


FEET_PER_UNIT: dict[str, float] = {
    "foot": 1,
    "feet": 1,
    "ft": 1,
    "yard": 3,
    "yards": 3,
    "yd": 3,
    "yds": 3,
    "meter": 3.28084,
    "meters": 3.28084,
    "metre": 3.28084,
    "metres": 3.28084,
    "m": 3.28084,
    "mile": 5280,
    "miles": 5280,
    "mi": 5280,
}

_PARENTHETICAL = re.compile(r"\(([^)]*)\)")
_RANGE = re.compile(
    r"(?P<amount>\d+(?:\.\d+)?)\s*(?P<unit>"
    + "|".join(sorted(FEET_PER_UNIT, key=len, reverse=True))
    + r")\.?(?![a-z])",
    re.IGNORECASE,
)
_ACUITIES = {acuity.value for acuity in SenseAcuity}


def _to_feet(amount: float, unit: str) -> int:
    return round(amount * FEET_PER_UNIT[unit.lower()])


def _parse_text(text: str) -> Sense | None:
    remaining = text
    acuity: SenseAcuity | None = None
    for match in _PARENTHETICAL.finditer(text):
        candidate = match.group(1).strip().lower()
        if candidate in _ACUITIES:
            acuity = SenseAcuity(candidate)
            remaining = remaining.replace(match.group(0), " ", 1)
            break

    range_feet: int | None = None
    range_match = _RANGE.search(remaining)
    if range_match:
        range_feet = _to_feet(float(range_match.group("amount")), range_match.group("unit"))
        remaining = remaining[: range_match.start()] + " " + remaining[range_match.end() :]

    sense_type = slugify(_PARENTHETICAL.sub(" ", remaining))
    if not sense_type:
        return None
    return Sense(type=sense_type, acuity=acuity, range=range_feet)


def _parse_mapping(value: Mapping[str, Any]) -> Sense | None:
    sense_type = slugify(str(value.get("type") or ""))
    if not sense_type:
        return None

    raw_acuity = value.get("acuity")
    acuity = None
    if isinstance(raw_acuity, str) and raw_acuity.strip().lower() in _ACUITIES:
        acuity = SenseAcuity(raw_acuity.strip().lower())

    raw_range = value.get("range")
    range_feet = None
    if isinstance(raw_range, (int, float)) and not isinstance(raw_range, bool):
        range_feet = round(raw_range)
    elif isinstance(raw_range, str) and raw_range.strip():
        match = _RANGE.search(raw_range)
        if match:
            range_feet = _to_feet(float(match.group("amount")), match.group("unit"))
        elif raw_range.strip().isdigit():
            range_feet = int(raw_range.strip())
    return Sense(type=sense_type, acuity=acuity, range=range_feet)


def parse_sense(value: object) -> Sense | None:
    """Parse one sense from a mapping or free text.

    Args:
        value: ``{type, acuity?, range?}`` mapping or text such as
            "darkvision 60 feet".

    Returns:
        The parsed sense, or None when no sense type can be derived.

    Example:
        >>> parse_sense("scent (imprecise) 30 feet")
        Sense(type='scent', acuity=<SenseAcuity.IMPRECISE: 'imprecise'>, range=30)
    """
    if isinstance(value, Mapping):
        return _parse_mapping(value)
    if isinstance(value, str) and value.strip():
        return _parse_text(value)
    return None


def parse_senses(values: Iterable[object]) -> list[Sense]:
    """Parse every sense, dropping the ones that cannot be parsed."""
    senses: list[Sense] = []
    for value in values:
        sense = parse_sense(value)
        if sense is None:
            logger.debug("Dropping unparseable sense", value=value)
            continue
        senses.append(sense)
    return senses


def format_sense(sense: Sense) -> str:
    """Render a sense as text that :func:`parse_sense` reads back."""
    parts = [sense.type.replace("-", " ")]
    if sense.acuity is not None:
        parts.append(f"({sense.acuity.value})")
    if sense.range is not None:
        parts.append(f"{sense.range} feet")
    return " ".join(parts)


__all__ = ["Sense", "FEET_PER_UNIT", "parse_sense", "parse_senses", "format_sense"]
