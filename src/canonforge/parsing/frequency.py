"""Natural-language frequency parsing.

Turns phrases such as "twice per day", "3/round" or "once every 10 minutes"
into a mechanical frequency: a maximum number of uses per reset interval.

Parsing is total: text that names no recognisable interval yields ``None``,
which callers treat as "no mechanical frequency" and never as an error.

Example:
    >>> parse_frequency("twice per day")
    Frequency(max=2, per=<FrequencyInterval.DAY: 'day'>)
    >>> parse_frequency("sometimes") is None
    True
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from canonforge.models.enums import FrequencyInterval


@dataclass(frozen=True)
class Frequency:
    """A mechanical frequency.

    Attributes:
        max: Maximum uses per interval.
        per: Interval on which the uses reset.
    """

    max: int
    per: FrequencyInterval


_COUNT_WORDS: dict[str, int] = {
    "once": 1,
    "one": 1,
    "twice": 2,
    "two": 2,
    "thrice": 3,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

_FREQUENCY = re.compile(
    r"\b(?P<count>\d+|" + "|".join(_COUNT_WORDS) + r")"
    r"(?:\s+times?)?\s*"
    r"(?:/\s*|\s(?:per|every|an?|each)\s+)"
    r"(?:(?P<amount>\d+|an?|one|ten)\s+)?"
    r"(?P<unit>rounds?|turns?|minutes?|mins?|hours?|hrs?|days?)\b",
    re.IGNORECASE,
)

_SINGLE_UNITS: dict[str, FrequencyInterval] = {
    "round": FrequencyInterval.ROUND,
    "turn": FrequencyInterval.TURN,
    "minute": FrequencyInterval.MINUTE,
    "min": FrequencyInterval.MINUTE,
    "hour": FrequencyInterval.HOUR,
    "hr": FrequencyInterval.HOUR,
    "day": FrequencyInterval.DAY,
}

_INTERVAL_TEXT: dict[FrequencyInterval, str] = {
    FrequencyInterval.ROUND: "round",
    FrequencyInterval.TURN: "turn",
    FrequencyInterval.MINUTE: "minute",
    FrequencyInterval.TEN_MINUTES: "10 minutes",
    FrequencyInterval.HOUR: "hour",
    FrequencyInterval.DAY: "day",
}


def _parse_count(token: str) -> int | None:
    token = token.lower()
    if token.isdigit():
        return int(token)
    return _COUNT_WORDS.get(token)


def _parse_amount(token: str | None) -> int | None:
    if token is None or token.lower() in {"a", "an", "one"}:
        return 1
    if token.lower() == "ten":
        return 10
    return int(token) if token.isdigit() else None


def _interval_for(amount: int | None, unit: str) -> FrequencyInterval | None:
    base = unit.lower().rstrip("s")
    interval = _SINGLE_UNITS.get(base)
    if interval is None or amount is None:
        return None
    if amount == 1:
        return interval
    if amount == 10 and interval is FrequencyInterval.MINUTE:
        return FrequencyInterval.TEN_MINUTES
    if amount == 60 and interval is FrequencyInterval.MINUTE:
        return FrequencyInterval.HOUR
    if amount == 24 and interval is FrequencyInterval.HOUR:
        return FrequencyInterval.DAY
    return None


def parse_frequency(text: str | None) -> Frequency | None:
    """Parse a frequency phrase.

    Args:
        text: Free text such as "once per minute" or "2/day".

    Returns:
        The parsed frequency, or None when no count and interval are found
        or the interval is not one the host supports.
    """
    if not text:
        return None
    match = _FREQUENCY.search(text)
    if match is None:
        return None

    count = _parse_count(match.group("count"))
    if not count:
        return None
    interval = _interval_for(_parse_amount(match.group("amount")), match.group("unit"))
    if interval is None:
        return None
    return Frequency(max=count, per=interval)


def format_frequency(frequency: Frequency) -> str:
    """Render a frequency as text that :func:`parse_frequency` reads back.

    Example:
        >>> format_frequency(Frequency(max=1, per=FrequencyInterval.TEN_MINUTES))
        'once per 10 minutes'
    """
    if frequency.max == 1:
        count = "once"
    elif frequency.max == 2:
        count = "twice"
    else:
        count = f"{frequency.max} times"
    return f"{count} per {_INTERVAL_TEXT[frequency.per]}"


__all__ = ["Frequency", "parse_frequency", "format_frequency"]
