"""Text and value parsers.

Every parser here is pure and total: malformed input yields ``None`` (or an
empty result) rather than an exception.
"""

from __future__ import annotations

from canonforge.parsing.currency import (
    coins_to_decimal,
    decimal_to_coins,
    parse_price,
    round_currency,
)
from canonforge.parsing.frequency import Frequency, format_frequency, parse_frequency
from canonforge.parsing.rich_text import (
    html_to_text,
    normalize_whitespace,
    to_rich_text,
)
from canonforge.parsing.senses import Sense, format_sense, parse_sense, parse_senses
from canonforge.parsing.slugs import normalize_key, slugify
from canonforge.parsing.traits import (
    TraitPartition,
    dedupe_casefold,
    sanitize_traits,
    split_list,
)


__all__ = [
    "slugify",
    "normalize_key",
    "to_rich_text",
    "html_to_text",
    "normalize_whitespace",
    "Frequency",
    "parse_frequency",
    "format_frequency",
    "Sense",
    "parse_sense",
    "parse_senses",
    "format_sense",
    "decimal_to_coins",
    "coins_to_decimal",
    "parse_price",
    "round_currency",
    "TraitPartition",
    "sanitize_traits",
    "split_list",
    "dedupe_casefold",
]
