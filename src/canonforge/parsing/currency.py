"""Currency conversion between gold-piece decimals and host coins.

The canonical price is a single non-negative decimal in gold pieces. The
host stores ``{pp, gp, sp, cp}`` integers, where 1 pp = 10 gp = 100 sp =
1000 cp. Conversions go through an integer copper total and round to two
decimal places (half-up), so sub-copper amounts are lost.

Example:
    >>> decimal_to_coins(3.5).model_dump()
    {'pp': 0, 'gp': 3, 'sp': 5, 'cp': 0}
    >>> parse_price("3 gp, 5 sp")
    3.5
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from canonforge.core.constants import COIN_VALUES_IN_COPPER
from canonforge.models.documents import Coins


_CENT = Decimal("0.01")
_COIN_AMOUNT = re.compile(r"(\d+(?:\.\d+)?)\s*(pp|gp|sp|cp)\b", re.IGNORECASE)


def _to_decimal(value: float | int | str) -> Decimal | None:
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def round_currency(value: float) -> float:
    """Round a gold-piece amount to two decimal places, half-up."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def decimal_to_coins(value: float | None) -> Coins:
    """Split a gold-piece amount into host denominations.

    Args:
        value: Price in gold pieces. ``None`` and non-positive values yield
            zero coins.

    Returns:
        The coin breakdown using the largest denominations first.
    """
    if value is None or value <= 0:
        return Coins()
    copper = int(
        (Decimal(str(value)) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    )
    pp, remainder = divmod(copper, COIN_VALUES_IN_COPPER["pp"])
    gp, remainder = divmod(remainder, COIN_VALUES_IN_COPPER["gp"])
    sp, cp = divmod(remainder, COIN_VALUES_IN_COPPER["sp"])
    return Coins(pp=pp, gp=gp, sp=sp, cp=cp)


def coins_to_decimal(coins: Coins | Mapping[str, int]) -> float:
    """Sum host denominations into a gold-piece decimal."""
    if isinstance(coins, Coins):
        coins = coins.model_dump()
    copper = sum(
        int(coins.get(denomination) or 0) * copper_value
        for denomination, copper_value in COIN_VALUES_IN_COPPER.items()
    )
    return round_currency(copper / 100)


def _sum_coin_mapping(record: Mapping[str, object]) -> Decimal | None:
    total = Decimal(0)
    matched = False
    for denomination, copper_value in COIN_VALUES_IN_COPPER.items():
        raw = record.get(denomination)
        if raw is None or isinstance(raw, bool):
            continue
        if not isinstance(raw, (int, float, str)):
            continue
        amount = _to_decimal(raw)
        if amount is None:
            continue
        matched = True
        total += amount * copper_value
    return total / 100 if matched else None


def parse_price(value: object) -> float | None:
    """Parse a price from any shape the host or a user may supply.

    Accepted inputs are a number, coin text such as "3 gp, 5 sp", a numeric
    string, a ``{pp, gp, sp, cp}`` mapping or a ``{value: {...}}`` wrapper.

    Args:
        value: The raw price.

    Returns:
        The price in gold pieces rounded to two places, or None when no
        amount can be parsed. ``None`` is never collapsed to zero.
    """
    total: Decimal | None = None

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value < 0:
            return None
        total = Decimal(str(value))
    elif isinstance(value, str):
        matches = _COIN_AMOUNT.findall(value)
        if matches:
            total = sum(
                (
                    Decimal(amount) * COIN_VALUES_IN_COPPER[denomination.lower()]
                    for amount, denomination in matches
                ),
                Decimal(0),
            ) / 100
        elif value.strip():
            total = _to_decimal(value.strip())
    elif isinstance(value, Coins):
        return coins_to_decimal(value)
    elif isinstance(value, Mapping):
        inner = value.get("value")
        record = inner if isinstance(inner, Mapping) else value
        total = _sum_coin_mapping(record)

    if total is None or total < 0:
        return None
    return round_currency(float(total))


__all__ = [
    "Coins",
    "round_currency",
    "decimal_to_coins",
    "coins_to_decimal",
    "parse_price",
]
