"""
Tez / mutez conversion.

1 tez = 1,000,000 mutez. Node RPCs always take mutez as decimal strings; tez
values are only for display. Conversions go through Decimal so no float
rounding leaks into amounts.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

MUTEZ_PER_TEZ = 1_000_000

Number = Union[int, str, Decimal]


def to_tez(mutez: Number) -> Decimal:
    """Convert a mutez amount into tez (e.g. ``"1500000"`` -> ``Decimal("1.5")``)."""
    try:
        value = Decimal(str(mutez))
    except InvalidOperation as e:
        raise ValueError(f"not a mutez amount: {mutez!r}") from e
    if value != value.to_integral_value():
        raise ValueError(f"mutez amounts are integral: {mutez!r}")
    return value / MUTEZ_PER_TEZ


def to_mutez(tez: Number) -> str:
    """Convert a tez amount into the mutez decimal string the node expects."""
    try:
        value = Decimal(str(tez)) * MUTEZ_PER_TEZ
    except InvalidOperation as e:
        raise ValueError(f"not a tez amount: {tez!r}") from e
    if value != value.to_integral_value():
        raise ValueError(f"tez amount has more than 6 decimals: {tez!r}")
    return str(int(value))


__all__ = ["MUTEZ_PER_TEZ", "to_tez", "to_mutez"]
