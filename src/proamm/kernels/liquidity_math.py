"""
Liquidity obtainable from token quantities over a price range.

Inverse of the required-quantity formulas; all results round down so that
the quantities the pool then asks for never exceed what was offered.
"""

from __future__ import annotations

from .constants import Q96
from .full_math import mul_div_floor
from .safe_cast import to_uint128


def get_liquidity_from_qty0(lower_sqrt_p: int, upper_sqrt_p: int, qty0: int) -> int:
    liq = mul_div_floor(lower_sqrt_p, upper_sqrt_p, Q96)
    return to_uint128(mul_div_floor(liq, qty0, upper_sqrt_p - lower_sqrt_p))


def get_liquidity_from_qty1(lower_sqrt_p: int, upper_sqrt_p: int, qty1: int) -> int:
    return to_uint128(mul_div_floor(qty1, Q96, upper_sqrt_p - lower_sqrt_p))


def get_liquidity_from_qties(
    current_sqrt_p: int,
    lower_sqrt_p: int,
    upper_sqrt_p: int,
    qty0: int,
    qty1: int,
) -> int:
    """Largest liquidity that both `qty0` and `qty1` can fund at `current_sqrt_p`."""
    if current_sqrt_p <= lower_sqrt_p:
        return get_liquidity_from_qty0(lower_sqrt_p, upper_sqrt_p, qty0)
    if current_sqrt_p >= upper_sqrt_p:
        return get_liquidity_from_qty1(lower_sqrt_p, upper_sqrt_p, qty1)
    return min(
        get_liquidity_from_qty0(current_sqrt_p, upper_sqrt_p, qty0),
        get_liquidity_from_qty1(lower_sqrt_p, current_sqrt_p, qty1),
    )
