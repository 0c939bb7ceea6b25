"""
Liquidity <-> token quantity conversion over a sqrt-price range.

Rounding follows the pool's side of the trade: quantities the pool receives
(adding liquidity) round up, quantities it pays out (removing liquidity,
redeeming rTokens) round down. Removal quantities are returned negated so the
caller can report them directly as outbound deltas.
"""

from __future__ import annotations

from .constants import MIN_LIQUIDITY, Q96, RES_96
from .full_math import div_ceiling, mul_div_ceiling, mul_div_floor
from .safe_cast import rev_to_int256, to_int256


def calc_unlock_qtys(initial_sqrt_p: int) -> tuple[int, int]:
    """Token quantities backing the MIN_LIQUIDITY seed at `initial_sqrt_p`."""
    qty0 = mul_div_ceiling(MIN_LIQUIDITY, Q96, initial_sqrt_p)
    qty1 = mul_div_ceiling(MIN_LIQUIDITY, initial_sqrt_p, Q96)
    return qty0, qty1


def calc_required_qty0(lower_sqrt_p: int, upper_sqrt_p: int, liquidity: int, is_add_liquidity: bool) -> int:
    """token0 for `liquidity` over ``[lower, upper]``: ``L * (upper - lower) / (lower * upper)``."""
    numerator1 = liquidity << RES_96
    numerator2 = upper_sqrt_p - lower_sqrt_p
    if is_add_liquidity:
        return to_int256(div_ceiling(mul_div_ceiling(numerator1, numerator2, upper_sqrt_p), lower_sqrt_p))
    return rev_to_int256(mul_div_floor(numerator1, numerator2, upper_sqrt_p) // lower_sqrt_p)


def calc_required_qty1(lower_sqrt_p: int, upper_sqrt_p: int, liquidity: int, is_add_liquidity: bool) -> int:
    """token1 for `liquidity` over ``[lower, upper]``: ``L * (upper - lower)``."""
    if is_add_liquidity:
        return to_int256(mul_div_ceiling(liquidity, upper_sqrt_p - lower_sqrt_p, Q96))
    return rev_to_int256(mul_div_floor(liquidity, upper_sqrt_p - lower_sqrt_p, Q96))


def get_qty0_from_burn_rtokens(sqrt_p: int, liquidity: int) -> int:
    return mul_div_floor(liquidity, Q96, sqrt_p)


def get_qty1_from_burn_rtokens(sqrt_p: int, liquidity: int) -> int:
    return mul_div_floor(liquidity, sqrt_p, Q96)
