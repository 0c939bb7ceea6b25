"""
Single swap step within one tick interval.

The step fee is not paid out in tokens. It is collected as `delta_l`, extra
reinvestment liquidity added to the pool, so every formula below solves for
the price/amount pair that leaves ``liquidity + delta_l`` consistent with the
fee-inclusive input.

Sign conventions:
- `specified_amount` / `used_amount` are positive for exact input and
  negative for exact output.
- `returned_amount` is negative when the pool pays out (exact input) and
  positive when the pool is owed (exact output).

Rounding always favours the pool: less output, more input, less fee liquidity
credited on exact input and more on exact output.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import FEE_UNITS, Q96, RES_96, TWO_FEE_UNITS
from .full_math import mul_div_ceiling, mul_div_floor
from .quad_math import get_smaller_root_of_quad_eqn
from .safe_cast import rev_to_int256, rev_to_uint256, to_int256, to_uint160


@dataclass(frozen=True)
class SwapStepResult:
    used_amount: int
    returned_amount: int
    delta_l: int
    next_sqrt_p: int


def compute_swap_step(
    liquidity: int,
    current_sqrt_p: int,
    target_sqrt_p: int,
    fee_units: int,
    specified_amount: int,
    is_exact_input: bool,
    is_token0: bool,
) -> SwapStepResult:
    """
    Move the price from `current_sqrt_p` towards `target_sqrt_p`.

    If the remaining `specified_amount` is not enough to reach the target, the
    whole amount is used and the resulting price is computed; otherwise the
    step stops exactly at the target and uses only the reach amount.
    """
    # A swap that just crossed a tick can start on its price; nothing to do.
    if current_sqrt_p == target_sqrt_p:
        return SwapStepResult(0, 0, 0, current_sqrt_p)

    used_amount = calc_reach_amount(
        liquidity, current_sqrt_p, target_sqrt_p, fee_units, is_exact_input, is_token0
    )

    reaches_target = not (
        (is_exact_input and used_amount > specified_amount)
        or (not is_exact_input and used_amount <= specified_amount)
    )
    if not reaches_target:
        used_amount = specified_amount

    abs_delta = used_amount if used_amount >= 0 else rev_to_uint256(used_amount)
    if reaches_target:
        next_sqrt_p = target_sqrt_p
        delta_l = calc_incremental_liquidity(
            abs_delta, liquidity, current_sqrt_p, next_sqrt_p, is_exact_input, is_token0
        )
    else:
        delta_l = estimate_incremental_liquidity(
            abs_delta, liquidity, current_sqrt_p, fee_units, is_exact_input, is_token0
        )
        next_sqrt_p = to_uint160(
            calc_final_price(abs_delta, liquidity, delta_l, current_sqrt_p, is_exact_input, is_token0)
        )

    returned_amount = calc_returned_amount(
        liquidity, current_sqrt_p, next_sqrt_p, delta_l, is_exact_input, is_token0
    )
    return SwapStepResult(used_amount, returned_amount, delta_l, next_sqrt_p)


def calc_reach_amount(
    liquidity: int,
    current_sqrt_p: int,
    target_sqrt_p: int,
    fee_units: int,
    is_exact_input: bool,
    is_token0: bool,
) -> int:
    """Signed amount of the specified token needed to move the price to `target_sqrt_p`."""
    abs_price_diff = abs(current_sqrt_p - target_sqrt_p)
    if is_exact_input:
        if is_token0:
            denominator = TWO_FEE_UNITS * target_sqrt_p - fee_units * current_sqrt_p
            numerator = mul_div_ceiling(liquidity, TWO_FEE_UNITS * abs_price_diff, denominator)
            return to_int256(mul_div_ceiling(numerator, Q96, current_sqrt_p))
        denominator = TWO_FEE_UNITS * current_sqrt_p - fee_units * target_sqrt_p
        numerator = mul_div_ceiling(liquidity, TWO_FEE_UNITS * abs_price_diff, denominator)
        return to_int256(mul_div_ceiling(numerator, current_sqrt_p, Q96))

    if is_token0:
        denominator = TWO_FEE_UNITS * current_sqrt_p - fee_units * target_sqrt_p
        numerator = denominator - fee_units * current_sqrt_p
        numerator = mul_div_floor(liquidity << RES_96, numerator, denominator)
        return rev_to_int256(mul_div_floor(numerator, abs_price_diff, current_sqrt_p) // target_sqrt_p)
    denominator = TWO_FEE_UNITS * target_sqrt_p - fee_units * current_sqrt_p
    numerator = denominator - fee_units * target_sqrt_p
    numerator = mul_div_floor(liquidity, numerator, denominator)
    return rev_to_int256(mul_div_floor(numerator, abs_price_diff, Q96))


def estimate_incremental_liquidity(
    abs_delta: int,
    liquidity: int,
    current_sqrt_p: int,
    fee_units: int,
    is_exact_input: bool,
    is_token0: bool,
) -> int:
    """Fee liquidity for a step that stops short of its target."""
    if is_exact_input:
        if is_token0:
            return mul_div_floor(current_sqrt_p, abs_delta * fee_units, TWO_FEE_UNITS << RES_96)
        return mul_div_floor(Q96, abs_delta * fee_units, TWO_FEE_UNITS * current_sqrt_p)

    # smaller root of a*x^2 - 2*b*x + c = 0
    a = fee_units
    b = (FEE_UNITS - fee_units) * liquidity
    c = fee_units * liquidity * abs_delta
    if is_token0:
        b -= mul_div_floor(FEE_UNITS * abs_delta, current_sqrt_p, Q96)
        c = mul_div_floor(c, current_sqrt_p, Q96)
    else:
        b -= mul_div_floor(FEE_UNITS * abs_delta, Q96, current_sqrt_p)
        c = mul_div_floor(c, Q96, current_sqrt_p)
    return get_smaller_root_of_quad_eqn(a, b, c)


def calc_incremental_liquidity(
    abs_delta: int,
    liquidity: int,
    current_sqrt_p: int,
    next_sqrt_p: int,
    is_exact_input: bool,
    is_token0: bool,
) -> int:
    """Fee liquidity for a step that lands exactly on `next_sqrt_p`."""
    if is_token0:
        tmp1 = mul_div_floor(liquidity, Q96, current_sqrt_p)
        tmp2 = tmp1 + abs_delta if is_exact_input else tmp1 - abs_delta
        tmp3 = mul_div_floor(next_sqrt_p, tmp2, Q96)
    else:
        tmp1 = mul_div_floor(liquidity, current_sqrt_p, Q96)
        tmp2 = tmp1 + abs_delta if is_exact_input else tmp1 - abs_delta
        tmp3 = mul_div_floor(tmp2, Q96, next_sqrt_p)
    # rounding can leave tmp3 just below liquidity when amounts are tiny
    return tmp3 - liquidity if tmp3 > liquidity else 0


def calc_final_price(
    abs_delta: int,
    liquidity: int,
    delta_l: int,
    current_sqrt_p: int,
    is_exact_input: bool,
    is_token0: bool,
) -> int:
    """Price after a partial step; rounded so that the pool never gives away extra."""
    if is_token0:
        tmp = mul_div_floor(abs_delta, current_sqrt_p, Q96)
        if is_exact_input:
            return mul_div_ceiling(liquidity + delta_l, current_sqrt_p, liquidity + tmp)
        return mul_div_floor(liquidity + delta_l, current_sqrt_p, liquidity - tmp)

    tmp = mul_div_floor(abs_delta, Q96, current_sqrt_p)
    if is_exact_input:
        return mul_div_floor(liquidity + tmp, current_sqrt_p, liquidity + delta_l)
    return mul_div_ceiling(liquidity - tmp, current_sqrt_p, liquidity + delta_l)


def calc_returned_amount(
    liquidity: int,
    current_sqrt_p: int,
    next_sqrt_p: int,
    delta_l: int,
    is_exact_input: bool,
    is_token0: bool,
) -> int:
    """Signed amount of the other token produced (exact input) or owed (exact output)."""
    if is_token0:
        if is_exact_input:
            returned_amount = to_int256(mul_div_ceiling(delta_l, next_sqrt_p, Q96)) + rev_to_int256(
                mul_div_floor(liquidity, current_sqrt_p - next_sqrt_p, Q96)
            )
        else:
            returned_amount = to_int256(mul_div_ceiling(delta_l, next_sqrt_p, Q96)) + to_int256(
                mul_div_ceiling(liquidity, next_sqrt_p - current_sqrt_p, Q96)
            )
    else:
        returned_amount = to_int256(mul_div_ceiling(liquidity + delta_l, Q96, next_sqrt_p)) + rev_to_int256(
            mul_div_floor(liquidity, Q96, current_sqrt_p)
        )

    if is_exact_input and returned_amount == 1:
        returned_amount = 0
    return returned_amount
