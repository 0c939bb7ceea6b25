"""
Swap engine: the price-stepping loop.

Walks the price from the current sqrt price towards `limit_sqrt_p` one step at
a time. A step ends at the nearer of:
- the next initialized tick in the direction of travel,
- a virtual boundary MAX_TICK_DISTANCE ticks away (keeps the step formulas in
  their precision envelope; reaching it does not cross anything),
- the price limit.

Each step's fee is added to `reinvest_l` straight away. rToken minting is
settled only when a real tick is crossed, against a cache loaded lazily on the
first cross, and the accumulated LP and protocol shares are minted once after
the loop.

Properties:
- terminates with either the specified amount fully used or the price at the limit
- `base_l` changes only on a real tick cross, by that tick's signed `liquidity_net`
- the pool is never left at a price outside (MIN_SQRT_RATIO, MAX_SQRT_RATIO)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import ErrorKind, PreconditionError
from ..kernels.constants import MAX_TICK_DISTANCE
from ..kernels.safe_cast import to_uint128
from ..kernels.swap_math import compute_swap_step
from ..kernels.tick_math import (
    MAX_SQRT_RATIO,
    MIN_SQRT_RATIO,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
)
from .reinvestment import SwapFeeCache, sync_seconds_per_liquidity

if TYPE_CHECKING:
    from .pool import Pool


@dataclass(frozen=True)
class SwapOutcome:
    delta_qty0: int
    delta_qty1: int
    sqrt_p: int
    current_tick: int
    ticks_crossed: int


def check_limit_sqrt_p(sqrt_p: int, limit_sqrt_p: int, will_up_tick: bool) -> None:
    if will_up_tick:
        ok = sqrt_p < limit_sqrt_p < MAX_SQRT_RATIO
    else:
        ok = MIN_SQRT_RATIO < limit_sqrt_p < sqrt_p
    if not ok:
        raise PreconditionError(
            ErrorKind.BAD_LIMIT_SQRT_P,
            f"limit {limit_sqrt_p} vs price {sqrt_p} ({'up' if will_up_tick else 'down'})",
        )


def run_swap(pool: "Pool", swap_qty: int, is_token0: bool, limit_sqrt_p: int) -> SwapOutcome:
    """
    Execute the step loop against `pool` storage and return the net deltas.

    Positive deltas are owed to the pool, negative ones are owed to the
    trader. Token settlement is left to the caller.
    """
    if swap_qty == 0:
        raise PreconditionError(ErrorKind.ZERO_SWAP_QTY)

    storage = pool.storage
    ticks = pool.ticks
    is_exact_input = swap_qty > 0
    # price (token1 per token0) rises when token1 flows in
    will_up_tick = is_exact_input != is_token0

    base_l = storage.base_l
    reinvest_l = storage.reinvest_l
    sqrt_p = storage.sqrt_p
    current_tick = storage.current_tick
    start_tick = current_tick
    next_tick = storage.nearest_current_tick
    if will_up_tick:
        next_tick = ticks.initialized.next(next_tick)

    check_limit_sqrt_p(sqrt_p, limit_sqrt_p, will_up_tick)

    specified_amount = swap_qty
    returned_amount = 0
    cache: SwapFeeCache | None = None
    ticks_crossed = 0

    while specified_amount != 0 and sqrt_p != limit_sqrt_p:
        temp_next_tick = next_tick
        if will_up_tick and temp_next_tick > current_tick + MAX_TICK_DISTANCE:
            temp_next_tick = current_tick + MAX_TICK_DISTANCE
        elif not will_up_tick and temp_next_tick < current_tick - MAX_TICK_DISTANCE:
            temp_next_tick = current_tick - MAX_TICK_DISTANCE

        start_sqrt_p = sqrt_p
        next_sqrt_p = get_sqrt_ratio_at_tick(temp_next_tick)
        target_sqrt_p = next_sqrt_p
        if will_up_tick == (next_sqrt_p > limit_sqrt_p):
            target_sqrt_p = limit_sqrt_p

        step = compute_swap_step(
            base_l + reinvest_l,
            sqrt_p,
            target_sqrt_p,
            pool.swap_fee_units,
            specified_amount,
            is_exact_input,
            is_token0,
        )
        sqrt_p = step.next_sqrt_p
        specified_amount -= step.used_amount
        returned_amount += step.returned_amount
        reinvest_l = to_uint128(reinvest_l + step.delta_l)

        if sqrt_p != next_sqrt_p:
            if sqrt_p != start_sqrt_p:
                current_tick = get_tick_at_sqrt_ratio(sqrt_p)
            break

        current_tick = temp_next_tick if will_up_tick else temp_next_tick - 1
        if temp_next_tick != next_tick:
            # virtual boundary, nothing to cross
            continue

        if cache is None:
            config = pool.factory.config
            cache = SwapFeeCache(
                r_total_supply=pool.total_supply(),
                reinvest_l_last=storage.reinvest_l_last,
                fee_growth_global=storage.fee_growth_global,
                seconds_per_liquidity_global=sync_seconds_per_liquidity(storage, pool.chain.timestamp),
                fee_to=config.fee_to,
                government_fee_units=config.government_fee_units,
            )
        cache.accrue(reinvest_l, base_l)

        liquidity_net, next_tick = ticks.cross_tick(
            next_tick,
            cache.fee_growth_global,
            cache.seconds_per_liquidity_global,
            will_up_tick,
        )
        base_l = to_uint128(base_l + liquidity_net)
        ticks_crossed += 1

    if cache is not None:
        if cache.government_fee > 0:
            pool.mint_rtokens(cache.fee_to, cache.government_fee)
        if cache.lp_fee > 0:
            pool.mint_rtokens(pool.address, cache.lp_fee)
        storage.reinvest_l_last = cache.reinvest_l_last
        storage.fee_growth_global = cache.fee_growth_global

    if current_tick != start_tick:
        pool.oracle.write(pool.address, pool.chain.timestamp, start_tick, storage.base_l)

    storage.base_l = base_l
    storage.reinvest_l = reinvest_l
    storage.sqrt_p = sqrt_p
    storage.current_tick = current_tick
    storage.nearest_current_tick = ticks.initialized.previous(next_tick) if next_tick > current_tick else next_tick

    used = swap_qty - specified_amount
    if is_token0:
        delta_qty0, delta_qty1 = used, returned_amount
    else:
        delta_qty0, delta_qty1 = returned_amount, used
    return SwapOutcome(delta_qty0, delta_qty1, sqrt_p, current_tick, ticks_crossed)
