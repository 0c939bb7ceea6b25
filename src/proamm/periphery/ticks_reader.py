"""
Read-only helpers over pool tick lists and position fees.

Used to compute `ticks_previous` hints for mints and to quote what a managed
position could collect right now, including fees a settlement would mint.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Tuple

from ..errors import ErrorKind, PositionManagerError
from ..kernels.constants import FEE_GROWTH_MOD, Q96
from ..kernels.full_math import mul_div_floor
from ..kernels.qty_delta_math import get_qty0_from_burn_rtokens, get_qty1_from_burn_rtokens
from ..kernels.reinvestment_math import calc_rmint_qty
from ..kernels.tick_math import MAX_TICK, MIN_TICK
from ..core.pool import Pool
from ..core.reinvestment import grow_fee_global, split_rmint

if TYPE_CHECKING:
    from .position_manager import PositionManager


def get_all_ticks(pool: Pool) -> List[int]:
    return pool.initialized_tick_list()


def get_ticks_in_range(pool: Pool, start_tick: int, length: int) -> List[int]:
    """
    Up to `length` initialized ticks starting at `start_tick` (0 means all).

    Returns an empty list when `start_tick` is not initialized.
    """
    initialized = pool.ticks.initialized
    if start_tick not in initialized:
        return []
    ticks = [start_tick]
    tick = start_tick
    while tick != MAX_TICK and (length == 0 or len(ticks) < length):
        tick = initialized.next(tick)
        ticks.append(tick)
    return ticks


def get_nearest_initialized_ticks(pool: Pool, tick: int) -> Tuple[int, int]:
    """
    ``(previous, next)`` initialized ticks around `tick`.

    For an initialized tick these are its neighbours; otherwise the closest
    initialized ticks below and above it.
    """
    initialized = pool.ticks.initialized
    if tick in initialized:
        return initialized.previous(tick), initialized.next(tick)
    previous = MIN_TICK
    following = initialized.next(previous)
    while following < tick:
        previous = following
        following = initialized.next(previous)
    return previous, following


def get_ticks_previous(pool: Pool, tick_lower: int, tick_upper: int) -> Tuple[int, int]:
    """Insertion hints for a position's two boundaries."""
    hints = []
    for tick in (tick_lower, tick_upper):
        if tick in pool.ticks.initialized:
            hints.append(tick)
        else:
            hints.append(get_nearest_initialized_ticks(pool, tick)[0])
    return hints[0], hints[1]


def _pending_fee_state(pool: Pool) -> Tuple[int, int]:
    """``(fee_growth_global, r_total_supply)`` as they would be after a settlement now."""
    s = pool.storage
    total_supply = pool.total_supply()
    fee_growth_global = s.fee_growth_global
    rmint = calc_rmint_qty(s.reinvest_l, s.reinvest_l_last, s.base_l, total_supply)
    if rmint != 0:
        _, lp_fee = split_rmint(rmint, pool.factory.config.government_fee_units)
        fee_growth_global = grow_fee_global(fee_growth_global, lp_fee, s.base_l)
    return fee_growth_global, total_supply + rmint


def get_total_rtokens_owed_to_position(manager: "PositionManager", pool: Pool, token_id: int) -> int:
    if token_id not in manager or manager.positions(token_id).pool != pool.address:
        raise PositionManagerError(ErrorKind.POOL_MISMATCH, f"token {token_id}")
    position = manager.positions(token_id)
    fee_growth_global, _ = _pending_fee_state(pool)
    fee_growth_inside = pool.ticks.get_fee_growth_inside(
        position.tick_lower, position.tick_upper, pool.storage.current_tick, fee_growth_global
    )
    accrued = mul_div_floor(
        position.liquidity, (fee_growth_inside - position.fee_growth_inside_last) % FEE_GROWTH_MOD, Q96
    )
    return position.rtoken_owed + accrued


def get_total_fees_owed_to_position(manager: "PositionManager", pool: Pool, token_id: int) -> Tuple[int, int]:
    """Token quantities the position's rTokens would redeem for at the current price."""
    rtoken_owed = get_total_rtokens_owed_to_position(manager, pool, token_id)
    _, total_supply = _pending_fee_state(pool)
    delta_l = mul_div_floor(rtoken_owed, pool.storage.reinvest_l, total_supply)
    sqrt_p = pool.storage.sqrt_p
    return get_qty0_from_burn_rtokens(sqrt_p, delta_l), get_qty1_from_burn_rtokens(sqrt_p, delta_l)
