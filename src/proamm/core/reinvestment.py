"""
Reinvestment accounting: turning accrued fee liquidity into rTokens.

Swap fees grow `reinvest_l` continuously. rTokens for that growth are only
minted at settlement points: every mint/burn (`sync_fee_growth`) and every
swap that crosses at least one initialized tick (`SwapFeeCache`, flushed once
at the end of the swap). Each settlement:

1. mints ``calc_rmint_qty(...)`` new rTokens,
2. diverts ``government_fee_units / FEE_UNITS`` of them to the protocol fee
   recipient and keeps the rest in the pool on behalf of positions,
3. grows `fee_growth_global` by the LP share per unit of base liquidity,
4. records ``reinvest_l_last = reinvest_l``.

The protocol fee configuration is read once per settlement.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..kernels.constants import FEE_GROWTH_MOD, FEE_UNITS, Q96, RES_96, SECONDS_PER_LIQUIDITY_MOD
from ..kernels.full_math import mul_div_floor
from ..kernels.reinvestment_math import calc_rmint_qty
from ..state.pools import PoolData


@dataclass(frozen=True)
class FeeSettlement:
    government_fee: int
    lp_fee: int
    fee_growth_global: int


def split_rmint(rmint: int, government_fee_units: int) -> tuple[int, int]:
    """Return ``(government_fee, lp_fee)``; the protocol share rounds down."""
    government_fee = rmint * government_fee_units // FEE_UNITS
    return government_fee, rmint - government_fee


def grow_fee_global(fee_growth_global: int, lp_fee: int, base_l: int) -> int:
    return (fee_growth_global + mul_div_floor(lp_fee, Q96, base_l)) % FEE_GROWTH_MOD


def sync_fee_growth(
    storage: PoolData,
    r_total_supply: int,
    government_fee_units: int,
    update_reinvest_l_last: bool,
) -> FeeSettlement:
    """Settle fees accrued since the last settlement into `storage`.

    The caller mints the returned government and LP shares.
    """
    rmint = calc_rmint_qty(storage.reinvest_l, storage.reinvest_l_last, storage.base_l, r_total_supply)
    government_fee = lp_fee = 0
    if rmint != 0:
        government_fee, lp_fee = split_rmint(rmint, government_fee_units)
        # base_l is non-zero here, otherwise nothing would be minted
        storage.fee_growth_global = grow_fee_global(storage.fee_growth_global, lp_fee, storage.base_l)
    if update_reinvest_l_last:
        storage.reinvest_l_last = storage.reinvest_l
    return FeeSettlement(government_fee, lp_fee, storage.fee_growth_global)


def sync_seconds_per_liquidity(storage: PoolData, now: int) -> int:
    """Bring the seconds-per-liquidity accumulator up to `now`."""
    elapsed = now - storage.seconds_per_liquidity_update_time
    if elapsed > 0:
        storage.seconds_per_liquidity_update_time = now
        if storage.base_l > 0:
            storage.seconds_per_liquidity_global = (
                storage.seconds_per_liquidity_global + (elapsed << RES_96) // storage.base_l
            ) % SECONDS_PER_LIQUIDITY_MOD
    return storage.seconds_per_liquidity_global


@dataclass
class SwapFeeCache:
    """
    Accumulators loaded on the first tick cross of a swap.

    Values are settled per crossed tick against the running rToken supply and
    minted in one go when the swap finishes.
    """
    r_total_supply: int
    reinvest_l_last: int
    fee_growth_global: int
    seconds_per_liquidity_global: int
    fee_to: Optional[str]
    government_fee_units: int
    government_fee: int = 0
    lp_fee: int = 0

    def accrue(self, reinvest_l: int, base_l: int) -> None:
        rmint = calc_rmint_qty(reinvest_l, self.reinvest_l_last, base_l, self.r_total_supply)
        if rmint != 0:
            self.r_total_supply += rmint
            government_fee, lp_fee = split_rmint(rmint, self.government_fee_units)
            self.government_fee += government_fee
            self.lp_fee += lp_fee
            self.fee_growth_global = grow_fee_global(self.fee_growth_global, lp_fee, base_l)
        self.reinvest_l_last = reinvest_l
