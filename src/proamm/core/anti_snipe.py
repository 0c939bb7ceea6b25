"""
Anti-snipe fee vesting.

A liquidity provider who adds a large position just before a big trade and
removes it right after would capture most of that trade's fees. To blunt this,
fees earned by a position vest linearly over `vesting_period` seconds
measured from the position's (liquidity-weighted) lock time; whatever has not
vested when liquidity is removed is forfeited pro rata and burned.

Two strategies share one capability, `update`:
- `ImmediateRelease` (vesting period 0): every fee is claimable at once.
- `LinearVesting`: fees unlock linearly; see `LinearVesting.update`.

All proportions are in basis points (1 / 10_000).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Protocol, Tuple

from ..kernels.constants import BPS
from ..kernels.full_math import div_ceiling


@dataclass(frozen=True)
class VestingRecord:
    last_action_time: int = 0
    lock_time: int = 0
    unlock_time: int = 0
    fees_locked: int = 0

    def __post_init__(self) -> None:
        for name in ("last_action_time", "lock_time", "unlock_time", "fees_locked"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative: {getattr(self, name)}")


def initialize(current_time: int) -> VestingRecord:
    return VestingRecord(current_time, current_time, current_time, 0)


@dataclass(frozen=True)
class VestingUpdate:
    record: VestingRecord
    fees_claimable: int
    fees_burnable: int


def calc_fee_proportions(
    current_fees: int,
    next_fees: int,
    current_claimable_bps: int,
    next_claimable_bps: int,
) -> Tuple[int, int]:
    """Return ``(fees_locked_new, fees_claimable)`` for two fee buckets vesting at different rates."""
    total_fees = current_fees + next_fees
    fees_claimable = (current_claimable_bps * current_fees + next_claimable_bps * next_fees) // BPS
    return total_fees - fees_claimable, fees_claimable


class VestingStrategy(Protocol):
    def update(
        self,
        record: VestingRecord,
        current_liquidity: int,
        liquidity_delta: int,
        current_time: int,
        is_add_liquidity: bool,
        fees_since_last_action: int,
    ) -> VestingUpdate: ...


class ImmediateRelease:
    """Everything earned, and anything still locked, is claimable now."""

    def update(
        self,
        record: VestingRecord,
        current_liquidity: int,
        liquidity_delta: int,
        current_time: int,
        is_add_liquidity: bool,
        fees_since_last_action: int,
    ) -> VestingUpdate:
        claimable = record.fees_locked + fees_since_last_action
        return VestingUpdate(replace(record, fees_locked=0), claimable, 0)


@dataclass(frozen=True)
class LinearVesting:
    vesting_period: int

    def __post_init__(self) -> None:
        if self.vesting_period <= 0:
            raise ValueError(f"vesting_period must be positive: {self.vesting_period}")

    def update(
        self,
        record: VestingRecord,
        current_liquidity: int,
        liquidity_delta: int,
        current_time: int,
        is_add_liquidity: bool,
        fees_since_last_action: int,
    ) -> VestingUpdate:
        """
        Split locked and newly earned fees into claimable and locked parts.

        - New fees vest by time since `lock_time` (the whole life of the
          position counts, not only the time since the last action).
        - Previously locked fees vest by time since `last_action_time` towards
          `unlock_time`, since earlier vesting was already paid out.
        - `unlock_time` becomes the fee-weighted average of both buckets'
          unlock times.
        - Adding liquidity moves `lock_time` to the liquidity-weighted average
          of the old lock time (capped to one vesting period ago) and now.
        - Removing liquidity forfeits the same share of locked fees.
        """
        period = self.vesting_period
        since_last_action_bps = min(BPS, (current_time - record.lock_time) * BPS // period)
        if record.unlock_time <= record.last_action_time:
            vested_bps = BPS
        else:
            vested_bps = min(
                BPS,
                (current_time - record.last_action_time) * BPS // (record.unlock_time - record.last_action_time),
            )

        fees_locked_before = record.fees_locked
        fees_locked, fees_claimable = calc_fee_proportions(
            fees_locked_before, fees_since_last_action, vested_bps, since_last_action_bps
        )
        if fees_locked == 0:
            unlock_time = current_time
        else:
            unlock_time = (
                (record.lock_time + period) * fees_since_last_action * (BPS - since_last_action_bps)
                + record.unlock_time * fees_locked_before * (BPS - vested_bps)
            ) // (fees_locked * BPS)

        lock_time = record.lock_time
        fees_burnable = 0
        if is_add_liquidity:
            updated_liquidity = current_liquidity + liquidity_delta
            lock_time = div_ceiling(
                max(record.lock_time, current_time - period) * current_liquidity + current_time * liquidity_delta,
                updated_liquidity,
            )
        elif fees_locked > 0:
            fees_burnable = fees_locked * liquidity_delta // current_liquidity
            fees_locked -= fees_burnable

        return VestingUpdate(
            VestingRecord(
                last_action_time=current_time,
                lock_time=lock_time,
                unlock_time=unlock_time,
                fees_locked=fees_locked,
            ),
            fees_claimable,
            fees_burnable,
        )


def strategy_for(vesting_period: int) -> VestingStrategy:
    if vesting_period < 0:
        raise ValueError(f"vesting_period must be non-negative: {vesting_period}")
    if vesting_period == 0:
        return ImmediateRelease()
    return LinearVesting(vesting_period)
