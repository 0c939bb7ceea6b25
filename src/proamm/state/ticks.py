"""
Tick ledger: per-tick liquidity and "outside" accumulators plus the linked
list of initialized ticks.

Outside accumulators record growth on the side of the tick away from the
current price. By convention all growth before a tick is initialized happens
below it, so a tick initialized at or below the current tick is seeded with
the current globals. Inside growth for a range is then derived by
subtraction, modulo the accumulator width, which keeps it correct across
wrap-around.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Dict, Iterator, Tuple

from ..errors import ErrorKind, PreconditionError, TickListError
from ..kernels.constants import FEE_GROWTH_MOD, MAX_TICK_TRAVEL, SECONDS_PER_LIQUIDITY_MOD
from ..kernels.liq_delta_math import apply_liquidity_delta
from ..kernels.safe_cast import to_int128
from ..kernels.tick_math import MAX_TICK, MIN_TICK
from .linked_list import InitializedTicks


@dataclass
class TickInfo:
    liquidity_gross: int = 0
    liquidity_net: int = 0
    fee_growth_outside: int = 0
    seconds_per_liquidity_outside: int = 0


@dataclass(frozen=True)
class TickUpdate:
    flipped: bool
    fee_growth_outside: int
    seconds_per_liquidity_outside: int


class TickLedger:
    def __init__(self) -> None:
        self._ticks: Dict[int, TickInfo] = {}
        self.initialized = InitializedTicks(MIN_TICK, MAX_TICK)

    def get(self, tick: int) -> TickInfo:
        """Copy of the stored record; an all-zero record if the tick is unset."""
        info = self._ticks.get(tick)
        return TickInfo() if info is None else copy.copy(info)

    def update_tick(
        self,
        tick: int,
        current_tick: int,
        liquidity_delta: int,
        fee_growth_global: int,
        seconds_per_liquidity_global: int,
        is_upper: bool,
        max_liquidity: int,
    ) -> TickUpdate:
        """
        Apply a signed liquidity delta at a position boundary.

        Returns whether the tick flipped between initialized and
        uninitialized, and its outside accumulators as seen before any clear.
        """
        info = self._ticks.get(tick) or TickInfo()
        gross_before = info.liquidity_gross
        if gross_before == 0 and liquidity_delta == 0:
            raise PreconditionError(ErrorKind.INVALID_LIQUIDITY, f"tick {tick}")
        if liquidity_delta == 0:
            return TickUpdate(False, info.fee_growth_outside, info.seconds_per_liquidity_outside)

        gross_after = apply_liquidity_delta(gross_before, abs(liquidity_delta), liquidity_delta > 0)
        if gross_after > max_liquidity:
            raise PreconditionError(ErrorKind.MAX_LIQUIDITY, f"tick {tick}: {gross_after} > {max_liquidity}")

        if gross_before == 0 and tick <= current_tick:
            info.fee_growth_outside = fee_growth_global
            info.seconds_per_liquidity_outside = seconds_per_liquidity_global

        info.liquidity_gross = gross_after
        info.liquidity_net = to_int128(info.liquidity_net + (-liquidity_delta if is_upper else liquidity_delta))
        self._ticks[tick] = info
        return TickUpdate(
            (gross_before == 0) != (gross_after == 0),
            info.fee_growth_outside,
            info.seconds_per_liquidity_outside,
        )

    def clear(self, tick: int) -> None:
        self._ticks.pop(tick, None)

    def link(self, tick: int, tick_previous: int, current_tick: int, nearest_current_tick: int) -> int:
        """
        Insert a newly initialized tick, starting the search from the hint
        `tick_previous`. Returns the updated nearest initialized tick at or
        below the current tick.

        The hint may be stale by up to MAX_TICK_TRAVEL interleaved inserts; a
        hint that is no longer initialized is rejected.
        """
        if tick in (MIN_TICK, MAX_TICK):
            return nearest_current_tick
        if tick_previous not in self.initialized:
            raise TickListError(ErrorKind.PREVIOUS_TICK_REMOVED, f"hint {tick_previous}")

        next_tick = self.initialized.next(tick_previous)
        iteration = 0
        while next_tick <= tick and iteration < MAX_TICK_TRAVEL:
            tick_previous = next_tick
            next_tick = self.initialized.next(tick_previous)
            iteration += 1
        self.initialized.insert(tick, tick_previous, next_tick)

        if nearest_current_tick < tick <= current_tick:
            return tick
        return nearest_current_tick

    def unlink(self, tick: int, nearest_current_tick: int) -> int:
        if tick in (MIN_TICK, MAX_TICK):
            return nearest_current_tick
        below = self.initialized.remove(tick)
        return below if tick == nearest_current_tick else nearest_current_tick

    def cross_tick(
        self,
        tick: int,
        fee_growth_global: int,
        seconds_per_liquidity_global: int,
        will_up_tick: bool,
    ) -> Tuple[int, int]:
        """
        Cross `tick` in the given direction.

        Flips its outside accumulators and returns ``(liquidity_delta,
        next_tick)``: the signed change to base liquidity and the next
        initialized tick in the direction of travel.
        """
        info = self._ticks.get(tick) or TickInfo()
        info.fee_growth_outside = (fee_growth_global - info.fee_growth_outside) % FEE_GROWTH_MOD
        info.seconds_per_liquidity_outside = (
            seconds_per_liquidity_global - info.seconds_per_liquidity_outside
        ) % SECONDS_PER_LIQUIDITY_MOD
        self._ticks[tick] = info

        if will_up_tick:
            return info.liquidity_net, self.initialized.next(tick)
        return -info.liquidity_net, self.initialized.previous(tick)

    def get_fee_growth_inside(self, tick_lower: int, tick_upper: int, current_tick: int, fee_growth_global: int) -> int:
        lower = self._ticks.get(tick_lower) or TickInfo()
        upper = self._ticks.get(tick_upper) or TickInfo()
        if current_tick < tick_lower:
            inside = lower.fee_growth_outside - upper.fee_growth_outside
        elif current_tick >= tick_upper:
            inside = upper.fee_growth_outside - lower.fee_growth_outside
        else:
            inside = fee_growth_global - lower.fee_growth_outside - upper.fee_growth_outside
        return inside % FEE_GROWTH_MOD

    def get_seconds_per_liquidity_inside(
        self, tick_lower: int, tick_upper: int, current_tick: int, seconds_per_liquidity_global: int
    ) -> int:
        lower = self._ticks.get(tick_lower) or TickInfo()
        upper = self._ticks.get(tick_upper) or TickInfo()
        if current_tick < tick_lower:
            inside = lower.seconds_per_liquidity_outside - upper.seconds_per_liquidity_outside
        elif current_tick >= tick_upper:
            inside = upper.seconds_per_liquidity_outside - lower.seconds_per_liquidity_outside
        else:
            inside = (
                seconds_per_liquidity_global
                - lower.seconds_per_liquidity_outside
                - upper.seconds_per_liquidity_outside
            )
        return inside % SECONDS_PER_LIQUIDITY_MOD

    def initialized_ticks(self) -> Iterator[int]:
        """Initialized ticks in ascending order, sentinels included."""
        return iter(self.initialized)

    def snapshot(self) -> tuple:
        return copy.deepcopy((self._ticks, self.initialized))

    def restore(self, snapshot: tuple) -> None:
        self._ticks, self.initialized = copy.deepcopy(snapshot)
