"""
Position store keyed by (owner, tick_lower, tick_upper).

Each position remembers the fee growth inside its range at its last touch.
On every update the rTokens earned since then are

    owed = liquidity_before * (fee_growth_inside - fee_growth_inside_last) / 2**96

rounded down, with the growth difference taken modulo 2**256. The owed amount
accrues into `rtoken_owed` until swept with `collect`.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Dict, Tuple

from ..errors import ErrorKind, PreconditionError
from ..kernels.constants import FEE_GROWTH_MOD, Q96
from ..kernels.full_math import mul_div_floor
from ..kernels.liq_delta_math import apply_liquidity_delta
from .balances import Address


PositionKey = Tuple[Address, int, int]


@dataclass
class Position:
    liquidity: int = 0
    fee_growth_inside_last: int = 0
    rtoken_owed: int = 0


class PositionStore:
    def __init__(self) -> None:
        self._positions: Dict[PositionKey, Position] = {}

    def get(self, owner: Address, tick_lower: int, tick_upper: int) -> Position:
        position = self._positions.get((owner, tick_lower, tick_upper))
        return Position() if position is None else copy.copy(position)

    def update(
        self,
        owner: Address,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        fee_growth_inside: int,
    ) -> int:
        """Apply a signed liquidity delta and return the rTokens accrued by this touch."""
        if tick_lower >= tick_upper:
            raise PreconditionError(ErrorKind.INVALID_TICK_RANGE, f"{tick_lower} >= {tick_upper}")
        key = (owner, tick_lower, tick_upper)
        position = self._positions.get(key) or Position()
        if liquidity_delta < 0 and -liquidity_delta > position.liquidity:
            raise PreconditionError(
                ErrorKind.INSUFFICIENT_POSITION,
                f"position holds {position.liquidity}, removing {-liquidity_delta}",
            )

        growth_delta = (fee_growth_inside - position.fee_growth_inside_last) % FEE_GROWTH_MOD
        # a product too large for 256 bits is rejected as `denom <= prod1`
        rtoken_owed_delta = mul_div_floor(growth_delta, position.liquidity, Q96)

        position.liquidity = apply_liquidity_delta(position.liquidity, abs(liquidity_delta), liquidity_delta >= 0)
        position.fee_growth_inside_last = fee_growth_inside
        position.rtoken_owed += rtoken_owed_delta
        self._positions[key] = position
        return rtoken_owed_delta

    def collect(self, owner: Address, tick_lower: int, tick_upper: int) -> int:
        """Zero and return the position's accrued rTokens."""
        position = self._positions.get((owner, tick_lower, tick_upper))
        if position is None:
            return 0
        owed, position.rtoken_owed = position.rtoken_owed, 0
        return owed

    def snapshot(self) -> dict:
        return copy.deepcopy(self._positions)

    def restore(self, snapshot: dict) -> None:
        self._positions = copy.deepcopy(snapshot)
