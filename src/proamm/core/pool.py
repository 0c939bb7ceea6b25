"""
Pool state machine: the public mint/burn/swap/flash surface of one pool.

States::

    uninitialized --unlock_pool--> unlocked <--> locked (during a call)

Every mutating entry point runs inside ``Chain.atomic()`` and holds the
pool's reentrancy lock for its whole duration, callbacks included. A failing
call leaves the ledger, every pool and the oracle exactly as they were.

Token movements follow a pay-then-verify pattern: the pool sends what it owes,
invokes the caller's callback for what it is owed, then checks its own
balances rather than trusting the callback.
"""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Sequence, Tuple

from ..errors import ErrorKind, ForbiddenError, InsufficientPaymentError, PreconditionError
from ..kernels.constants import FEE_UNITS, MIN_LIQUIDITY, RES_96, SECONDS_PER_LIQUIDITY_MOD
from ..kernels.full_math import mul_div_floor
from ..kernels.liq_delta_math import apply_liquidity_delta
from ..kernels.qty_delta_math import (
    calc_required_qty0,
    calc_required_qty1,
    calc_unlock_qtys,
    get_qty0_from_burn_rtokens,
    get_qty1_from_burn_rtokens,
)
from ..kernels.safe_cast import to_uint128
from ..kernels.tick_math import MAX_TICK, MIN_TICK, get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio
from ..state.pools import PoolData
from ..state.positions import Position, PositionStore
from ..state.ticks import TickInfo, TickLedger
from .callbacks import FlashCallback, MintCallback, SwapCallback
from .chain import Chain
from .oracle import PoolOracle
from .reinvestment import sync_fee_growth, sync_seconds_per_liquidity
from .swap import run_swap

if TYPE_CHECKING:
    from .factory import Factory


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolState:
    sqrt_p: int
    current_tick: int
    nearest_current_tick: int
    locked: bool


@dataclass(frozen=True)
class LiquidityState:
    base_l: int
    reinvest_l: int
    reinvest_l_last: int


@dataclass(frozen=True)
class PositionChange:
    qty0: int
    qty1: int
    fee_growth_inside: int


class Pool:
    def __init__(
        self,
        *,
        chain: Chain,
        factory: "Factory",
        oracle: PoolOracle,
        address: str,
        token0: str,
        token1: str,
        swap_fee_units: int,
        tick_distance: int,
        max_tick_liquidity: int,
    ) -> None:
        if token0 >= token1:
            raise ValueError(f"Tokens must be in canonical order: {token0} < {token1}")
        self.chain = chain
        self.factory = factory
        self.oracle = oracle
        self.address = address
        self.token0 = token0
        self.token1 = token1
        self.swap_fee_units = swap_fee_units
        self.tick_distance = tick_distance
        self.max_tick_liquidity = max_tick_liquidity

        self.storage = PoolData()
        self.ticks = TickLedger()
        self.positions = PositionStore()
        chain.register(self)

    # -- journaling -----------------------------------------------------------

    def snapshot(self) -> tuple:
        return (copy.deepcopy(self.storage), self.ticks.snapshot(), self.positions.snapshot())

    def restore(self, snapshot: tuple) -> None:
        storage, ticks, positions = snapshot
        self.storage = copy.deepcopy(storage)
        self.ticks.restore(ticks)
        self.positions.restore(positions)

    # -- helpers --------------------------------------------------------------

    @contextmanager
    def _transaction(self, label: str) -> Iterator[None]:
        with self.chain.atomic(f"{label}@{self.address[:10]}"):
            if not self.storage.initialized:
                raise PreconditionError(ErrorKind.NOT_INITIALIZED, self.address)
            if self.storage.locked:
                raise PreconditionError(ErrorKind.LOCKED, self.address)
            self.storage.locked = True
            try:
                yield
            finally:
                self.storage.locked = False

    def _balance0(self) -> int:
        return self.chain.balance_of(self.token0, self.address)

    def _balance1(self) -> int:
        return self.chain.balance_of(self.token1, self.address)

    def mint_rtokens(self, recipient: str, qty: int) -> None:
        self.chain.ledger.mint(self.address, recipient, qty)

    def _settle_fees(self, update_reinvest_l_last: bool) -> int:
        config = self.factory.config
        settlement = sync_fee_growth(
            self.storage, self.total_supply(), config.government_fee_units, update_reinvest_l_last
        )
        if settlement.government_fee > 0:
            self.mint_rtokens(config.fee_to, settlement.government_fee)
        if settlement.lp_fee > 0:
            self.mint_rtokens(self.address, settlement.lp_fee)
        return settlement.fee_growth_global

    # -- initialization -------------------------------------------------------

    def unlock_pool(self, caller: MintCallback, initial_sqrt_p: int, data: Any = None) -> Tuple[int, int]:
        """
        Set the initial price and seed MIN_LIQUIDITY of reinvestment liquidity.

        The seed's token quantities are pulled from `caller` via
        `mint_callback`; the matching rTokens stay with the pool forever.
        """
        with self.chain.atomic(f"unlock@{self.address[:10]}"):
            if self.storage.initialized:
                raise PreconditionError(ErrorKind.ALREADY_INITIALIZED, self.address)
            qty0, qty1 = calc_unlock_qtys(initial_sqrt_p)
            initial_tick = get_tick_at_sqrt_ratio(initial_sqrt_p)
            now = self.chain.timestamp

            self.storage = PoolData(
                sqrt_p=initial_sqrt_p,
                current_tick=initial_tick,
                nearest_current_tick=MIN_TICK,
                locked=True,
                base_l=0,
                reinvest_l=MIN_LIQUIDITY,
                reinvest_l_last=MIN_LIQUIDITY,
                seconds_per_liquidity_update_time=now,
            )
            self.ticks = TickLedger()
            self.oracle.initialize_oracle(self.address, now)
            self.mint_rtokens(self.address, MIN_LIQUIDITY)

            balance0_before = self._balance0()
            balance1_before = self._balance1()
            caller.mint_callback(self, qty0, qty1, data)
            if self._balance0() < balance0_before + qty0:
                raise InsufficientPaymentError(ErrorKind.LACKING_QTY0, f"owed {qty0}")
            if self._balance1() < balance1_before + qty1:
                raise InsufficientPaymentError(ErrorKind.LACKING_QTY1, f"owed {qty1}")
            self.storage.locked = False

        logger.debug("unlocked pool %s at sqrt_p=%d tick=%d", self.address, initial_sqrt_p, initial_tick)
        return qty0, qty1

    # -- positions ------------------------------------------------------------

    def _check_ticks(self, tick_lower: int, tick_upper: int) -> None:
        if tick_lower >= tick_upper:
            raise PreconditionError(ErrorKind.INVALID_TICK_RANGE, f"{tick_lower} >= {tick_upper}")
        if tick_lower < MIN_TICK:
            raise PreconditionError(ErrorKind.INVALID_LOWER_TICK, str(tick_lower))
        if tick_upper > MAX_TICK:
            raise PreconditionError(ErrorKind.INVALID_UPPER_TICK, str(tick_upper))
        if tick_lower % self.tick_distance != 0 or tick_upper % self.tick_distance != 0:
            raise PreconditionError(
                ErrorKind.TICK_NOT_IN_DISTANCE, f"[{tick_lower}, {tick_upper}) / {self.tick_distance}"
            )

    def _tweak_position(
        self,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        ticks_previous: Sequence[int],
        liquidity_delta: int,
    ) -> PositionChange:
        """Apply a signed liquidity delta to a position and return the token quantities."""
        self._check_ticks(tick_lower, tick_upper)
        storage = self.storage
        current_tick = storage.current_tick
        is_add = liquidity_delta > 0
        qty = abs(liquidity_delta)
        if not is_add and self.positions.get(owner, tick_lower, tick_upper).liquidity < qty:
            raise PreconditionError(ErrorKind.INSUFFICIENT_POSITION, f"{owner} [{tick_lower}, {tick_upper})")

        fee_growth_global = self._settle_fees(update_reinvest_l_last=True)
        seconds_per_liquidity_global = sync_seconds_per_liquidity(storage, self.chain.timestamp)

        lower = self.ticks.update_tick(
            tick_lower, current_tick, liquidity_delta, fee_growth_global,
            seconds_per_liquidity_global, False, self.max_tick_liquidity,
        )
        upper = self.ticks.update_tick(
            tick_upper, current_tick, liquidity_delta, fee_growth_global,
            seconds_per_liquidity_global, True, self.max_tick_liquidity,
        )
        fee_growth_inside = self.ticks.get_fee_growth_inside(tick_lower, tick_upper, current_tick, fee_growth_global)

        for tick, update, hint in ((tick_lower, lower, ticks_previous[0]), (tick_upper, upper, ticks_previous[1])):
            if not update.flipped:
                continue
            if is_add:
                storage.nearest_current_tick = self.ticks.link(
                    tick, hint, current_tick, storage.nearest_current_tick
                )
            else:
                self.ticks.clear(tick)
                storage.nearest_current_tick = self.ticks.unlink(tick, storage.nearest_current_tick)

        self.positions.update(owner, tick_lower, tick_upper, liquidity_delta, fee_growth_inside)
        fees_claimable = self.positions.collect(owner, tick_lower, tick_upper)
        if fees_claimable != 0:
            self.chain.transfer(self.address, self.address, owner, fees_claimable)

        lower_sqrt_p = get_sqrt_ratio_at_tick(tick_lower)
        upper_sqrt_p = get_sqrt_ratio_at_tick(tick_upper)
        if current_tick < tick_lower:
            return PositionChange(calc_required_qty0(lower_sqrt_p, upper_sqrt_p, qty, is_add), 0, fee_growth_inside)
        if current_tick >= tick_upper:
            return PositionChange(0, calc_required_qty1(lower_sqrt_p, upper_sqrt_p, qty, is_add), fee_growth_inside)

        qty0 = calc_required_qty0(storage.sqrt_p, upper_sqrt_p, qty, is_add)
        qty1 = calc_required_qty1(lower_sqrt_p, storage.sqrt_p, qty, is_add)
        self.oracle.write(self.address, self.chain.timestamp, current_tick, storage.base_l)
        storage.base_l = apply_liquidity_delta(storage.base_l, qty, is_add)
        return PositionChange(qty0, qty1, fee_growth_inside)

    def mint(
        self,
        caller: MintCallback,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        ticks_previous: Sequence[int],
        qty: int,
        data: Any = None,
    ) -> PositionChange:
        """
        Add `qty` liquidity to ``(recipient, tick_lower, tick_upper)``.

        `ticks_previous` holds one hint per boundary: an initialized tick at or
        below it, ideally its immediate predecessor.
        """
        with self._transaction("mint"):
            if not self.factory.config.is_whitelisted(caller.address):
                raise ForbiddenError(f"{caller.address} is not a whitelisted manager")
            if qty == 0:
                raise PreconditionError(ErrorKind.ZERO_QTY)
            to_uint128(qty)
            change = self._tweak_position(recipient, tick_lower, tick_upper, ticks_previous, qty)

            balance0_before = self._balance0()
            balance1_before = self._balance1()
            caller.mint_callback(self, change.qty0, change.qty1, data)
            if change.qty0 > 0 and self._balance0() < balance0_before + change.qty0:
                raise InsufficientPaymentError(ErrorKind.LACKING_QTY0, f"owed {change.qty0}")
            if change.qty1 > 0 and self._balance1() < balance1_before + change.qty1:
                raise InsufficientPaymentError(ErrorKind.LACKING_QTY1, f"owed {change.qty1}")

        logger.debug(
            "mint %s [%d, %d) qty=%d -> (%d, %d)",
            recipient, tick_lower, tick_upper, qty, change.qty0, change.qty1,
        )
        return change

    def burn(self, caller: Any, tick_lower: int, tick_upper: int, qty: int) -> PositionChange:
        """Remove `qty` liquidity from the caller's position and pay out both tokens.

        Returned quantities are positive amounts sent to the caller.
        """
        with self._transaction("burn"):
            if qty == 0:
                raise PreconditionError(ErrorKind.ZERO_QTY)
            to_uint128(qty)
            change = self._tweak_position(caller.address, tick_lower, tick_upper, (0, 0), -qty)
            qty0 = -change.qty0
            qty1 = -change.qty1
            if qty0 > 0:
                self.chain.transfer(self.token0, self.address, caller.address, qty0)
            if qty1 > 0:
                self.chain.transfer(self.token1, self.address, caller.address, qty1)

        logger.debug("burn %s [%d, %d) qty=%d -> (%d, %d)", caller.address, tick_lower, tick_upper, qty, qty0, qty1)
        return PositionChange(qty0, qty1, change.fee_growth_inside)

    def burn_rtokens(self, caller: Any, qty: int, is_logical_burn: bool = False) -> Tuple[int, int]:
        """
        Redeem `qty` rTokens for their share of reinvestment liquidity.

        A logical burn destroys the rTokens without paying anything out.
        """
        with self._transaction("burn_rtokens"):
            if is_logical_burn:
                self.chain.ledger.burn(self.address, caller.address, qty)
                qty0 = qty1 = 0
            else:
                storage = self.storage
                self._settle_fees(update_reinvest_l_last=False)
                # supply after settlement, before this burn
                delta_l = mul_div_floor(qty, storage.reinvest_l, self.total_supply())
                storage.reinvest_l = to_uint128(storage.reinvest_l - delta_l)
                storage.reinvest_l_last = storage.reinvest_l
                qty0 = get_qty0_from_burn_rtokens(storage.sqrt_p, delta_l)
                qty1 = get_qty1_from_burn_rtokens(storage.sqrt_p, delta_l)

                self.chain.ledger.burn(self.address, caller.address, qty)
                if qty0 > 0:
                    self.chain.transfer(self.token0, self.address, caller.address, qty0)
                if qty1 > 0:
                    self.chain.transfer(self.token1, self.address, caller.address, qty1)

        logger.debug(
            "burn_rtokens %s qty=%d logical=%s -> (%d, %d)", caller.address, qty, is_logical_burn, qty0, qty1
        )
        return qty0, qty1

    # -- trading --------------------------------------------------------------

    def swap(
        self,
        caller: SwapCallback,
        recipient: str,
        swap_qty: int,
        is_token0: bool,
        limit_sqrt_p: int,
        data: Any = None,
    ) -> Tuple[int, int]:
        """
        Swap against the pool.

        `swap_qty` > 0 is an exact input of the specified token, < 0 an exact
        output of it; `is_token0` names the specified token. Returns
        ``(delta_qty0, delta_qty1)`` from the pool's view: positive is owed to
        the pool, negative is sent to `recipient`.
        """
        with self._transaction("swap"):
            outcome = run_swap(self, swap_qty, is_token0, limit_sqrt_p)
            delta_qty0, delta_qty1 = outcome.delta_qty0, outcome.delta_qty1

            if delta_qty0 > 0:
                if delta_qty1 < 0:
                    self.chain.transfer(self.token1, self.address, recipient, -delta_qty1)
                balance0_before = self._balance0()
                caller.swap_callback(self, delta_qty0, delta_qty1, data)
                if self._balance0() < balance0_before + delta_qty0:
                    raise InsufficientPaymentError(ErrorKind.LACKING_DELTA_QTY0, f"owed {delta_qty0}")
            else:
                if delta_qty0 < 0:
                    self.chain.transfer(self.token0, self.address, recipient, -delta_qty0)
                balance1_before = self._balance1()
                caller.swap_callback(self, delta_qty0, delta_qty1, data)
                if self._balance1() < balance1_before + delta_qty1:
                    raise InsufficientPaymentError(ErrorKind.LACKING_DELTA_QTY1, f"owed {delta_qty1}")

        logger.debug(
            "swap %s qty=%d token0=%s -> (%d, %d) tick=%d crossed=%d",
            recipient, swap_qty, is_token0, delta_qty0, delta_qty1, outcome.current_tick, outcome.ticks_crossed,
        )
        return delta_qty0, delta_qty1

    def flash(self, caller: FlashCallback, recipient: str, qty0: int, qty1: int, data: Any = None) -> Tuple[int, int]:
        """
        Lend `qty0`/`qty1` to `recipient` for the duration of the callback.

        The fee is charged only while a protocol fee recipient is configured;
        everything repaid above the principal goes to that recipient.
        """
        with self._transaction("flash"):
            fee_to = self.factory.config.fee_to
            fee_qty0 = fee_qty1 = 0
            if fee_to is not None:
                fee_qty0 = qty0 * self.swap_fee_units // FEE_UNITS
                fee_qty1 = qty1 * self.swap_fee_units // FEE_UNITS

            balance0_before = self._balance0()
            balance1_before = self._balance1()
            if qty0 > 0:
                self.chain.transfer(self.token0, self.address, recipient, qty0)
            if qty1 > 0:
                self.chain.transfer(self.token1, self.address, recipient, qty1)

            caller.flash_callback(self, fee_qty0, fee_qty1, data)

            balance0_after = self._balance0()
            balance1_after = self._balance1()
            if balance0_after < balance0_before + fee_qty0:
                raise InsufficientPaymentError(ErrorKind.LACKING_FEE_QTY0, f"owed {fee_qty0}")
            if balance1_after < balance1_before + fee_qty1:
                raise InsufficientPaymentError(ErrorKind.LACKING_FEE_QTY1, f"owed {fee_qty1}")

            paid0 = balance0_after - balance0_before
            paid1 = balance1_after - balance1_before
            if fee_to is not None:
                if paid0 > 0:
                    self.chain.transfer(self.token0, self.address, fee_to, paid0)
                if paid1 > 0:
                    self.chain.transfer(self.token1, self.address, fee_to, paid1)

        logger.debug("flash %s (%d, %d) paid (%d, %d)", recipient, qty0, qty1, paid0, paid1)
        return paid0, paid1

    # -- views ----------------------------------------------------------------

    def get_pool_state(self) -> PoolState:
        s = self.storage
        return PoolState(s.sqrt_p, s.current_tick, s.nearest_current_tick, s.locked)

    def get_liquidity_state(self) -> LiquidityState:
        s = self.storage
        return LiquidityState(s.base_l, s.reinvest_l, s.reinvest_l_last)

    def get_fee_growth_global(self) -> int:
        return self.storage.fee_growth_global

    def get_seconds_per_liquidity_data(self) -> Tuple[int, int]:
        """``(seconds_per_liquidity_global, last_update_time)``."""
        s = self.storage
        return s.seconds_per_liquidity_global, s.seconds_per_liquidity_update_time

    def get_seconds_per_liquidity_inside(self, tick_lower: int, tick_upper: int) -> int:
        if tick_lower > tick_upper:
            raise PreconditionError(ErrorKind.BAD_TICK_RANGE, f"{tick_lower} > {tick_upper}")
        s = self.storage
        inside = self.ticks.get_seconds_per_liquidity_inside(
            tick_lower, tick_upper, s.current_tick, s.seconds_per_liquidity_global
        )
        if tick_lower <= s.current_tick < tick_upper and s.base_l != 0:
            elapsed = self.chain.timestamp - s.seconds_per_liquidity_update_time
            inside = (inside + (elapsed << RES_96) // s.base_l) % SECONDS_PER_LIQUIDITY_MOD
        return inside

    def get_positions(self, owner: str, tick_lower: int, tick_upper: int) -> Position:
        return self.positions.get(owner, tick_lower, tick_upper)

    def get_fee_growth_inside(self, tick_lower: int, tick_upper: int) -> int:
        s = self.storage
        return self.ticks.get_fee_growth_inside(tick_lower, tick_upper, s.current_tick, s.fee_growth_global)

    def tick(self, tick: int) -> TickInfo:
        return self.ticks.get(tick)

    def initialized_ticks(self, tick: int) -> Tuple[int, int]:
        """``(previous, next)`` neighbours of an initialized tick."""
        return self.ticks.initialized.previous(tick), self.ticks.initialized.next(tick)

    def initialized_tick_list(self) -> List[int]:
        return list(self.ticks.initialized_ticks())

    def balance_of(self, holder: str) -> int:
        """rToken balance of `holder`."""
        return self.chain.ledger.balance_of(holder, self.address)

    def total_supply(self) -> int:
        """rToken total supply."""
        return self.chain.ledger.total_supply(self.address)

    def observe(self, seconds_agos: Sequence[int]) -> List[int]:
        return self.oracle.observe(self.address, self.chain.timestamp, seconds_agos, self.storage.current_tick)

    def __repr__(self) -> str:
        s = self.storage
        return (
            f"Pool({self.address[:10]}..., fee={self.swap_fee_units}, "
            f"sqrt_p={s.sqrt_p}, tick={s.current_tick}, base_l={s.base_l}, reinvest_l={s.reinvest_l})"
        )
