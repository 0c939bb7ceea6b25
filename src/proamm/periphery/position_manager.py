"""
Position manager: owns pool positions on behalf of users.

Every managed position is a token id mapping to one range in one pool. In the
pool itself all of them are aggregated under the manager's address, so the
manager keeps its own per-token accounting:

- ``fee_growth_inside_last`` and ``rtoken_owed`` per token, mirroring the pool's
  per-position bookkeeping,
- a `VestingRecord` per token; fees earned between two actions go through the
  factory's vesting strategy, and fees forfeited on removal are logically
  burned in the pool.

rTokens the pool sweeps to the manager on every touch are held by the manager
until the token's owner redeems them with `burn_rtokens`.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.anti_snipe import VestingRecord, initialize, strategy_for
from ..core.chain import Chain
from ..core.factory import Factory
from ..core.pool import Pool
from ..errors import ErrorKind, PositionManagerError, PreconditionError
from ..kernels.constants import FEE_GROWTH_MOD, Q96
from ..kernels.full_math import mul_div_floor
from ..kernels.liquidity_math import get_liquidity_from_qties
from ..kernels.tick_math import get_sqrt_ratio_at_tick
from .ticks_reader import get_ticks_previous


logger = logging.getLogger(__name__)


@dataclass
class ManagedPosition:
    owner: str
    pool: str
    tick_lower: int
    tick_upper: int
    liquidity: int = 0
    fee_growth_inside_last: int = 0
    rtoken_owed: int = 0
    vesting: VestingRecord = field(default_factory=VestingRecord)


class PositionManager:
    def __init__(self, factory: Factory, chain: Chain, address: str = "0x" + "b0" * 20) -> None:
        self.factory = factory
        self.chain = chain
        self.address = address
        self.next_token_id = 1
        self._positions: Dict[int, ManagedPosition] = {}
        self._pools: Dict[str, Pool] = {}
        chain.register(self)

    # -- journaling -----------------------------------------------------------

    def snapshot(self) -> tuple:
        return self.next_token_id, copy.deepcopy(self._positions), dict(self._pools)

    def restore(self, snapshot: tuple) -> None:
        next_token_id, positions, pools = snapshot
        self.next_token_id = next_token_id
        self._positions = copy.deepcopy(positions)
        self._pools = dict(pools)

    # -- callbacks ------------------------------------------------------------

    def mint_callback(self, pool: Pool, qty0: int, qty1: int, data: Any) -> None:
        """Pay what `pool` is owed out of the payer's balance; `data` is the payer."""
        if self.factory.get_pool(pool.token0, pool.token1, pool.swap_fee_units) is not pool:
            raise PositionManagerError(ErrorKind.INVALID_CALLBACK_SENDER, pool.address)
        if qty0 > 0:
            self.chain.transfer(pool.token0, data, pool.address, qty0)
        if qty1 > 0:
            self.chain.transfer(pool.token1, data, pool.address, qty1)

    # -- helpers --------------------------------------------------------------

    def _get_pool(self, token0: str, token1: str, fee: int) -> Pool:
        if token0 >= token1:
            raise PreconditionError(ErrorKind.INVALID_TOKEN_ORDER, f"{token0} >= {token1}")
        pool = self.factory.get_pool(token0, token1, fee)
        if pool is None:
            raise PreconditionError(ErrorKind.UNKNOWN_POOL, f"{token0}/{token1}/{fee}")
        return pool

    def _require_position(self, token_id: int) -> ManagedPosition:
        position = self._positions.get(token_id)
        if position is None:
            raise PositionManagerError(ErrorKind.INVALID_TOKEN_ID, str(token_id))
        return position

    def _require_owner(self, sender: str, token_id: int) -> ManagedPosition:
        position = self._require_position(token_id)
        if position.owner != sender:
            raise PositionManagerError(ErrorKind.NOT_OWNER, f"{sender} does not own token {token_id}")
        return position

    def _accrue(
        self,
        position: ManagedPosition,
        fee_growth_inside: int,
        liquidity_delta: int,
        is_add: bool,
    ) -> Tuple[int, int]:
        """Vest fees earned since the last action; returns ``(claimable, burnable)``."""
        growth = (fee_growth_inside - position.fee_growth_inside_last) % FEE_GROWTH_MOD
        fees = mul_div_floor(position.liquidity, growth, Q96)
        strategy = strategy_for(self.factory.config.vesting_period)
        update = strategy.update(
            position.vesting,
            position.liquidity,
            liquidity_delta,
            self.chain.timestamp,
            is_add,
            fees,
        )
        position.vesting = update.record
        position.rtoken_owed += update.fees_claimable
        position.fee_growth_inside_last = fee_growth_inside
        return update.fees_claimable, update.fees_burnable

    def _pay_out(self, pool: Pool, recipient: str, qty0: int, qty1: int) -> None:
        if qty0 > 0:
            self.chain.transfer(pool.token0, self.address, recipient, qty0)
        if qty1 > 0:
            self.chain.transfer(pool.token1, self.address, recipient, qty1)

    # -- pools ----------------------------------------------------------------

    def create_and_unlock_pool_if_necessary(
        self, payer: str, token0: str, token1: str, fee: int, initial_sqrt_p: int
    ) -> Pool:
        with self.chain.atomic("create_and_unlock"):
            if token0 >= token1:
                raise PreconditionError(ErrorKind.INVALID_TOKEN_ORDER, f"{token0} >= {token1}")
            pool = self.factory.get_pool(token0, token1, fee)
            if pool is None:
                pool = self.factory.create_pool(token0, token1, fee)
            if not pool.storage.initialized:
                pool.unlock_pool(self, initial_sqrt_p, payer)
        return pool

    # -- positions ------------------------------------------------------------

    def mint(
        self,
        payer: str,
        token0: str,
        token1: str,
        fee: int,
        tick_lower: int,
        tick_upper: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int = 0,
        amount1_min: int = 0,
        recipient: Optional[str] = None,
        ticks_previous: Optional[Sequence[int]] = None,
    ) -> Tuple[int, int, int, int]:
        """
        Open a new position funded by `payer`.

        Returns ``(token_id, liquidity, qty0, qty1)``. Without explicit
        `ticks_previous` the insertion hints are read from the pool.
        """
        with self.chain.atomic("manager.mint"):
            pool = self._get_pool(token0, token1, fee)
            liquidity = get_liquidity_from_qties(
                pool.storage.sqrt_p,
                get_sqrt_ratio_at_tick(tick_lower),
                get_sqrt_ratio_at_tick(tick_upper),
                amount0_desired,
                amount1_desired,
            )
            if ticks_previous is None:
                ticks_previous = get_ticks_previous(pool, tick_lower, tick_upper)
            change = pool.mint(self, self.address, tick_lower, tick_upper, ticks_previous, liquidity, payer)
            if change.qty0 < amount0_min or change.qty1 < amount1_min:
                raise PreconditionError(ErrorKind.PRICE_SLIPPAGE, f"({change.qty0}, {change.qty1})")

            token_id = self.next_token_id
            self.next_token_id += 1
            self._positions[token_id] = ManagedPosition(
                owner=recipient if recipient is not None else payer,
                pool=pool.address,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
                liquidity=liquidity,
                fee_growth_inside_last=change.fee_growth_inside,
                vesting=initialize(self.chain.timestamp),
            )
            self._pools[pool.address] = pool

        logger.debug("minted token %d in %s liquidity=%d", token_id, pool.address, liquidity)
        return token_id, liquidity, change.qty0, change.qty1

    def add_liquidity(
        self,
        payer: str,
        token_id: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int = 0,
        amount1_min: int = 0,
        ticks_previous: Optional[Sequence[int]] = None,
    ) -> Tuple[int, int, int, int]:
        """Returns ``(liquidity, qty0, qty1, additional_rtoken_owed)``."""
        with self.chain.atomic("manager.add_liquidity"):
            position = self._require_position(token_id)
            pool = self._pools[position.pool]
            liquidity = get_liquidity_from_qties(
                pool.storage.sqrt_p,
                get_sqrt_ratio_at_tick(position.tick_lower),
                get_sqrt_ratio_at_tick(position.tick_upper),
                amount0_desired,
                amount1_desired,
            )
            if ticks_previous is None:
                ticks_previous = get_ticks_previous(pool, position.tick_lower, position.tick_upper)
            change = pool.mint(
                self, self.address, position.tick_lower, position.tick_upper, ticks_previous, liquidity, payer
            )
            if change.qty0 < amount0_min or change.qty1 < amount1_min:
                raise PreconditionError(ErrorKind.PRICE_SLIPPAGE, f"({change.qty0}, {change.qty1})")

            # nothing is burnable when adding
            additional_rtoken_owed, _ = self._accrue(position, change.fee_growth_inside, liquidity, True)
            position.liquidity += liquidity

        logger.debug("added liquidity=%d to token %d", liquidity, token_id)
        return liquidity, change.qty0, change.qty1, additional_rtoken_owed

    def remove_liquidity(
        self,
        sender: str,
        token_id: int,
        liquidity: int,
        amount0_min: int = 0,
        amount1_min: int = 0,
        recipient: Optional[str] = None,
    ) -> Tuple[int, int, int]:
        """
        Withdraw `liquidity` from the position; tokens go to `recipient`.

        Returns ``(qty0, qty1, additional_rtoken_owed)``. Locked fees are
        forfeited in proportion to the liquidity removed.
        """
        with self.chain.atomic("manager.remove_liquidity"):
            position = self._require_owner(sender, token_id)
            if liquidity > position.liquidity:
                raise PreconditionError(
                    ErrorKind.INSUFFICIENT_POSITION, f"token {token_id} holds {position.liquidity}"
                )
            pool = self._pools[position.pool]
            change = pool.burn(self, position.tick_lower, position.tick_upper, liquidity)
            if change.qty0 < amount0_min or change.qty1 < amount1_min:
                raise PreconditionError(ErrorKind.LOW_RETURN_AMOUNTS, f"({change.qty0}, {change.qty1})")

            additional_rtoken_owed, fees_burnable = self._accrue(
                position, change.fee_growth_inside, liquidity, False
            )
            position.liquidity -= liquidity
            if fees_burnable > 0:
                pool.burn_rtokens(self, fees_burnable, True)
            self._pay_out(pool, recipient if recipient is not None else sender, change.qty0, change.qty1)

        logger.debug(
            "removed liquidity=%d from token %d -> (%d, %d) forfeited=%d",
            liquidity, token_id, change.qty0, change.qty1, fees_burnable,
        )
        return change.qty0, change.qty1, additional_rtoken_owed

    def burn_rtokens(
        self,
        sender: str,
        token_id: int,
        amount0_min: int = 0,
        amount1_min: int = 0,
        recipient: Optional[str] = None,
    ) -> Tuple[int, int, int]:
        """Redeem the position's owed rTokens; returns ``(rtoken_qty, qty0, qty1)``."""
        with self.chain.atomic("manager.burn_rtokens"):
            position = self._require_owner(sender, token_id)
            rtoken_qty = position.rtoken_owed
            if rtoken_qty == 0:
                raise PositionManagerError(ErrorKind.NO_TOKENS_TO_BURN, f"token {token_id}")
            position.rtoken_owed = 0
            pool = self._pools[position.pool]
            qty0, qty1 = pool.burn_rtokens(self, rtoken_qty, False)
            if qty0 < amount0_min or qty1 < amount1_min:
                raise PreconditionError(ErrorKind.LOW_RETURN_AMOUNTS, f"({qty0}, {qty1})")
            self._pay_out(pool, recipient if recipient is not None else sender, qty0, qty1)

        logger.debug("token %d redeemed %d rTokens -> (%d, %d)", token_id, rtoken_qty, qty0, qty1)
        return rtoken_qty, qty0, qty1

    def burn(self, sender: str, token_id: int) -> None:
        """Delete an empty position."""
        with self.chain.atomic("manager.burn"):
            position = self._require_owner(sender, token_id)
            if position.liquidity > 0 or position.rtoken_owed > 0:
                raise PositionManagerError(ErrorKind.POSITION_NOT_EMPTY, f"token {token_id}")
            del self._positions[token_id]
        logger.debug("burned token %d", token_id)

    def transfer(self, sender: str, token_id: int, recipient: str) -> None:
        with self.chain.atomic("manager.transfer"):
            position = self._require_owner(sender, token_id)
            position.owner = recipient
        logger.debug("token %d transferred %s -> %s", token_id, sender, recipient)

    # -- views ----------------------------------------------------------------

    def __contains__(self, token_id: int) -> bool:
        return token_id in self._positions

    def positions(self, token_id: int) -> ManagedPosition:
        return copy.deepcopy(self._require_position(token_id))

    def vesting_record(self, token_id: int) -> VestingRecord:
        return self._require_position(token_id).vesting

    def tokens_of(self, owner: str) -> List[int]:
        return [token_id for token_id, position in sorted(self._positions.items()) if position.owner == owner]
