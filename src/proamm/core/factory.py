"""
Pool factory and privileged configuration.

All configuration lives in one immutable `FactoryConfig` snapshot. Privileged
setters are funneled through `_require_config_master` and replace the
snapshot; pools read `factory.config` at the start of each operation.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Optional, Tuple

from ..errors import ConfigError, ErrorKind, ForbiddenError, PreconditionError
from ..state.balances import ZERO_ADDRESS
from ..state.pools import compute_pool_address, sort_tokens
from .chain import Chain
from .config import FactoryConfig, FeeTier, validate_fee_configuration
from .oracle import PoolOracle
from .pool import Pool


logger = logging.getLogger(__name__)

PoolKey = Tuple[str, str, int]


class Factory:
    def __init__(
        self,
        chain: Chain,
        config_master: str,
        config: Optional[FactoryConfig] = None,
        *,
        address: str = "0x" + "fa" * 20,
        oracle: Optional[PoolOracle] = None,
    ) -> None:
        self.chain = chain
        self.address = address
        self.config_master = config_master
        self.config = config if config is not None else FactoryConfig()
        self.oracle = oracle if oracle is not None else PoolOracle()
        self._pools: Dict[PoolKey, Pool] = {}
        chain.register(self.oracle)
        chain.register(self)

    # -- journaling -----------------------------------------------------------

    def snapshot(self) -> tuple:
        return self.config, self.config_master, dict(self._pools)

    def restore(self, snapshot: tuple) -> None:
        self.config, self.config_master, pools = snapshot
        self._pools = dict(pools)

    # -- pools ----------------------------------------------------------------

    def create_pool(self, token_a: str, token_b: str, swap_fee_units: int) -> Pool:
        if token_a == token_b:
            raise PreconditionError(ErrorKind.IDENTICAL_TOKENS, token_a)
        token0, token1 = sort_tokens(token_a, token_b)
        if token0 == ZERO_ADDRESS:
            raise PreconditionError(ErrorKind.NULL_ADDRESS)
        tier = self.config.tier(swap_fee_units)
        if tier is None:
            raise ConfigError(ErrorKind.INVALID_FEE, f"fee tier {swap_fee_units} is not enabled")
        key = (token0, token1, swap_fee_units)
        if key in self._pools:
            raise PreconditionError(ErrorKind.POOL_EXISTS, f"{token0}/{token1}/{swap_fee_units}")

        pool = Pool(
            chain=self.chain,
            factory=self,
            oracle=self.oracle,
            address=compute_pool_address(self.address, token0, token1, swap_fee_units),
            token0=token0,
            token1=token1,
            swap_fee_units=swap_fee_units,
            tick_distance=tier.tick_distance,
            max_tick_liquidity=tier.max_liquidity_per_tick,
        )
        self._pools[key] = pool
        logger.info(
            "created pool %s for %s/%s fee=%d tick_distance=%d",
            pool.address, token0, token1, swap_fee_units, tier.tick_distance,
        )
        return pool

    def get_pool(self, token_a: str, token_b: str, swap_fee_units: int) -> Optional[Pool]:
        token0, token1 = sort_tokens(token_a, token_b)
        return self._pools.get((token0, token1, swap_fee_units))

    def pools(self) -> list[Pool]:
        return [self._pools[key] for key in sorted(self._pools)]

    # -- views ----------------------------------------------------------------

    def fee_amount_tick_distance(self, swap_fee_units: int) -> int:
        tier = self.config.tier(swap_fee_units)
        return 0 if tier is None else tier.tick_distance

    def fee_configuration(self) -> Tuple[Optional[str], int]:
        return self.config.fee_to, self.config.government_fee_units

    def is_whitelisted_nft_manager(self, manager: str) -> bool:
        return self.config.is_whitelisted(manager)

    def get_whitelisted_nft_managers(self) -> list[str]:
        return sorted(self.config.nft_managers)

    # -- privileged setters ---------------------------------------------------

    def _require_config_master(self, sender: str) -> None:
        if sender != self.config_master:
            raise ForbiddenError(f"{sender} is not the config master")

    def update_config_master(self, sender: str, new_master: str) -> None:
        self._require_config_master(sender)
        logger.info("config master %s -> %s", self.config_master, new_master)
        self.config_master = new_master

    def enable_swap_fee(self, sender: str, swap_fee_units: int, tick_distance: int,
                        max_tick_liquidity: Optional[int] = None) -> None:
        self._require_config_master(sender)
        tier = FeeTier(swap_fee_units, tick_distance, max_tick_liquidity)
        if self.config.tier(swap_fee_units) is not None:
            raise ConfigError(ErrorKind.EXISTING_TICK_DISTANCE, f"fee tier {swap_fee_units}")
        self.config = self.config.with_fee_tier(tier)
        logger.info("enabled swap fee %d with tick distance %d", swap_fee_units, tick_distance)

    def update_fee_configuration(self, sender: str, fee_to: Optional[str], government_fee_units: int) -> None:
        self._require_config_master(sender)
        if fee_to == ZERO_ADDRESS:
            fee_to = None
        validate_fee_configuration(fee_to, government_fee_units)
        self.config = replace(self.config, fee_to=fee_to, government_fee_units=government_fee_units)
        logger.info("fee configuration: fee_to=%s government_fee_units=%d", fee_to, government_fee_units)

    def update_vesting_period(self, sender: str, vesting_period: int) -> None:
        self._require_config_master(sender)
        self.config = replace(self.config, vesting_period=vesting_period)
        logger.info("vesting period set to %d", vesting_period)

    def enable_whitelist(self, sender: str) -> None:
        self._require_config_master(sender)
        self.config = replace(self.config, whitelist_enabled=True)
        logger.info("whitelist enabled")

    def disable_whitelist(self, sender: str) -> None:
        self._require_config_master(sender)
        self.config = replace(self.config, whitelist_enabled=False)
        logger.info("whitelist disabled")

    def add_nft_manager(self, sender: str, manager: str) -> None:
        self._require_config_master(sender)
        self.config = replace(self.config, nft_managers=self.config.nft_managers | {manager})
        logger.info("added nft manager %s", manager)

    def remove_nft_manager(self, sender: str, manager: str) -> None:
        self._require_config_master(sender)
        self.config = replace(self.config, nft_managers=self.config.nft_managers - {manager})
        logger.info("removed nft manager %s", manager)
