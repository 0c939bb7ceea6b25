from __future__ import annotations

import logging

import pytest

from conftest import ADMIN, FEE, FEE_TO, TOKEN_A, TOKEN_B
from proamm.core import Factory, FactoryConfig
from proamm.errors import ConfigError, ErrorKind, ForbiddenError, PreconditionError
from proamm.state.balances import ZERO_ADDRESS
from proamm.state.pools import compute_pool_address

STRANGER = "0x" + "99" * 20
MANAGER = "0x" + "b0" * 20


# ---------------------------------------------------------------------------
# Pool creation
# ---------------------------------------------------------------------------

class TestCreatePool:
    def test_creates_sorted_pool(self, factory):
        pool = factory.create_pool(TOKEN_B, TOKEN_A, FEE)
        assert (pool.token0, pool.token1) == (TOKEN_A, TOKEN_B)
        assert pool.swap_fee_units == FEE
        assert pool.tick_distance == 8
        assert pool.address == compute_pool_address(factory.address, TOKEN_A, TOKEN_B, FEE)
        assert factory.get_pool(TOKEN_A, TOKEN_B, FEE) is pool
        assert factory.get_pool(TOKEN_B, TOKEN_A, FEE) is pool
        assert factory.pools() == [pool]

    def test_starts_uninitialized(self, factory):
        pool = factory.create_pool(TOKEN_A, TOKEN_B, FEE)
        state = pool.get_pool_state()
        assert state.sqrt_p == 0
        assert state.locked

    def test_logs_creation(self, factory, caplog):
        with caplog.at_level(logging.INFO, logger="proamm.core.factory"):
            pool = factory.create_pool(TOKEN_A, TOKEN_B, FEE)
        assert f"created pool {pool.address}" in caplog.text

    def test_identical_tokens(self, factory):
        with pytest.raises(PreconditionError, match="identical tokens"):
            factory.create_pool(TOKEN_A, TOKEN_A, FEE)

    def test_null_address(self, factory):
        with pytest.raises(PreconditionError, match="null address"):
            factory.create_pool(ZERO_ADDRESS, TOKEN_A, FEE)

    def test_unknown_fee(self, factory):
        with pytest.raises(ConfigError, match="invalid fee"):
            factory.create_pool(TOKEN_A, TOKEN_B, 123)

    def test_duplicate(self, factory):
        factory.create_pool(TOKEN_A, TOKEN_B, FEE)
        with pytest.raises(PreconditionError, match="pool exists"):
            factory.create_pool(TOKEN_B, TOKEN_A, FEE)

    def test_distinct_fee_tiers(self, factory):
        low = factory.create_pool(TOKEN_A, TOKEN_B, 40)
        high = factory.create_pool(TOKEN_A, TOKEN_B, 300)
        assert low.address != high.address
        assert high.tick_distance == 60
        assert factory.pools() == [low, high]

    def test_rolled_back_creation_leaves_no_trace(self, chain, factory):
        components_before = repr(chain)
        with pytest.raises(RuntimeError):
            with chain.atomic():
                factory.create_pool(TOKEN_A, TOKEN_B, FEE)
                raise RuntimeError
        assert repr(chain) == components_before
        assert factory.get_pool(TOKEN_A, TOKEN_B, FEE) is None
        assert factory.pools() == []

    def test_missing_pool(self, factory):
        assert factory.get_pool(TOKEN_A, TOKEN_B, FEE) is None


# ---------------------------------------------------------------------------
# Privileged setters
# ---------------------------------------------------------------------------

class TestConfigMaster:
    @pytest.mark.parametrize(
        "call",
        [
            lambda f: f.update_config_master(STRANGER, STRANGER),
            lambda f: f.enable_swap_fee(STRANGER, 500, 10),
            lambda f: f.update_fee_configuration(STRANGER, FEE_TO, 5),
            lambda f: f.update_vesting_period(STRANGER, 0),
            lambda f: f.enable_whitelist(STRANGER),
            lambda f: f.disable_whitelist(STRANGER),
            lambda f: f.add_nft_manager(STRANGER, MANAGER),
            lambda f: f.remove_nft_manager(STRANGER, MANAGER),
        ],
    )
    def test_forbidden(self, factory, call):
        before = factory.config
        with pytest.raises(ForbiddenError) as excinfo:
            call(factory)
        assert excinfo.value.kind is ErrorKind.FORBIDDEN
        assert factory.config is before

    def test_update_config_master(self, factory):
        factory.update_config_master(ADMIN, STRANGER)
        assert factory.config_master == STRANGER
        with pytest.raises(ForbiddenError):
            factory.enable_whitelist(ADMIN)
        factory.enable_whitelist(STRANGER)


class TestSwapFeeTiers:
    def test_enable(self, factory, caplog):
        with caplog.at_level(logging.INFO, logger="proamm.core.factory"):
            factory.enable_swap_fee(ADMIN, 500, 10)
        assert factory.fee_amount_tick_distance(500) == 10
        assert "enabled swap fee 500" in caplog.text
        pool = factory.create_pool(TOKEN_A, TOKEN_B, 500)
        assert pool.tick_distance == 10

    def test_custom_max_tick_liquidity(self, factory):
        factory.enable_swap_fee(ADMIN, 500, 10, max_tick_liquidity=10**6)
        assert factory.create_pool(TOKEN_A, TOKEN_B, 500).max_tick_liquidity == 10**6

    def test_existing(self, factory):
        with pytest.raises(ConfigError, match="existing tickDistance"):
            factory.enable_swap_fee(ADMIN, FEE, 16)
        assert factory.fee_amount_tick_distance(FEE) == 8

    @pytest.mark.parametrize("fee,distance", [(0, 10), (100_000, 10), (500, 0), (500, 16385)])
    def test_invalid(self, factory, fee, distance):
        with pytest.raises(ConfigError):
            factory.enable_swap_fee(ADMIN, fee, distance)
        assert factory.fee_amount_tick_distance(fee) == 0

    def test_disabled_tier_reads_zero(self, factory):
        assert factory.fee_amount_tick_distance(7) == 0


class TestFeeConfiguration:
    def test_update(self, factory):
        factory.update_fee_configuration(ADMIN, FEE_TO, 5_000)
        assert factory.fee_configuration() == (FEE_TO, 5_000)

    def test_zero_address_disables(self, factory):
        factory.update_fee_configuration(ADMIN, FEE_TO, 5_000)
        factory.update_fee_configuration(ADMIN, ZERO_ADDRESS, 0)
        assert factory.fee_configuration() == (None, 0)

    @pytest.mark.parametrize(
        "fee_to,units,reason",
        [(FEE_TO, 0, "bad config"), (None, 10, "bad config"), (FEE_TO, 20_001, "invalid fee")],
    )
    def test_invalid(self, factory, fee_to, units, reason):
        with pytest.raises(ConfigError, match=reason):
            factory.update_fee_configuration(ADMIN, fee_to, units)
        assert factory.fee_configuration() == (None, 0)


class TestVestingAndWhitelist:
    def test_vesting_period(self, factory):
        factory.update_vesting_period(ADMIN, 0)
        assert factory.config.vesting_period == 0
        with pytest.raises(ConfigError):
            factory.update_vesting_period(ADMIN, -1)
        assert factory.config.vesting_period == 0

    def test_whitelist_toggle(self, factory):
        assert factory.is_whitelisted_nft_manager(MANAGER)
        factory.enable_whitelist(ADMIN)
        assert not factory.is_whitelisted_nft_manager(MANAGER)
        factory.add_nft_manager(ADMIN, MANAGER)
        assert factory.is_whitelisted_nft_manager(MANAGER)
        assert factory.get_whitelisted_nft_managers() == [MANAGER]
        factory.remove_nft_manager(ADMIN, MANAGER)
        assert not factory.is_whitelisted_nft_manager(MANAGER)
        factory.disable_whitelist(ADMIN)
        assert factory.is_whitelisted_nft_manager(MANAGER)


def test_creation_rolls_back_with_enclosing_transaction(chain):
    factory = Factory(chain, ADMIN, FactoryConfig())
    with pytest.raises(RuntimeError):
        with chain.atomic():
            factory.create_pool(TOKEN_A, TOKEN_B, FEE)
            raise RuntimeError
    assert factory.get_pool(TOKEN_A, TOKEN_B, FEE) is None
