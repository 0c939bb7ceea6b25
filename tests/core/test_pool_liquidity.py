from __future__ import annotations

from typing import Any

import pytest

from conftest import ADMIN, FEE, START_TIME, TOKEN_A, TOKEN_B, Trader, encode_price_sqrt
from proamm.errors import (
    ErrorKind,
    ForbiddenError,
    InsufficientPaymentError,
    MathError,
    PreconditionError,
    TickListError,
)
from proamm.kernels.constants import MIN_LIQUIDITY, Q96, RES_96
from proamm.kernels.qty_delta_math import calc_required_qty0, calc_required_qty1
from proamm.kernels.tick_math import MAX_TICK, MIN_SQRT_RATIO, MIN_TICK, get_sqrt_ratio_at_tick
from proamm.state.ticks import TickInfo

L = 10**20


class Stingy(Trader):
    """Pays token1 but never token0."""

    def mint_callback(self, pool: Any, qty0: int, qty1: int, data: Any) -> None:
        self._pay(pool, pool.token1, qty1)


class PaysToken0Only(Trader):
    def mint_callback(self, pool: Any, qty0: int, qty1: int, data: Any) -> None:
        self._pay(pool, pool.token0, qty0)


def mint(pool, trader, lower, upper, qty, hints=(MIN_TICK, MIN_TICK)):
    return pool.mint(trader, trader.address, lower, upper, hints, qty)


# ---------------------------------------------------------------------------
# unlock_pool
# ---------------------------------------------------------------------------

class TestUnlockPool:
    def test_seeds_reinvestment_liquidity(self, pool, trader):
        before = trader.balances(pool)
        assert pool.unlock_pool(trader, encode_price_sqrt(1, 1)) == (MIN_LIQUIDITY, MIN_LIQUIDITY)
        after = trader.balances(pool)
        assert (before[0] - after[0], before[1] - after[1]) == (MIN_LIQUIDITY, MIN_LIQUIDITY)

        state = pool.get_pool_state()
        assert (state.sqrt_p, state.current_tick, state.nearest_current_tick, state.locked) == (Q96, 0, MIN_TICK, False)
        liquidity = pool.get_liquidity_state()
        assert (liquidity.base_l, liquidity.reinvest_l, liquidity.reinvest_l_last) == (0, MIN_LIQUIDITY, MIN_LIQUIDITY)
        assert pool.balance_of(pool.address) == MIN_LIQUIDITY
        assert pool.total_supply() == MIN_LIQUIDITY
        assert pool.get_seconds_per_liquidity_data() == (0, START_TIME)
        assert pool.initialized_tick_list() == [MIN_TICK, MAX_TICK]

    def test_initial_tick(self, pool, trader):
        pool.unlock_pool(trader, get_sqrt_ratio_at_tick(10))
        assert pool.get_pool_state().current_tick == 10

    def test_already_initialized(self, unlocked_pool, trader):
        with pytest.raises(PreconditionError, match="already inited"):
            unlocked_pool.unlock_pool(trader, Q96)

    def test_zero_price(self, pool, trader):
        with pytest.raises(MathError, match="0 denom"):
            pool.unlock_pool(trader, 0)
        assert pool.get_pool_state().sqrt_p == 0

    def test_price_out_of_range(self, pool, trader):
        with pytest.raises(MathError, match="^R"):
            pool.unlock_pool(trader, MIN_SQRT_RATIO - 1)

    @pytest.mark.parametrize("cls,reason", [(Stingy, "lacking qty0"), (PaysToken0Only, "lacking qty1")])
    def test_unpaid_seed_rolls_back(self, chain, pool, trader, cls, reason):
        cheat = cls(chain, trader.address)
        with pytest.raises(InsufficientPaymentError, match=reason):
            pool.unlock_pool(cheat, Q96)
        assert pool.get_pool_state().sqrt_p == 0
        assert pool.total_supply() == 0
        assert pool.oracle.observations(pool.address) == []
        assert chain.balance_of(TOKEN_A, pool.address) == 0
        assert chain.balance_of(TOKEN_B, pool.address) == 0

    def test_operations_before_unlock(self, pool, trader):
        with pytest.raises(PreconditionError, match="not inited"):
            mint(pool, trader, -80, 80, 1000)
        with pytest.raises(PreconditionError, match="not inited"):
            pool.swap(trader, trader.address, 1000, True, MIN_SQRT_RATIO + 1)


# ---------------------------------------------------------------------------
# mint
# ---------------------------------------------------------------------------

class TestMint:
    def test_in_range(self, unlocked_pool, trader):
        pool = unlocked_pool
        before = trader.balances(pool)
        change = mint(pool, trader, -80, 80, L)

        expected0 = calc_required_qty0(Q96, get_sqrt_ratio_at_tick(80), L, True)
        expected1 = calc_required_qty1(get_sqrt_ratio_at_tick(-80), Q96, L, True)
        assert (change.qty0, change.qty1) == (expected0, expected1)
        after = trader.balances(pool)
        assert (before[0] - after[0], before[1] - after[1]) == (expected0, expected1)

        assert pool.get_liquidity_state().base_l == L
        assert pool.get_positions(trader.address, -80, 80).liquidity == L
        assert pool.tick(-80).liquidity_net == L
        assert pool.tick(80).liquidity_net == -L
        assert pool.initialized_tick_list() == [MIN_TICK, -80, 80, MAX_TICK]
        assert pool.initialized_ticks(-80) == (MIN_TICK, 80)
        assert pool.get_pool_state().nearest_current_tick == -80

    def test_below_current_price_takes_token1_only(self, unlocked_pool, trader):
        change = mint(unlocked_pool, trader, -160, -80, L)
        assert change.qty0 == 0
        assert change.qty1 == calc_required_qty1(get_sqrt_ratio_at_tick(-160), get_sqrt_ratio_at_tick(-80), L, True)
        assert unlocked_pool.get_liquidity_state().base_l == 0
        assert unlocked_pool.get_pool_state().nearest_current_tick == -80

    def test_above_current_price_takes_token0_only(self, unlocked_pool, trader):
        change = mint(unlocked_pool, trader, 80, 160, L)
        assert change.qty1 == 0
        assert change.qty0 == calc_required_qty0(get_sqrt_ratio_at_tick(80), get_sqrt_ratio_at_tick(160), L, True)
        assert unlocked_pool.get_liquidity_state().base_l == 0
        assert unlocked_pool.get_pool_state().nearest_current_tick == MIN_TICK

    def test_full_range(self, unlocked_pool, trader):
        mint(unlocked_pool, trader, MIN_TICK, MAX_TICK, L)
        assert unlocked_pool.get_liquidity_state().base_l == L
        assert unlocked_pool.initialized_tick_list() == [MIN_TICK, MAX_TICK]

    def test_recipient_owns_position(self, unlocked_pool, trader, other):
        unlocked_pool.mint(trader, other.address, -80, 80, (MIN_TICK, MIN_TICK), L)
        assert unlocked_pool.get_positions(other.address, -80, 80).liquidity == L
        assert unlocked_pool.get_positions(trader.address, -80, 80).liquidity == 0

    @pytest.mark.parametrize(
        "lower,upper,qty,kind",
        [
            (-80, 80, 0, ErrorKind.ZERO_QTY),
            (80, 80, L, ErrorKind.INVALID_TICK_RANGE),
            (80, -80, L, ErrorKind.INVALID_TICK_RANGE),
            (MIN_TICK - 8, 0, L, ErrorKind.INVALID_LOWER_TICK),
            (0, MAX_TICK + 8, L, ErrorKind.INVALID_UPPER_TICK),
            (-7, 8, L, ErrorKind.TICK_NOT_IN_DISTANCE),
            (-8, 9, L, ErrorKind.TICK_NOT_IN_DISTANCE),
        ],
    )
    def test_rejections(self, unlocked_pool, trader, lower, upper, qty, kind):
        with pytest.raises(PreconditionError) as excinfo:
            mint(unlocked_pool, trader, lower, upper, qty)
        assert excinfo.value.kind is kind
        assert not unlocked_pool.get_pool_state().locked

    def test_qty_above_uint128(self, unlocked_pool, trader):
        with pytest.raises(MathError, match="overflow"):
            mint(unlocked_pool, trader, -80, 80, 2**128)

    def test_stale_hint(self, unlocked_pool, trader):
        with pytest.raises(TickListError, match="previous tick has been removed"):
            mint(unlocked_pool, trader, 16, 80, L, hints=(8, 8))

    def test_max_tick_liquidity(self, factory, trader):
        factory.enable_swap_fee(ADMIN, 500, 10, max_tick_liquidity=10**6)
        pool = factory.create_pool(TOKEN_A, TOKEN_B, 500)
        pool.unlock_pool(trader, Q96)
        mint(pool, trader, -100, 100, 10**6)
        with pytest.raises(PreconditionError, match="> max liquidity"):
            mint(pool, trader, -100, 200, 1)
        assert pool.tick(-100).liquidity_gross == 10**6

    def test_unpaid_mint_rolls_back(self, chain, unlocked_pool, trader):
        cheat = Stingy(chain, trader.address)
        before = trader.balances(unlocked_pool)
        with pytest.raises(InsufficientPaymentError, match="lacking qty0"):
            mint(unlocked_pool, cheat, -80, 80, L)
        assert trader.balances(unlocked_pool) == before
        assert unlocked_pool.get_liquidity_state().base_l == 0
        assert unlocked_pool.get_positions(trader.address, -80, 80).liquidity == 0
        assert unlocked_pool.tick(-80) == TickInfo()
        assert unlocked_pool.initialized_tick_list() == [MIN_TICK, MAX_TICK]
        assert not unlocked_pool.get_pool_state().locked

    def test_whitelist(self, factory, unlocked_pool, trader):
        factory.enable_whitelist(ADMIN)
        with pytest.raises(ForbiddenError):
            mint(unlocked_pool, trader, -80, 80, L)
        factory.add_nft_manager(ADMIN, trader.address)
        mint(unlocked_pool, trader, -80, 80, L)


# ---------------------------------------------------------------------------
# burn
# ---------------------------------------------------------------------------

class TestBurn:
    def test_burn_everything(self, unlocked_pool, trader):
        pool = unlocked_pool
        minted = mint(pool, trader, -80, 80, L)
        before = trader.balances(pool)
        burned = pool.burn(trader, -80, 80, L)

        assert burned.qty0 == -calc_required_qty0(Q96, get_sqrt_ratio_at_tick(80), L, False)
        assert burned.qty1 == -calc_required_qty1(get_sqrt_ratio_at_tick(-80), Q96, L, False)
        # the pool keeps the rounding
        assert 0 <= minted.qty0 - burned.qty0 <= 1
        assert 0 <= minted.qty1 - burned.qty1 <= 1
        after = trader.balances(pool)
        assert (after[0] - before[0], after[1] - before[1]) == (burned.qty0, burned.qty1)

        assert pool.get_liquidity_state().base_l == 0
        assert pool.tick(-80) == TickInfo()
        assert pool.tick(80) == TickInfo()
        assert pool.initialized_tick_list() == [MIN_TICK, MAX_TICK]
        assert pool.get_pool_state().nearest_current_tick == MIN_TICK

    def test_partial_burn(self, unlocked_pool, trader):
        mint(unlocked_pool, trader, -80, 80, L)
        unlocked_pool.burn(trader, -80, 80, L // 4)
        assert unlocked_pool.get_positions(trader.address, -80, 80).liquidity == L - L // 4
        assert unlocked_pool.tick(-80).liquidity_gross == L - L // 4
        assert unlocked_pool.get_liquidity_state().base_l == L - L // 4

    def test_more_than_position(self, unlocked_pool, trader, other):
        mint(unlocked_pool, trader, -80, 80, L)
        with pytest.raises(PreconditionError, match="insufficient position liquidity"):
            unlocked_pool.burn(trader, -80, 80, L + 1)
        with pytest.raises(PreconditionError, match="insufficient position liquidity"):
            unlocked_pool.burn(other, -80, 80, 1)

    def test_zero_qty(self, unlocked_pool, trader):
        mint(unlocked_pool, trader, -80, 80, L)
        with pytest.raises(PreconditionError, match="0 qty"):
            unlocked_pool.burn(trader, -80, 80, 0)

    def test_shared_tick(self, unlocked_pool, trader, other):
        pool = unlocked_pool
        mint(pool, trader, -80, 80, L)
        mint(pool, other, 80, 160, 2 * L)
        assert pool.tick(80).liquidity_gross == 3 * L
        assert pool.tick(80).liquidity_net == L

        pool.burn(trader, -80, 80, L)
        assert pool.tick(80).liquidity_gross == 2 * L
        assert pool.tick(80).liquidity_net == 2 * L
        assert pool.initialized_tick_list() == [MIN_TICK, 80, 160, MAX_TICK]


# ---------------------------------------------------------------------------
# seconds per liquidity
# ---------------------------------------------------------------------------

class TestSecondsPerLiquidity:
    def test_inside_active_range(self, chain, unlocked_pool, trader):
        mint(unlocked_pool, trader, -80, 80, L)
        mint(unlocked_pool, trader, 80, 160, L)
        chain.advance_time(100)
        assert unlocked_pool.get_seconds_per_liquidity_inside(-80, 80) == (100 << RES_96) // L
        assert unlocked_pool.get_seconds_per_liquidity_inside(80, 160) == 0
        # the global accumulator is only brought up to date by pool actions
        assert unlocked_pool.get_seconds_per_liquidity_data() == (0, START_TIME)

    def test_accumulates_on_action(self, chain, unlocked_pool, trader):
        mint(unlocked_pool, trader, -80, 80, L)
        chain.advance_time(100)
        mint(unlocked_pool, trader, -80, 80, L)
        assert unlocked_pool.get_seconds_per_liquidity_data() == ((100 << RES_96) // L, START_TIME + 100)

    def test_no_liquidity_accrues_nothing(self, chain, unlocked_pool):
        chain.advance_time(100)
        assert unlocked_pool.get_seconds_per_liquidity_inside(-80, 80) == 0

    def test_bad_range(self, unlocked_pool):
        with pytest.raises(PreconditionError, match="bad tick range"):
            unlocked_pool.get_seconds_per_liquidity_inside(80, -80)
