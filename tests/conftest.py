from __future__ import annotations

from math import isqrt
from typing import Any

import pytest

from proamm.core import Chain, Factory, FactoryConfig, Pool


TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20
ADMIN = "0x" + "ad" * 20
FEE_TO = "0x" + "fe" * 20
START_TIME = 1_000
SUPPLY = 10**30
FEE = 40
TICK_DISTANCE = 8


def encode_price_sqrt(reserve1: int, reserve0: int) -> int:
    """Q64.96 sqrt of ``reserve1 / reserve0``, rounded down."""
    return isqrt((reserve1 << 192) // reserve0)


class Trader:
    """Pays whatever the pool asks for out of its own balances."""

    def __init__(self, chain: Chain, address: str) -> None:
        self.chain = chain
        self.address = address

    def _pay(self, pool: Pool, token: str, qty: int) -> None:
        if qty > 0:
            self.chain.transfer(token, self.address, pool.address, qty)

    def mint_callback(self, pool: Pool, qty0: int, qty1: int, data: Any) -> None:
        self._pay(pool, pool.token0, qty0)
        self._pay(pool, pool.token1, qty1)

    def swap_callback(self, pool: Pool, delta_qty0: int, delta_qty1: int, data: Any) -> None:
        self._pay(pool, pool.token0, delta_qty0)
        self._pay(pool, pool.token1, delta_qty1)

    def flash_callback(self, pool: Pool, fee_qty0: int, fee_qty1: int, data: Any) -> None:
        # data carries the borrowed principal
        qty0, qty1 = data
        self._pay(pool, pool.token0, qty0 + fee_qty0)
        self._pay(pool, pool.token1, qty1 + fee_qty1)

    def balances(self, pool: Pool) -> tuple[int, int]:
        return (
            self.chain.balance_of(pool.token0, self.address),
            self.chain.balance_of(pool.token1, self.address),
        )


def fund(chain: Chain, address: str, amount: int = SUPPLY) -> None:
    chain.mint_token(TOKEN_A, address, amount)
    chain.mint_token(TOKEN_B, address, amount)


@pytest.fixture
def chain() -> Chain:
    return Chain(timestamp=START_TIME)


@pytest.fixture
def factory(chain: Chain) -> Factory:
    return Factory(chain, ADMIN, FactoryConfig())


@pytest.fixture
def trader(chain: Chain) -> Trader:
    t = Trader(chain, "0x" + "11" * 20)
    fund(chain, t.address)
    return t


@pytest.fixture
def other(chain: Chain) -> Trader:
    t = Trader(chain, "0x" + "22" * 20)
    fund(chain, t.address)
    return t


@pytest.fixture
def pool(factory: Factory) -> Pool:
    return factory.create_pool(TOKEN_A, TOKEN_B, FEE)


@pytest.fixture
def unlocked_pool(pool: Pool, trader: Trader) -> Pool:
    pool.unlock_pool(trader, encode_price_sqrt(1, 1))
    return pool
