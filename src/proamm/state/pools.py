"""
Pool storage record and deterministic pool addressing.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from ..kernels.constants import FEE_UNITS
from .balances import Address, TokenId


def sort_tokens(token_a: TokenId, token_b: TokenId) -> tuple[TokenId, TokenId]:
    return (token_a, token_b) if token_a < token_b else (token_b, token_a)


def compute_pool_address(factory: Address, token0: TokenId, token1: TokenId, swap_fee_units: int) -> Address:
    """
    Deterministically compute the address of the pool for (token0, token1, fee).

    The same parameters under the same factory always map to the same address.
    """
    if token0 >= token1:
        raise ValueError(f"Tokens must be in canonical order: {token0} < {token1}")
    if not (0 < swap_fee_units < FEE_UNITS):
        raise ValueError(f"swap_fee_units must be in (0, {FEE_UNITS}): {swap_fee_units}")

    pool_id_data = (
        b"ProAMMPool"
        + factory.encode("utf-8")
        + token0.encode("utf-8")
        + token1.encode("utf-8")
        + str(int(swap_fee_units)).encode("utf-8")
    )
    return "0x" + hashlib.sha256(pool_id_data).hexdigest()[:40]


@dataclass
class PoolData:
    """
    Mutable storage of one pool.

    Attributes:
        sqrt_p: Current sqrt price, Q64.96
        current_tick: Tick of the current price
        nearest_current_tick: Greatest initialized tick at or below current_tick
        locked: Reentrancy flag; also set while the pool is uninitialized
        base_l: Position liquidity active at the current price
        reinvest_l: Liquidity backed by reinvested fees
        reinvest_l_last: reinvest_l at the last rToken settlement
        fee_growth_global: rTokens per unit of base_l, Q96, wraps at 2**256
        seconds_per_liquidity_global: Seconds per unit of base_l, Q96, wraps at 2**128
        seconds_per_liquidity_update_time: Timestamp of the last accumulator update
    """
    sqrt_p: int = 0
    current_tick: int = 0
    nearest_current_tick: int = 0
    locked: bool = True
    base_l: int = 0
    reinvest_l: int = 0
    reinvest_l_last: int = 0
    fee_growth_global: int = 0
    seconds_per_liquidity_global: int = 0
    seconds_per_liquidity_update_time: int = 0

    @property
    def initialized(self) -> bool:
        return self.sqrt_p != 0

    def __post_init__(self) -> None:
        for name in ("sqrt_p", "base_l", "reinvest_l", "reinvest_l_last", "fee_growth_global"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative: {getattr(self, name)}")
