"""
Swap quotes without side effects.

A quote runs the pool's own swap loop inside ``Chain.simulate()``, so it sees
exactly what a swap submitted now would see (fee settlement, tick crossings,
oracle writes) and every change is discarded afterwards. No tokens move.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.factory import Factory
from ..core.pool import Pool
from ..core.swap import run_swap
from ..errors import ErrorKind, PreconditionError
from ..kernels.tick_math import MAX_SQRT_RATIO, MIN_SQRT_RATIO


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteResult:
    """
    Outcome of a quoted single-pool swap.

    `used_amount` is how much of the specified token the swap consumes (input
    for exact input, output for exact output); `returned_amount` is the other
    side. Both are positive. A price limit can leave `used_amount` below what
    was asked for.
    """

    used_amount: int
    returned_amount: int
    after_sqrt_p: int
    initialized_ticks_crossed: int


def _find_pool(factory: Factory, token_in: str, token_out: str, fee: int) -> Pool:
    pool = factory.get_pool(token_in, token_out, fee)
    if pool is None:
        raise PreconditionError(ErrorKind.UNKNOWN_POOL, f"{token_in}/{token_out}/{fee}")
    return pool


def _quote(pool: Pool, swap_qty: int, is_token0: bool, will_up_tick: bool, limit_sqrt_p: int) -> QuoteResult:
    if limit_sqrt_p == 0:
        limit_sqrt_p = MAX_SQRT_RATIO - 1 if will_up_tick else MIN_SQRT_RATIO + 1
    if not pool.storage.initialized:
        raise PreconditionError(ErrorKind.NOT_INITIALIZED, pool.address)
    if pool.storage.locked:
        raise PreconditionError(ErrorKind.LOCKED, pool.address)

    with pool.chain.simulate(f"quote@{pool.address[:10]}"):
        outcome = run_swap(pool, swap_qty, is_token0, limit_sqrt_p)

    specified, other = (
        (outcome.delta_qty0, outcome.delta_qty1) if is_token0 else (outcome.delta_qty1, outcome.delta_qty0)
    )
    result = QuoteResult(abs(specified), abs(other), outcome.sqrt_p, outcome.ticks_crossed)
    logger.debug("quote %s qty=%d token0=%s -> %s", pool.address, swap_qty, is_token0, result)
    return result


def quote_exact_input_single(
    factory: Factory,
    token_in: str,
    token_out: str,
    fee: int,
    amount_in: int,
    limit_sqrt_p: int = 0,
) -> QuoteResult:
    """Quote selling `amount_in` of `token_in`; a zero limit means no price limit."""
    pool = _find_pool(factory, token_in, token_out, fee)
    is_token0 = token_in == pool.token0
    return _quote(pool, amount_in, is_token0, not is_token0, limit_sqrt_p)


def quote_exact_output_single(
    factory: Factory,
    token_in: str,
    token_out: str,
    fee: int,
    amount_out: int,
    limit_sqrt_p: int = 0,
) -> QuoteResult:
    """Quote buying `amount_out` of `token_out`; a zero limit means no price limit."""
    pool = _find_pool(factory, token_in, token_out, fee)
    is_token0 = token_out == pool.token0
    return _quote(pool, -amount_out, is_token0, is_token0, limit_sqrt_p)
