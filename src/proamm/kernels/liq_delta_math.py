"""Add or remove a liquidity delta with a checked uint128 result."""

from __future__ import annotations

from .safe_cast import to_uint128


def apply_liquidity_delta(liquidity: int, liquidity_delta: int, is_add_liquidity: bool) -> int:
    """Return ``liquidity +/- liquidity_delta``; raises ``MathError`` outside uint128."""
    if is_add_liquidity:
        return to_uint128(liquidity + liquidity_delta)
    return to_uint128(liquidity - liquidity_delta)
