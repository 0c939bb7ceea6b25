"""
Checked integer narrowing.

Each cast either returns the value unchanged or raises ``MathError``; nothing
is truncated. The ``rev_*`` variants negate while casting, mirroring how the
engine reports outbound quantities as negative deltas.
"""

from __future__ import annotations

from ..errors import ErrorKind, MathError
from .constants import (
    INT128_MAX,
    INT128_MIN,
    INT256_MAX,
    INT256_MIN,
    UINT32_MAX,
    UINT128_MAX,
    UINT160_MAX,
    UINT256_MAX,
)


def _check(value: int, lo: int, hi: int, width: str) -> int:
    if value < lo:
        raise MathError(ErrorKind.UNDERFLOW, f"{value} below {width}")
    if value > hi:
        raise MathError(ErrorKind.OVERFLOW, f"{value} above {width}")
    return value


def to_uint32(value: int) -> int:
    return _check(value, 0, UINT32_MAX, "uint32")


def to_uint128(value: int) -> int:
    return _check(value, 0, UINT128_MAX, "uint128")


def to_uint160(value: int) -> int:
    return _check(value, 0, UINT160_MAX, "uint160")


def to_uint256(value: int) -> int:
    return _check(value, 0, UINT256_MAX, "uint256")


def to_int128(value: int) -> int:
    return _check(value, INT128_MIN, INT128_MAX, "int128")


def to_int256(value: int) -> int:
    return _check(value, INT256_MIN, INT256_MAX, "int256")


def rev_to_int256(value: int) -> int:
    """Cast a uint256 to int256 and negate it."""
    return -to_int256(to_uint256(value))


def rev_to_uint256(value: int) -> int:
    """Negate a non-positive int256 into a uint256."""
    return to_uint256(-to_int256(value))
