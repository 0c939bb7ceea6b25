"""Integer quadratic root used to estimate the exact-output step fee."""

from __future__ import annotations

from math import isqrt

from ..errors import ErrorKind, MathError


def get_smaller_root_of_quad_eqn(a: int, b: int, c: int) -> int:
    """
    Smaller root of ``a*x**2 - 2*b*x + c = 0``, rounded down.

    Returns 0 when ``a == 0`` (a zero-fee tier accrues no incremental liquidity).
    """
    if a == 0:
        return 0
    if b < 0:
        raise MathError(ErrorKind.UNDERFLOW, "quadratic b is negative")
    discriminant = b * b - a * c
    if discriminant < 0:
        raise MathError(ErrorKind.UNDERFLOW, "quadratic has no real root")
    return (b - isqrt(discriminant)) // a
