"""
Full-precision multiply-then-divide.

Python integers are arbitrary precision, so the 512-bit intermediate product
is exact by construction. What this module preserves is the on-chain contract:
operands and results are uint256, a zero denominator is rejected with
``0 denom`` and a quotient that does not fit in 256 bits is rejected with
``denom <= prod1`` (the high word of the product is not below the divisor).
"""

from __future__ import annotations

from ..errors import ErrorKind, MathError
from .constants import UINT256_MAX


def _require_uint256(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > UINT256_MAX:
        raise MathError(ErrorKind.OVERFLOW, f"{name} is not a uint256: {value}")


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """Return ``floor(a * b / denominator)``."""
    _require_uint256("a", a)
    _require_uint256("b", b)
    _require_uint256("denominator", denominator)
    product = a * b
    if denominator == 0:
        # a product wider than 256 bits is reported as overflow first
        if product > UINT256_MAX:
            raise MathError(ErrorKind.DENOM_LE_PROD1)
        raise MathError(ErrorKind.ZERO_DENOMINATOR)
    result = product // denominator
    if result > UINT256_MAX:
        raise MathError(ErrorKind.DENOM_LE_PROD1)
    return result


def mul_div_ceiling(a: int, b: int, denominator: int) -> int:
    """Return ``ceil(a * b / denominator)``."""
    result = mul_div_floor(a, b, denominator)
    if (a * b) % denominator:
        if result == UINT256_MAX:
            raise MathError(ErrorKind.OVERFLOW, "mul_div_ceiling result")
        result += 1
    return result


def div_ceiling(x: int, y: int) -> int:
    """Return ``ceil(x / y)`` for uint256 operands."""
    _require_uint256("x", x)
    _require_uint256("y", y)
    if y == 0:
        raise MathError(ErrorKind.ZERO_DENOMINATOR)
    return -(-x // y)
