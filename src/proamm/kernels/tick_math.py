"""
Tick <-> sqrt price conversion.

Bit-exact integer TickMath, matching the on-chain library:
    price = 1.0001 ** tick
    sqrt_p = sqrt(price) * 2**96   (Q64.96)

`get_sqrt_ratio_at_tick` is accurate to within one part in 2**96 and rounds up
when narrowing from Q128.128; `get_tick_at_sqrt_ratio` returns the greatest
tick whose sqrt ratio is <= the input.
"""

from __future__ import annotations

from ..errors import ErrorKind, MathError
from .constants import UINT256_MAX


MIN_TICK = -887272
MAX_TICK = 887272

MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# (bit, multiplier) pairs: multiplier == 2**128 / sqrt(1.0001) ** bit, Q128.128.
_RATIO_STEPS = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """Return the Q64.96 sqrt price at `tick`. Raises ``T`` outside the tick range."""
    if not isinstance(tick, int) or isinstance(tick, bool):
        raise TypeError("tick must be an int")
    abs_tick = abs(tick)
    if abs_tick > MAX_TICK:
        raise MathError(ErrorKind.TICK_OUT_OF_RANGE, f"tick {tick}")

    ratio = 0xFFFCB933BD6FAD37AA2D162D1A594001 if abs_tick & 0x1 else 0x100000000000000000000000000000000
    for bit, multiplier in _RATIO_STEPS:
        if abs_tick & bit:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = UINT256_MAX // ratio

    # Q128.128 -> Q64.96, rounding up so that get_tick_at_sqrt_ratio round-trips.
    return (ratio >> 32) + (1 if ratio & 0xFFFFFFFF else 0)


def get_tick_at_sqrt_ratio(sqrt_p: int) -> int:
    """Return the greatest tick with ``get_sqrt_ratio_at_tick(tick) <= sqrt_p``.

    Raises ``R`` unless ``MIN_SQRT_RATIO <= sqrt_p < MAX_SQRT_RATIO``.
    """
    if not isinstance(sqrt_p, int) or isinstance(sqrt_p, bool):
        raise TypeError("sqrt_p must be an int")
    if sqrt_p < MIN_SQRT_RATIO or sqrt_p >= MAX_SQRT_RATIO:
        raise MathError(ErrorKind.SQRT_RATIO_OUT_OF_RANGE, f"sqrt_p {sqrt_p}")

    ratio = sqrt_p << 32
    msb = ratio.bit_length() - 1

    if msb >= 128:
        r = ratio >> (msb - 127)
    else:
        r = ratio << (127 - msb)

    log_2 = (msb - 128) << 64
    for i in range(14):
        r = (r * r) >> 127
        f = r >> 128
        log_2 |= f << (63 - i)
        r >>= f

    log_sqrt10001 = log_2 * 255738958999603826347141

    tick_low = (log_sqrt10001 - 3402992956809132418596140100660247210) >> 128
    tick_high = (log_sqrt10001 + 291339464771989622907027621153398088495) >> 128

    if tick_low == tick_high:
        return tick_low
    return tick_high if get_sqrt_ratio_at_tick(tick_high) <= sqrt_p else tick_low


def get_max_number_ticks(tick_distance: int) -> int:
    """Number of usable ticks for a tick distance (sizes the per-tick liquidity cap)."""
    if tick_distance <= 0:
        raise ValueError(f"tick_distance must be positive: {tick_distance}")
    return (MAX_TICK // tick_distance) * 2
