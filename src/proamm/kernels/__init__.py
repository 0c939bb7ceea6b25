"""
Integer-only math kernels.

Pure functions over Python ints with on-chain width checks: Q64.96 sqrt
prices, fee units of 1 / 100_000, and explicit rounding per call site.
"""

from .constants import (
    FEE_UNITS,
    MAX_TICK_DISTANCE,
    MAX_TICK_TRAVEL,
    MIN_LIQUIDITY,
    Q96,
    TWO_FEE_UNITS,
)
from .full_math import div_ceiling, mul_div_ceiling, mul_div_floor
from .liq_delta_math import apply_liquidity_delta
from .liquidity_math import (
    get_liquidity_from_qties,
    get_liquidity_from_qty0,
    get_liquidity_from_qty1,
)
from .qty_delta_math import (
    calc_required_qty0,
    calc_required_qty1,
    calc_unlock_qtys,
    get_qty0_from_burn_rtokens,
    get_qty1_from_burn_rtokens,
)
from .reinvestment_math import calc_rmint_qty
from .swap_math import SwapStepResult, compute_swap_step
from .tick_math import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    get_max_number_ticks,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
)

__all__ = [
    "FEE_UNITS",
    "MAX_SQRT_RATIO",
    "MAX_TICK",
    "MAX_TICK_DISTANCE",
    "MAX_TICK_TRAVEL",
    "MIN_LIQUIDITY",
    "MIN_SQRT_RATIO",
    "MIN_TICK",
    "Q96",
    "SwapStepResult",
    "TWO_FEE_UNITS",
    "apply_liquidity_delta",
    "calc_required_qty0",
    "calc_required_qty1",
    "calc_rmint_qty",
    "calc_unlock_qtys",
    "compute_swap_step",
    "div_ceiling",
    "get_liquidity_from_qties",
    "get_liquidity_from_qty0",
    "get_liquidity_from_qty1",
    "get_max_number_ticks",
    "get_qty0_from_burn_rtokens",
    "get_qty1_from_burn_rtokens",
    "get_sqrt_ratio_at_tick",
    "get_tick_at_sqrt_ratio",
    "mul_div_ceiling",
    "mul_div_floor",
]
