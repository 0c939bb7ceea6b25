"""
Position manager, swap quoter and read helpers built on top of pools.
"""

from .position_manager import ManagedPosition, PositionManager
from .quoter import QuoteResult, quote_exact_input_single, quote_exact_output_single
from .ticks_reader import (
    get_all_ticks,
    get_nearest_initialized_ticks,
    get_ticks_in_range,
    get_ticks_previous,
    get_total_fees_owed_to_position,
    get_total_rtokens_owed_to_position,
)

__all__ = [
    "ManagedPosition",
    "PositionManager",
    "QuoteResult",
    "get_all_ticks",
    "get_nearest_initialized_ticks",
    "get_ticks_in_range",
    "get_ticks_previous",
    "get_total_fees_owed_to_position",
    "get_total_rtokens_owed_to_position",
    "quote_exact_input_single",
    "quote_exact_output_single",
]
