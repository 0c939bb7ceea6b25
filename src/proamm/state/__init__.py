"""
Mutable storage tables for pools
"""

from .balances import ZERO_ADDRESS, TokenLedger
from .linked_list import InitializedTicks
from .pools import PoolData, compute_pool_address, sort_tokens
from .positions import Position, PositionStore
from .ticks import TickInfo, TickLedger, TickUpdate

__all__ = [
    "ZERO_ADDRESS",
    "TokenLedger",
    "InitializedTicks",
    "PoolData",
    "compute_pool_address",
    "sort_tokens",
    "Position",
    "PositionStore",
    "TickInfo",
    "TickLedger",
    "TickUpdate",
]
