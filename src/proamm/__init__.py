"""
proamm: a concentrated-liquidity AMM pool engine with reinvested fees.
"""

from .core import Chain, Factory, FactoryConfig, Pool
from .errors import ErrorKind, PoolError
from .periphery import PositionManager

__all__ = [
    "Chain",
    "ErrorKind",
    "Factory",
    "FactoryConfig",
    "Pool",
    "PoolError",
    "PositionManager",
]

__version__ = "0.1.0"
