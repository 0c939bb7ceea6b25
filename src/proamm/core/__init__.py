"""
Pool engine: host chain, configuration, reinvestment accounting, the swap
loop, the pool state machine and the factory.
"""

from .anti_snipe import (
    ImmediateRelease,
    LinearVesting,
    VestingRecord,
    VestingStrategy,
    VestingUpdate,
    calc_fee_proportions,
    strategy_for,
)
from .callbacks import FlashCallback, MintCallback, SwapCallback
from .chain import Chain
from .config import FactoryConfig, FeeTier, config_from_mapping, load_config
from .engine import Command, StepResult, step, step_or_raise
from .factory import Factory
from .oracle import Observation, PoolOracle
from .pool import LiquidityState, Pool, PoolState, PositionChange

__all__ = [
    "Chain",
    "Command",
    "Factory",
    "FactoryConfig",
    "FeeTier",
    "FlashCallback",
    "ImmediateRelease",
    "LinearVesting",
    "LiquidityState",
    "MintCallback",
    "Observation",
    "Pool",
    "PoolOracle",
    "PoolState",
    "PositionChange",
    "StepResult",
    "SwapCallback",
    "VestingRecord",
    "VestingStrategy",
    "VestingUpdate",
    "calc_fee_proportions",
    "config_from_mapping",
    "load_config",
    "step",
    "step_or_raise",
    "strategy_for",
]
