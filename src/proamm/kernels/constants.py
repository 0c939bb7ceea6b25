"""
Protocol-wide integer constants.

Units/conventions:
- sqrt prices are Q64.96 fixed point (`sqrt(price) * 2**96`).
- fees are expressed in fee units (1 / 100_000), so 0.3% == 300.
- fee growth is Q96 rTokens per unit of base liquidity.
"""

from __future__ import annotations


RES_96 = 96
Q96 = 1 << RES_96

FEE_UNITS = 100_000
TWO_FEE_UNITS = 2 * FEE_UNITS
BPS = 10_000

# Reinvestment seed locked in the pool at unlock.
MIN_LIQUIDITY = 100_000

# Upper bound on a single swap step (~5% price movement).
MAX_TICK_DISTANCE = 480

# Bounded walk from a stale previous-tick hint when inserting a tick.
MAX_TICK_TRAVEL = 10

# Protocol fee may skim at most 20% of reinvested fees.
MAX_GOVERNMENT_FEE_UNITS = 20_000

UINT32_MAX = (1 << 32) - 1
UINT128_MAX = (1 << 128) - 1
UINT160_MAX = (1 << 160) - 1
UINT256_MAX = (1 << 256) - 1
INT128_MAX = (1 << 127) - 1
INT128_MIN = -(1 << 127)
INT256_MAX = (1 << 255) - 1
INT256_MIN = -(1 << 255)

# Wrap-around widths of the global accumulators.
FEE_GROWTH_MOD = 1 << 256
SECONDS_PER_LIQUIDITY_MOD = 1 << 128
