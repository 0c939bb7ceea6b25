"""Exception types for the pool engine.

Every rejection carries an ``ErrorKind``; the enum value is the short reason
string emitted by the on-chain implementation so that failures can be matched
either by kind or by reason (``pytest.raises(..., match="0 qty")``).

Raised errors always leave state untouched: public pool and position-manager
entry points run inside ``Chain.atomic()``, which restores the pre-call
snapshot. Factory setters validate before they mutate.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class ErrorKind(Enum):
    """Closed set of rejection reasons."""

    # Preconditions
    LOCKED = "locked"
    NOT_INITIALIZED = "not inited"
    ALREADY_INITIALIZED = "already inited"
    ZERO_QTY = "0 qty"
    ZERO_SWAP_QTY = "0 swapQty"
    INVALID_TICK_RANGE = "invalid tick range"
    BAD_TICK_RANGE = "bad tick range"
    INVALID_LOWER_TICK = "invalid lower tick"
    INVALID_UPPER_TICK = "invalid upper tick"
    TICK_NOT_IN_DISTANCE = "tick not in distance"
    INVALID_LIQUIDITY = "invalid liq"
    MAX_LIQUIDITY = "> max liquidity"
    BAD_LIMIT_SQRT_P = "bad limitSqrtP"
    INSUFFICIENT_POSITION = "insufficient position liquidity"
    INSUFFICIENT_BALANCE = "insufficient balance"

    # Arithmetic
    ZERO_DENOMINATOR = "0 denom"
    DENOM_LE_PROD1 = "denom <= prod1"
    OVERFLOW = "overflow"
    UNDERFLOW = "underflow"
    TICK_OUT_OF_RANGE = "T"
    SQRT_RATIO_OUT_OF_RANGE = "R"

    # Settlement
    LACKING_QTY0 = "lacking qty0"
    LACKING_QTY1 = "lacking qty1"
    LACKING_DELTA_QTY0 = "lacking deltaQty0"
    LACKING_DELTA_QTY1 = "lacking deltaQty1"
    LACKING_FEE_QTY0 = "lacking feeQty0"
    LACKING_FEE_QTY1 = "lacking feeQty1"

    # Tick list
    LOWER_VALUE_NOT_INITIALIZED = "lower value is not initialized"
    INVALID_LOWER_VALUE = "invalid lower value"
    REMOVE_NON_EXISTENT = "remove non-existent value"
    PREVIOUS_TICK_REMOVED = "previous tick has been removed"

    # Configuration / authorization
    FORBIDDEN = "forbidden"
    INVALID_FEE = "invalid fee"
    INVALID_TICK_DISTANCE = "invalid tickDistance"
    EXISTING_TICK_DISTANCE = "existing tickDistance"
    BAD_CONFIG = "bad config"
    IDENTICAL_TOKENS = "identical tokens"
    NULL_ADDRESS = "null address"
    POOL_EXISTS = "pool exists"
    UNKNOWN_POOL = "unknown pool"
    INVALID_CONFIG = "invalid config"

    # Oracle
    OBSERVATION_TOO_OLD = "OLD"
    ORACLE_NOT_INITIALIZED = "oracle not inited"

    # Position manager
    INVALID_TOKEN_ID = "invalid token id"
    NOT_OWNER = "not owner"
    POSITION_NOT_EMPTY = "Should remove liquidity first"
    NO_TOKENS_TO_BURN = "no tokens to burn"
    INVALID_TOKEN_ORDER = "invalid token order"
    INVALID_CALLBACK_SENDER = "invalid callback sender"
    PRICE_SLIPPAGE = "price slippage check"
    LOW_RETURN_AMOUNTS = "Low return amounts"
    POOL_MISMATCH = "tokenId and pool dont match"


class PoolError(Exception):
    """Base class: a named rejection with no partial effect."""

    def __init__(self, kind: ErrorKind, detail: str | None = None) -> None:
        self.kind = kind
        self.reason = kind.value
        self.detail = detail
        message = kind.value if detail is None else f"{kind.value} ({detail})"
        super().__init__(message)


class PreconditionError(PoolError):
    """Raised when an operation's inputs or the pool's state forbid it."""


class MathError(PoolError):
    """Raised on division by zero, overflow or an out-of-range conversion."""


class InsufficientPaymentError(PoolError):
    """Raised when a callback does not deliver the quantity it owes."""


class TickListError(PoolError):
    """Raised when a tick hint is stale or the tick list would be corrupted."""


class ForbiddenError(PoolError):
    """Raised when a privileged operation is attempted without the role."""

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(ErrorKind.FORBIDDEN, detail)


class ConfigError(PoolError):
    """Raised on invalid factory configuration."""


class OracleError(PoolError):
    """Raised by the observation store."""


class PositionManagerError(PoolError):
    """Raised by the periphery position manager."""
