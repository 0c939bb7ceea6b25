"""
Command facade over a pool.

`step(pool, command)` dispatches one command and turns any rejection into a
`StepResult` instead of raising, so callers (replay tools, fuzzers) can treat
accepted and rejected commands uniformly. State effects are the same as
calling the pool method directly: a rejected command leaves nothing behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Literal, Mapping

from ..errors import ErrorKind, PoolError
from ..kernels.tick_math import MIN_TICK
from .pool import Pool


Action = Literal["unlock_pool", "mint", "burn", "burn_rtokens", "swap", "flash"]


@dataclass(frozen=True)
class Command:
    tag: Action
    args: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StepResult:
    accepted: bool
    result: Any = None
    error_kind: ErrorKind | None = None
    rejection: str | None = None


def _unlock_pool(pool: Pool, args: Mapping[str, Any]) -> Any:
    return pool.unlock_pool(args["caller"], args["initial_sqrt_p"], args.get("data"))


def _mint(pool: Pool, args: Mapping[str, Any]) -> Any:
    caller = args["caller"]
    return pool.mint(
        caller,
        args.get("recipient", caller.address),
        args["tick_lower"],
        args["tick_upper"],
        args.get("ticks_previous", (MIN_TICK, MIN_TICK)),
        args["qty"],
        args.get("data"),
    )


def _burn(pool: Pool, args: Mapping[str, Any]) -> Any:
    return pool.burn(args["caller"], args["tick_lower"], args["tick_upper"], args["qty"])


def _burn_rtokens(pool: Pool, args: Mapping[str, Any]) -> Any:
    return pool.burn_rtokens(args["caller"], args["qty"], args.get("is_logical_burn", False))


def _swap(pool: Pool, args: Mapping[str, Any]) -> Any:
    caller = args["caller"]
    return pool.swap(
        caller,
        args.get("recipient", caller.address),
        args["swap_qty"],
        args["is_token0"],
        args["limit_sqrt_p"],
        args.get("data"),
    )


def _flash(pool: Pool, args: Mapping[str, Any]) -> Any:
    caller = args["caller"]
    return pool.flash(
        caller,
        args.get("recipient", caller.address),
        args.get("qty0", 0),
        args.get("qty1", 0),
        args.get("data"),
    )


_HANDLERS: Dict[str, Callable[[Pool, Mapping[str, Any]], Any]] = {
    "unlock_pool": _unlock_pool,
    "mint": _mint,
    "burn": _burn,
    "burn_rtokens": _burn_rtokens,
    "swap": _swap,
    "flash": _flash,
}


def step(pool: Pool, command: Command) -> StepResult:
    """Execute a pool command."""
    handler = _HANDLERS.get(command.tag)
    if handler is None:
        return StepResult(accepted=False, rejection=f"unknown action: {command.tag}")
    try:
        return StepResult(accepted=True, result=handler(pool, command.args))
    except PoolError as exc:
        return StepResult(accepted=False, error_kind=exc.kind, rejection=str(exc))
    except (KeyError, TypeError, ValueError) as exc:
        return StepResult(accepted=False, rejection=f"invalid command: {exc!r}")


def step_or_raise(pool: Pool, command: Command) -> Any:
    handler = _HANDLERS.get(command.tag)
    if handler is None:
        raise ValueError(f"unknown action: {command.tag}")
    return handler(pool, command.args)
