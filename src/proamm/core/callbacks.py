"""
Caller-supplied callbacks.

Pools never pull tokens. They call back into the caller, which must transfer
what it owes to the pool before returning; the pool then checks its own
balances. Callbacks run while the pool is locked, so re-entering the same pool
fails with ``locked``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MintCallback(Protocol):
    address: str

    def mint_callback(self, pool: Any, qty0: int, qty1: int, data: Any) -> None: ...


@runtime_checkable
class SwapCallback(Protocol):
    address: str

    def swap_callback(self, pool: Any, delta_qty0: int, delta_qty1: int, data: Any) -> None: ...


@runtime_checkable
class FlashCallback(Protocol):
    address: str

    def flash_callback(self, pool: Any, fee_qty0: int, fee_qty1: int, data: Any) -> None: ...
