"""
Host chain: token ledger, block timestamp and all-or-nothing transactions.

Every mutating pool, factory and position-manager entry point runs inside
``Chain.atomic()``. On entry the chain snapshots every registered component;
if the body raises, all of them are restored and the exception propagates.
Nested transactions are allowed and roll back independently. Components
registered inside a rolled-back transaction are dropped with it.
`Chain.simulate()` restores unconditionally, for read-only quotes.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Protocol, Tuple

from ..kernels.constants import UINT32_MAX
from ..state.balances import TokenLedger


logger = logging.getLogger(__name__)


class Journaled(Protocol):
    def snapshot(self) -> Any: ...

    def restore(self, snapshot: Any) -> None: ...


class Chain:
    def __init__(self, timestamp: int = 1) -> None:
        if not (0 <= timestamp <= UINT32_MAX):
            raise ValueError(f"timestamp must fit in uint32: {timestamp}")
        self.ledger = TokenLedger()
        self._timestamp = timestamp
        self._components: List[Journaled] = [self.ledger]
        self._depth = 0

    @property
    def timestamp(self) -> int:
        return self._timestamp

    def set_timestamp(self, timestamp: int) -> None:
        if timestamp < self._timestamp:
            raise ValueError(f"time cannot go backwards: {timestamp} < {self._timestamp}")
        if timestamp > UINT32_MAX:
            raise ValueError(f"timestamp must fit in uint32: {timestamp}")
        self._timestamp = timestamp

    def advance_time(self, seconds: int) -> None:
        if seconds < 0:
            raise ValueError(f"seconds must be non-negative: {seconds}")
        self.set_timestamp(self._timestamp + seconds)

    def register(self, component: Journaled) -> None:
        """Include `component` in transaction snapshots."""
        if any(c is component for c in self._components):
            return
        self._components.append(component)

    @contextmanager
    def atomic(self, label: str = "tx") -> Iterator[None]:
        registered = len(self._components)
        snapshots = [(component, component.snapshot()) for component in self._components]
        self._depth += 1
        try:
            yield
        except BaseException as exc:
            self._rewind(registered, snapshots)
            logger.warning("rolled back %s at depth %d: %s", label, self._depth, exc)
            raise
        finally:
            self._depth -= 1

    @contextmanager
    def simulate(self, label: str = "call") -> Iterator[None]:
        """Run the body like a static call: every change is discarded on exit."""
        registered = len(self._components)
        snapshots = [(component, component.snapshot()) for component in self._components]
        self._depth += 1
        try:
            yield
        finally:
            self._rewind(registered, snapshots)
            self._depth -= 1
            logger.debug("discarded %s", label)

    def _rewind(self, registered: int, snapshots: List[Tuple[Journaled, Any]]) -> None:
        # components registered inside the transaction never existed
        del self._components[registered:]
        for component, snap in snapshots:
            component.restore(snap)

    # Token helpers: tokens are identified by address strings.

    def balance_of(self, token: str, holder: str) -> int:
        return self.ledger.balance_of(holder, token)

    def transfer(self, token: str, sender: str, recipient: str, amount: int) -> None:
        self.ledger.transfer(token, sender, recipient, amount)

    def mint_token(self, token: str, recipient: str, amount: int) -> None:
        self.ledger.mint(token, recipient, amount)

    def __repr__(self) -> str:
        return f"Chain(timestamp={self._timestamp}, components={len(self._components)})"
