"""
Sorted doubly linked list of initialized ticks.

Links are stored in an arena keyed by tick index, so neighbours are plain
integers. The list always holds two sentinels: the head (its `previous` points
to itself) and the tail (its `next` points to itself). Sentinels are never
removed, which lets the swap loop walk without bounds checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator

from ..errors import ErrorKind, TickListError
from ..kernels.tick_math import MAX_TICK, MIN_TICK


@dataclass
class TickLink:
    previous: int
    next: int


class InitializedTicks:
    def __init__(self, min_value: int = MIN_TICK, max_value: int = MAX_TICK) -> None:
        if min_value >= max_value:
            raise ValueError(f"head must be below tail: {min_value} >= {max_value}")
        self.head = min_value
        self.tail = max_value
        self._links: Dict[int, TickLink] = {
            min_value: TickLink(previous=min_value, next=max_value),
            max_value: TickLink(previous=min_value, next=max_value),
        }

    def __contains__(self, value: int) -> bool:
        return value in self._links

    def __len__(self) -> int:
        return len(self._links)

    def __iter__(self) -> Iterator[int]:
        """Iterate from head to tail."""
        value = self.head
        while True:
            yield value
            if value == self.tail:
                return
            value = self._links[value].next

    def next(self, value: int) -> int:
        return self._link(value).next

    def previous(self, value: int) -> int:
        return self._link(value).previous

    def _link(self, value: int) -> TickLink:
        link = self._links.get(value)
        if link is None:
            raise ValueError(f"tick {value} is not initialized")
        return link

    def insert(self, new_value: int, lower_value: int, next_value: int) -> None:
        """Link `new_value` between `lower_value` and its current successor `next_value`."""
        lower = self._links.get(lower_value)
        if lower is None:
            raise TickListError(ErrorKind.LOWER_VALUE_NOT_INITIALIZED, f"tick {lower_value}")
        if new_value in self._links:
            raise TickListError(ErrorKind.INVALID_LOWER_VALUE, f"tick {new_value} already linked")
        if not (lower_value < new_value < next_value) or lower.next != next_value:
            raise TickListError(
                ErrorKind.INVALID_LOWER_VALUE,
                f"{new_value} does not fit between {lower_value} and {next_value}",
            )
        self._links[new_value] = TickLink(previous=lower_value, next=next_value)
        self._links[next_value].previous = new_value
        lower.next = new_value

    def remove(self, removed_value: int) -> int:
        """
        Unlink `removed_value` and return the nearest initialized value below it.

        Removing a sentinel is a no-op: the head returns itself and the tail
        returns its predecessor.
        """
        link = self._links.get(removed_value)
        if link is None:
            raise TickListError(ErrorKind.REMOVE_NON_EXISTENT, f"tick {removed_value}")
        if removed_value == self.head:
            return removed_value
        if removed_value == self.tail:
            return link.previous
        self._links[link.previous].next = link.next
        self._links[link.next].previous = link.previous
        del self._links[removed_value]
        return link.previous

    def __repr__(self) -> str:
        return f"InitializedTicks({list(self)})"
