from __future__ import annotations

import hypothesis.strategies as st
import pytest
from hypothesis import given

from proamm.errors import ErrorKind, TickListError
from proamm.kernels.tick_math import MAX_TICK, MIN_TICK
from proamm.state.linked_list import InitializedTicks


def _insert_sorted(ticks: InitializedTicks, value: int) -> None:
    lower = ticks.head
    while ticks.next(lower) < value:
        lower = ticks.next(lower)
    ticks.insert(value, lower, ticks.next(lower))


class TestInit:
    def test_sentinels(self):
        ticks = InitializedTicks()
        assert list(ticks) == [MIN_TICK, MAX_TICK]
        assert ticks.previous(MIN_TICK) == MIN_TICK
        assert ticks.next(MIN_TICK) == MAX_TICK
        assert ticks.previous(MAX_TICK) == MIN_TICK
        assert ticks.next(MAX_TICK) == MAX_TICK

    def test_rejects_inverted_bounds(self):
        with pytest.raises(ValueError):
            InitializedTicks(10, 10)

    def test_unknown_value(self):
        with pytest.raises(ValueError):
            InitializedTicks().next(5)


class TestInsert:
    def test_links_both_neighbours(self):
        ticks = InitializedTicks()
        ticks.insert(0, MIN_TICK, MAX_TICK)
        ticks.insert(-8, MIN_TICK, 0)
        assert list(ticks) == [MIN_TICK, -8, 0, MAX_TICK]
        assert ticks.previous(0) == -8
        assert ticks.next(-8) == 0

    def test_lower_not_initialized(self):
        ticks = InitializedTicks()
        with pytest.raises(TickListError) as excinfo:
            ticks.insert(16, 8, MAX_TICK)
        assert excinfo.value.kind is ErrorKind.LOWER_VALUE_NOT_INITIALIZED

    @pytest.mark.parametrize(
        "new_value,lower,next_value",
        [
            (0, 0, MAX_TICK),  # already linked
            (-16, 0, MAX_TICK),  # below lower
            (8, MIN_TICK, MAX_TICK),  # next is not lower's successor
        ],
    )
    def test_invalid_position(self, new_value, lower, next_value):
        ticks = InitializedTicks()
        ticks.insert(0, MIN_TICK, MAX_TICK)
        with pytest.raises(TickListError) as excinfo:
            ticks.insert(new_value, lower, next_value)
        assert excinfo.value.kind is ErrorKind.INVALID_LOWER_VALUE


class TestRemove:
    def test_returns_predecessor(self):
        ticks = InitializedTicks()
        _insert_sorted(ticks, 0)
        _insert_sorted(ticks, 8)
        assert ticks.remove(8) == 0
        assert ticks.remove(0) == MIN_TICK
        assert list(ticks) == [MIN_TICK, MAX_TICK]

    def test_sentinels_are_kept(self):
        ticks = InitializedTicks()
        _insert_sorted(ticks, 0)
        assert ticks.remove(MIN_TICK) == MIN_TICK
        assert ticks.remove(MAX_TICK) == 0
        assert list(ticks) == [MIN_TICK, 0, MAX_TICK]

    def test_non_existent(self):
        with pytest.raises(TickListError, match="remove non-existent value"):
            InitializedTicks().remove(42)


@given(st.lists(st.integers(min_value=MIN_TICK + 1, max_value=MAX_TICK - 1), unique=True, max_size=30), st.data())
def test_stays_sorted_under_inserts_and_removes(values, data):
    ticks = InitializedTicks()
    for value in values:
        _insert_sorted(ticks, value)
    removed = data.draw(st.lists(st.sampled_from(values), unique=True) if values else st.just([]))
    for value in removed:
        ticks.remove(value)

    expected = [MIN_TICK] + sorted(set(values) - set(removed)) + [MAX_TICK]
    assert list(ticks) == expected
    assert len(ticks) == len(expected)
    for lower, upper in zip(expected, expected[1:]):
        assert ticks.next(lower) == upper
        assert ticks.previous(upper) == lower
