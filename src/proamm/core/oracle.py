"""
Per-pool observation store for time-weighted average ticks.

Each pool appends `(timestamp, tick_cumulative)` observations, at most one per
timestamp. `tick_cumulative` grows by ``tick * elapsed_seconds`` between
observations, so the average tick over a window is the difference of two
cumulatives divided by the window length.

Observations live in a fixed-size ring per pool: once `cardinality` are held,
each write overwrites the oldest and older targets become unobservable.
"""

from __future__ import annotations

from bisect import bisect_right
from collections import deque
from dataclasses import dataclass
from operator import attrgetter
from typing import Deque, Dict, List, Sequence

from ..errors import ErrorKind, OracleError

MAX_CARDINALITY = 65535


@dataclass(frozen=True)
class Observation:
    timestamp: int
    tick_cumulative: int
    initialized: bool = True


_timestamp = attrgetter("timestamp")


def _transform(last: Observation, timestamp: int, tick: int) -> Observation:
    return Observation(timestamp, last.tick_cumulative + tick * (timestamp - last.timestamp))


def _div_trunc(numerator: int, denominator: int) -> int:
    # signed division rounding toward zero
    q = abs(numerator) // abs(denominator)
    return q if (numerator >= 0) == (denominator > 0) else -q


def _copy_rings(rings: Dict[str, Deque[Observation]]) -> Dict[str, Deque[Observation]]:
    # observations are frozen, copying the rings is enough
    return {pool: deque(ring, maxlen=ring.maxlen) for pool, ring in rings.items()}


class PoolOracle:
    def __init__(self, cardinality: int = MAX_CARDINALITY) -> None:
        if not (1 <= cardinality <= MAX_CARDINALITY):
            raise ValueError(f"cardinality must be in [1, {MAX_CARDINALITY}]: {cardinality}")
        self.cardinality = cardinality
        self._observations: Dict[str, Deque[Observation]] = {}

    def initialize_oracle(self, pool: str, timestamp: int) -> None:
        self._observations[pool] = deque([Observation(timestamp, 0)], maxlen=self.cardinality)

    def observations(self, pool: str) -> List[Observation]:
        return list(self._observations.get(pool, ()))

    def _require(self, pool: str) -> Deque[Observation]:
        obs = self._observations.get(pool)
        if not obs:
            raise OracleError(ErrorKind.ORACLE_NOT_INITIALIZED, pool)
        return obs

    def write(self, pool: str, timestamp: int, tick: int, liquidity: int) -> None:
        """Record that `tick` held from the last observation until `timestamp`."""
        obs = self._require(pool)
        last = obs[-1]
        if last.timestamp == timestamp:
            return
        if timestamp < last.timestamp:
            raise ValueError(f"observation timestamp went backwards: {timestamp} < {last.timestamp}")
        obs.append(_transform(last, timestamp, tick))

    def observe_single(self, pool: str, now: int, seconds_ago: int, tick: int) -> int:
        obs = self._require(pool)
        target = now - seconds_ago
        last = obs[-1]
        if target >= last.timestamp:
            return _transform(last, target, tick).tick_cumulative
        if target < obs[0].timestamp:
            raise OracleError(ErrorKind.OBSERVATION_TOO_OLD, f"target {target} < {obs[0].timestamp}")

        index = bisect_right(obs, target, key=_timestamp)
        before = obs[index - 1]
        if before.timestamp == target:
            return before.tick_cumulative
        after = obs[index]
        span = after.timestamp - before.timestamp
        return before.tick_cumulative + _div_trunc(
            after.tick_cumulative - before.tick_cumulative, span
        ) * (target - before.timestamp)

    def observe(self, pool: str, now: int, seconds_agos: Sequence[int], tick: int) -> List[int]:
        """Tick cumulatives at each ``now - seconds_ago``."""
        return [self.observe_single(pool, now, s, tick) for s in seconds_agos]

    def snapshot(self) -> dict:
        return _copy_rings(self._observations)

    def restore(self, snapshot: dict) -> None:
        self._observations = _copy_rings(snapshot)
