"""
In-process metrics registry for the parse pipeline (not suitable for
multi-process aggregation).

Counters and the min/max latency cells are independent single-value cells
updated through compare-and-swap, so no request ever waits on another to bump
a counter. The latency histogram is a small table that needs a coordinated
update and sits behind its own lock.
"""

from __future__ import annotations

import bisect
import math
import time
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any, Callable, Iterable, Optional, Tuple

# Upper bounds in milliseconds; the last bucket catches everything else.
DEFAULT_BUCKET_BOUNDS_MS: Tuple[float, ...] = (1, 5, 10, 25, 50, 100, 500, math.inf)


class Outcome(str, Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    VALIDATION_ERROR = "validation_error"
    PARSE_FAILURE = "parse_failure"


class AtomicValue:
    """A single shared value with load/add/compare-and-swap operations."""

    __slots__ = ("_value", "_lock")

    def __init__(self, value: Any = 0) -> None:
        self._value = value
        self._lock = Lock()

    def load(self) -> Any:
        return self._value

    def store(self, value: Any) -> None:
        with self._lock:
            self._value = value

    def add(self, delta: Any = 1) -> Any:
        with self._lock:
            self._value += delta
            return self._value

    def compare_and_swap(self, expected: Any, new: Any) -> bool:
        with self._lock:
            if self._value != expected:
                return False
            self._value = new
            return True


def update_if(cell: AtomicValue, value: Any, should_replace: Callable[[Any, Any], bool]) -> bool:
    """
    Store ``value`` in ``cell`` while ``should_replace(current, value)`` holds.

    Retries when another writer got in between the read and the swap; gives up
    as soon as the current value no longer needs replacing.
    """
    current = cell.load()
    while should_replace(current, value):
        if cell.compare_and_swap(current, value):
            return True
        current = cell.load()
    return False


def _lower(current: Optional[float], candidate: float) -> bool:
    return current is None or candidate < current


def _higher(current: Optional[float], candidate: float) -> bool:
    return current is None or candidate > current


class LatencyHistogram:
    """Ordered table of ``[upper_bound_ms, count]`` rows."""

    def __init__(self, bounds_ms: Iterable[float] = DEFAULT_BUCKET_BOUNDS_MS) -> None:
        bounds = tuple(float(bound) for bound in bounds_ms)
        if not bounds or list(bounds) != sorted(bounds):
            raise ValueError("histogram bounds must be a non-empty ascending sequence")
        if bounds[-1] != math.inf:
            bounds = bounds + (math.inf,)
        self._bounds = bounds
        self._counts = [0] * len(bounds)
        self._lock = Lock()

    @property
    def bounds(self) -> Tuple[float, ...]:
        return self._bounds

    def bucket_index(self, latency_ms: float) -> int:
        # Smallest upper bound strictly greater than the latency.
        index = bisect.bisect_right(self._bounds, latency_ms)
        return min(index, len(self._bounds) - 1)

    def observe(self, latency_ms: float) -> int:
        index = self.bucket_index(latency_ms)
        with self._lock:
            self._counts[index] += 1
        return index

    def rows(self) -> Tuple[Tuple[float, int], ...]:
        with self._lock:
            counts = list(self._counts)
        return tuple(zip(self._bounds, counts))

    def reset(self) -> None:
        with self._lock:
            self._counts = [0] * len(self._bounds)


@dataclass(frozen=True, slots=True)
class MetricsSnapshot:
    """Best-effort read of every registry field; fields are read independently."""

    total_requests: int
    get_requests: int
    post_requests: int
    successful_parses: int
    failed_parses: int
    timeout_errors: int
    validation_errors: int
    parse_errors: int
    parse_time_total_ms: float
    parse_time_min_ms: Optional[float]
    parse_time_max_ms: Optional[float]
    histogram: Tuple[Tuple[float, int], ...]
    start_time: float

    @property
    def average_parse_time_ms(self) -> float:
        if self.successful_parses == 0:
            return 0.0
        return self.parse_time_total_ms / self.successful_parses

    @property
    def success_rate_percent(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_parses / self.total_requests * 100.0

    @property
    def cumulative_buckets(self) -> Tuple[Tuple[float, int], ...]:
        running = 0
        cumulative = []
        for bound, count in self.histogram:
            running += count
            cumulative.append((bound, running))
        return tuple(cumulative)

    def uptime_seconds(self, now: Optional[float] = None) -> int:
        current = time.time() if now is None else now
        return max(0, int(current - self.start_time))


class MetricsRegistry:
    def __init__(
        self,
        *,
        bucket_bounds_ms: Iterable[float] = DEFAULT_BUCKET_BOUNDS_MS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self._start_time = clock()
        self._total = AtomicValue(0)
        self._get = AtomicValue(0)
        self._post = AtomicValue(0)
        self._successful = AtomicValue(0)
        self._failed = AtomicValue(0)
        self._timeouts = AtomicValue(0)
        self._validation = AtomicValue(0)
        self._parse_errors = AtomicValue(0)
        self._parse_time_total = AtomicValue(0.0)
        self._parse_time_min = AtomicValue(None)
        self._parse_time_max = AtomicValue(None)
        self._histogram = LatencyHistogram(bucket_bounds_ms)

    @property
    def start_time(self) -> float:
        return self._start_time

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def record_request(self, method: str) -> None:
        self._total.add(1)
        verb = (method or "").upper()
        if verb == "GET":
            self._get.add(1)
        elif verb == "POST":
            self._post.add(1)

    def record_outcome(self, outcome: Outcome, elapsed_ms: Optional[float] = None) -> None:
        # Raises ValueError for anything that is not an Outcome value.
        outcome = Outcome(outcome)
        if outcome is Outcome.SUCCESS:
            self._record_success(0.0 if elapsed_ms is None else max(0.0, float(elapsed_ms)))
            return
        self._failed.add(1)
        if outcome is Outcome.TIMEOUT:
            self._timeouts.add(1)
        elif outcome is Outcome.VALIDATION_ERROR:
            self._validation.add(1)
        elif outcome is Outcome.PARSE_FAILURE:
            self._parse_errors.add(1)

    def _record_success(self, elapsed_ms: float) -> None:
        self._successful.add(1)
        self._parse_time_total.add(elapsed_ms)
        update_if(self._parse_time_min, elapsed_ms, _lower)
        update_if(self._parse_time_max, elapsed_ms, _higher)
        self._histogram.observe(elapsed_ms)

    def snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            total_requests=self._total.load(),
            get_requests=self._get.load(),
            post_requests=self._post.load(),
            successful_parses=self._successful.load(),
            failed_parses=self._failed.load(),
            timeout_errors=self._timeouts.load(),
            validation_errors=self._validation.load(),
            parse_errors=self._parse_errors.load(),
            parse_time_total_ms=self._parse_time_total.load(),
            parse_time_min_ms=self._parse_time_min.load(),
            parse_time_max_ms=self._parse_time_max.load(),
            histogram=self._histogram.rows(),
            start_time=self._start_time,
        )

    def reset(self) -> None:
        """Zero every counter; the start time is kept."""
        for cell in (
            self._total,
            self._get,
            self._post,
            self._successful,
            self._failed,
            self._timeouts,
            self._validation,
            self._parse_errors,
        ):
            cell.store(0)
        self._parse_time_total.store(0.0)
        self._parse_time_min.store(None)
        self._parse_time_max.store(None)
        self._histogram.reset()


default_metrics = MetricsRegistry()
