import math
import threading

import pytest

from jp_address_api.metrics import (
    AtomicValue,
    LatencyHistogram,
    MetricsRegistry,
    Outcome,
    update_if,
)


def test_atomic_value_compare_and_swap():
    cell = AtomicValue(3)
    assert not cell.compare_and_swap(2, 10)
    assert cell.load() == 3
    assert cell.compare_and_swap(3, 10)
    assert cell.load() == 10


def test_update_if_only_moves_in_one_direction():
    cell = AtomicValue(None)
    lower = lambda current, value: current is None or value < current  # noqa: E731
    assert update_if(cell, 5.0, lower)
    assert update_if(cell, 2.0, lower)
    assert not update_if(cell, 4.0, lower)
    assert cell.load() == 2.0


def test_update_if_retries_after_concurrent_write():
    class RacingCell(AtomicValue):
        raced = False

        def compare_and_swap(self, expected, new):
            if not self.raced:
                # Another writer lands a smaller value first.
                self.raced = True
                self.store(1.0)
                return False
            return super().compare_and_swap(expected, new)

    cell = RacingCell(10.0)
    lower = lambda current, value: current is None or value < current  # noqa: E731
    assert not update_if(cell, 3.0, lower)
    assert cell.load() == 1.0


@pytest.mark.parametrize(
    "latency,index",
    [
        (0, 0),
        (0.5, 0),
        (1, 1),
        (4.9, 1),
        (5, 2),
        (9, 2),
        (10, 3),
        (24, 3),
        (25, 4),
        (49, 4),
        (50, 5),
        (99, 5),
        (100, 6),
        (499, 6),
        (500, 7),
        (30000, 7),
        (math.inf, 7),
    ],
)
def test_histogram_bucket_selection(latency, index):
    assert LatencyHistogram().bucket_index(latency) == index


def test_histogram_rows_are_bound_count_pairs():
    histogram = LatencyHistogram((2, 4))
    histogram.observe(1)
    histogram.observe(3)
    histogram.observe(3)
    histogram.observe(100)
    assert histogram.rows() == ((2.0, 1), (4.0, 2), (math.inf, 1))


def test_histogram_rejects_unsorted_bounds():
    with pytest.raises(ValueError):
        LatencyHistogram((5, 1))


def test_success_updates_latency_aggregates():
    registry = MetricsRegistry()
    registry.record_request("GET")
    registry.record_outcome(Outcome.SUCCESS, 12.0)
    registry.record_request("POST")
    registry.record_outcome(Outcome.SUCCESS, 3.0)
    snap = registry.snapshot()
    assert snap.successful_parses == 2
    assert snap.parse_time_total_ms == pytest.approx(15.0)
    assert snap.parse_time_min_ms == 3.0
    assert snap.parse_time_max_ms == 12.0
    assert snap.average_parse_time_ms == pytest.approx(7.5)
    assert sum(count for _, count in snap.histogram) == 2


def test_failures_do_not_touch_latency_aggregates():
    registry = MetricsRegistry()
    for outcome in (Outcome.TIMEOUT, Outcome.VALIDATION_ERROR, Outcome.PARSE_FAILURE):
        registry.record_request("GET")
        registry.record_outcome(outcome, 999.0)
    snap = registry.snapshot()
    assert snap.failed_parses == 3
    assert snap.timeout_errors == 1
    assert snap.validation_errors == 1
    assert snap.parse_errors == 1
    assert snap.successful_parses == 0
    assert snap.parse_time_total_ms == 0.0
    assert snap.parse_time_min_ms is None
    assert snap.parse_time_max_ms is None
    assert all(count == 0 for _, count in snap.histogram)


def test_empty_registry_derived_values():
    snap = MetricsRegistry().snapshot()
    assert snap.average_parse_time_ms == 0.0
    assert snap.success_rate_percent == 0.0


def test_unknown_method_counts_only_in_total():
    registry = MetricsRegistry()
    registry.record_request("PUT")
    snap = registry.snapshot()
    assert snap.total_requests == 1
    assert snap.get_requests == 0
    assert snap.post_requests == 0


def test_reset_keeps_start_time():
    ticks = iter([100.0, 200.0])
    registry = MetricsRegistry(clock=lambda: next(ticks))
    registry.record_request("GET")
    registry.record_outcome(Outcome.SUCCESS, 1.0)
    registry.reset()
    snap = registry.snapshot()
    assert snap.total_requests == 0
    assert snap.parse_time_min_ms is None
    assert snap.start_time == 100.0


def test_concurrent_updates_from_threads():
    registry = MetricsRegistry()
    threads_count = 8
    per_thread = 500

    def worker(offset):
        for i in range(per_thread):
            registry.record_request("GET" if (i + offset) % 2 else "POST")
            registry.record_outcome(Outcome.SUCCESS, float((i * 7 + offset) % 600))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(threads_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snap = registry.snapshot()
    total = threads_count * per_thread
    assert snap.total_requests == total
    assert snap.get_requests + snap.post_requests == total
    assert snap.successful_parses == total
    assert sum(count for _, count in snap.histogram) == total
    assert snap.parse_time_min_ms == 0.0
    assert snap.parse_time_max_ms == 599.0
    assert snap.parse_time_min_ms <= snap.parse_time_max_ms
    cumulative = [count for _, count in snap.cumulative_buckets]
    assert cumulative == sorted(cumulative)
    assert cumulative[-1] == total


def test_record_outcome_accepts_outcome_values_only():
    registry = MetricsRegistry()
    registry.record_outcome("success", 1.0)
    with pytest.raises(ValueError):
        registry.record_outcome("bogus")
    snap = registry.snapshot()
    assert snap.successful_parses == 1
    assert snap.failed_parses == 0
