"""Prometheus text rendering of a metrics snapshot."""

from __future__ import annotations

import math
from typing import List, Optional

from jp_address_api.metrics import MetricsSnapshot

DEFAULT_NAMESPACE = "japanese_address_parser"
CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


def _le_label(bound_ms: float) -> str:
    if math.isinf(bound_ms):
        return "+Inf"
    return f"{bound_ms / 1000.0:.3f}"


def _seconds(value_ms: Optional[float]) -> float:
    return 0.0 if value_ms is None else value_ms / 1000.0


def _block(lines: List[str], name: str, kind: str, help_text: str, samples: List[str]) -> None:
    lines.append(f"# HELP {name} {help_text}")
    lines.append(f"# TYPE {name} {kind}")
    lines.extend(samples)
    lines.append("")


def render_metrics(
    snapshot: MetricsSnapshot,
    *,
    now: Optional[float] = None,
    namespace: str = DEFAULT_NAMESPACE,
) -> str:
    """
    Render ``snapshot`` in the Prometheus text exposition format.

    Derived values (average, success rate, cumulative buckets, uptime) are
    computed here; the snapshot itself is never modified. Output is stable for
    a given snapshot and ``now``.
    """
    ns = namespace
    lines: List[str] = []

    _block(lines, f"{ns}_requests_total", "counter",
           "Total number of address parsing requests",
           [f"{ns}_requests_total {snapshot.total_requests}"])
    _block(lines, f"{ns}_requests_by_method_total", "counter",
           "Total requests by HTTP method",
           [
               f'{ns}_requests_by_method_total{{method="GET"}} {snapshot.get_requests}',
               f'{ns}_requests_by_method_total{{method="POST"}} {snapshot.post_requests}',
           ])
    _block(lines, f"{ns}_requests_successful_total", "counter",
           "Total number of successful address parsing requests",
           [f"{ns}_requests_successful_total {snapshot.successful_parses}"])
    _block(lines, f"{ns}_requests_failed_total", "counter",
           "Total number of failed address parsing requests",
           [f"{ns}_requests_failed_total {snapshot.failed_parses}"])
    _block(lines, f"{ns}_timeout_errors_total", "counter",
           "Total number of timeout errors",
           [f"{ns}_timeout_errors_total {snapshot.timeout_errors}"])
    _block(lines, f"{ns}_validation_errors_total", "counter",
           "Total number of validation errors",
           [f"{ns}_validation_errors_total {snapshot.validation_errors}"])
    _block(lines, f"{ns}_parse_errors_total", "counter",
           "Total number of errors reported by the address parser",
           [f"{ns}_parse_errors_total {snapshot.parse_errors}"])
    _block(lines, f"{ns}_success_rate_percent", "gauge",
           "Success rate of address parsing requests as percentage",
           [f"{ns}_success_rate_percent {snapshot.success_rate_percent:.2f}"])
    _block(lines, f"{ns}_parse_duration_seconds_total", "counter",
           "Total time spent parsing addresses in seconds",
           [f"{ns}_parse_duration_seconds_total {_seconds(snapshot.parse_time_total_ms):.3f}"])
    _block(lines, f"{ns}_parse_duration_seconds", "gauge",
           "Parsing duration statistics in seconds",
           [
               f'{ns}_parse_duration_seconds{{stat="avg"}} {_seconds(snapshot.average_parse_time_ms):.6f}',
               f'{ns}_parse_duration_seconds{{stat="min"}} {_seconds(snapshot.parse_time_min_ms):.6f}',
               f'{ns}_parse_duration_seconds{{stat="max"}} {_seconds(snapshot.parse_time_max_ms):.6f}',
           ])
    _block(lines, f"{ns}_parse_duration_histogram", "histogram",
           "Parse duration distribution",
           [
               f'{ns}_parse_duration_histogram_bucket{{le="{_le_label(bound)}"}} {count}'
               for bound, count in snapshot.cumulative_buckets
           ])
    _block(lines, f"{ns}_uptime_seconds", "gauge",
           "Service uptime in seconds",
           [f"{ns}_uptime_seconds {snapshot.uptime_seconds(now)}"])

    # Drop the separator after the last block; keep the trailing newline.
    return "\n".join(lines[:-1]) + "\n"
