"""In-process metrics for docsfront.

Metrics are exposed by the fixture API server at /metrics in Prometheus
text format.

Metrics collected:
    - docsfront_events_received_total: Analytics events accepted by the sink, by type
    - docsfront_events_dropped_total: Analytics deliveries that failed, by type
    - docsfront_suggestion_requests_total: Suggestion lookups, by kind (top, query)
    - docsfront_suggestion_fetch_failures_total: Suggestion fetches absorbed as empty
    - docsfront_picker_selections_total: Explicit picker selections, by kind
    - docsfront_locale_redirects_total: Navigation redirects, by reason
    - docsfront_request_duration_seconds: Fixture server request latency
    - docsfront_health_status: Fixture data health (1=loaded, 0=missing)
"""

from __future__ import annotations

import time
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock


def _label_string(labels: tuple[str, ...], values: tuple[str, ...]) -> str:
    return ",".join(f'{k}="{v}"' for k, v in zip(labels, values, strict=False))


@dataclass
class _SampleMetric:
    """Labelled float samples shared by counters and gauges."""

    name: str
    description: str
    labels: tuple[str, ...] = ()
    _values: dict[tuple[str, ...], float] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)

    kind = "untyped"

    def _add(self, label_values: tuple[str, ...], amount: float) -> None:
        with self._lock:
            self._values[label_values] = self._values.get(label_values, 0.0) + amount

    def get(self, *label_values: str) -> float:
        """Get the current value."""
        with self._lock:
            return self._values.get(label_values, 0.0)

    def total(self) -> float:
        """Sum across every label combination."""
        with self._lock:
            return sum(self._values.values())

    def collect(self) -> str:
        """Collect metric in Prometheus format."""
        lines = [
            f"# HELP {self.name} {self.description}",
            f"# TYPE {self.name} {self.kind}",
        ]
        with self._lock:
            if not self._values:
                lines.append(f"{self.name} 0")
            for label_values, value in sorted(self._values.items()):
                if self.labels and label_values:
                    label_str = _label_string(self.labels, label_values)
                    lines.append(f"{self.name}{{{label_str}}} {value}")
                else:
                    lines.append(f"{self.name} {value}")
        return "\n".join(lines)


@dataclass
class Counter(_SampleMetric):
    """Thread-safe counter metric."""

    kind = "counter"

    def inc(self, *label_values: str, amount: float = 1.0) -> None:
        """Increment the counter."""
        self._add(label_values, amount)


@dataclass
class Gauge(_SampleMetric):
    """Thread-safe gauge metric."""

    kind = "gauge"

    def set(self, value: float, *label_values: str) -> None:
        """Set the gauge value."""
        with self._lock:
            self._values[label_values] = value

    def inc(self, *label_values: str, amount: float = 1.0) -> None:
        """Increment the gauge."""
        self._add(label_values, amount)

    def dec(self, *label_values: str, amount: float = 1.0) -> None:
        """Decrement the gauge."""
        self._add(label_values, -amount)


@dataclass
class Histogram:
    """Thread-safe histogram metric with configurable buckets."""

    name: str
    description: str
    buckets: tuple[float, ...] = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
    labels: tuple[str, ...] = ()
    _bucket_counts: dict[tuple[str, ...], dict[float, int]] = field(default_factory=dict)
    _sums: dict[tuple[str, ...], float] = field(default_factory=dict)
    _counts: dict[tuple[str, ...], int] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)

    def observe(self, value: float, *label_values: str) -> None:
        """Record an observation."""
        with self._lock:
            key = label_values
            if key not in self._bucket_counts:
                self._bucket_counts[key] = dict.fromkeys(self.buckets, 0)
            for bucket in self.buckets:
                if value <= bucket:
                    self._bucket_counts[key][bucket] += 1
            self._sums[key] = self._sums.get(key, 0.0) + value
            self._counts[key] = self._counts.get(key, 0) + 1

    @contextmanager
    def time(self, *label_values: str) -> Generator[None, None, None]:
        """Context manager to time a block of code."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe(time.perf_counter() - start, *label_values)

    def collect(self) -> str:
        """Collect metric in Prometheus format."""
        lines = [
            f"# HELP {self.name} {self.description}",
            f"# TYPE {self.name} histogram",
        ]
        with self._lock:
            for label_values in sorted(self._bucket_counts.keys()):
                label_prefix = ""
                if self.labels and label_values:
                    label_prefix = _label_string(self.labels, label_values) + ","
                for bucket in sorted(self.buckets):
                    cumulative = self._bucket_counts[label_values].get(bucket, 0)
                    lines.append(
                        f'{self.name}_bucket{{{label_prefix}le="{bucket}"}} {cumulative}'
                    )
                count = self._counts.get(label_values, 0)
                lines.append(f'{self.name}_bucket{{{label_prefix}le="+Inf"}} {count}')
                labels = label_prefix[:-1] if label_prefix else ""
                sum_val = self._sums.get(label_values, 0.0)
                lines.append(f"{self.name}_sum{{{labels}}} {sum_val}")
                lines.append(f"{self.name}_count{{{labels}}} {count}")
        return "\n".join(lines)


class MetricsRegistry:
    """Registry for all docsfront metrics."""

    def __init__(self) -> None:
        self.events_received_total = Counter(
            name="docsfront_events_received_total",
            description="Analytics events accepted by the events sink",
            labels=("type",),
        )
        self.events_dropped_total = Counter(
            name="docsfront_events_dropped_total",
            description="Analytics deliveries that failed and were dropped",
            labels=("type",),
        )
        self.suggestion_requests_total = Counter(
            name="docsfront_suggestion_requests_total",
            description="Suggestion lookups served",
            labels=("kind",),  # top, query
        )
        self.suggestion_fetch_failures_total = Counter(
            name="docsfront_suggestion_fetch_failures_total",
            description="Suggestion fetches that failed and were shown as empty",
        )
        self.picker_selections_total = Counter(
            name="docsfront_picker_selections_total",
            description="Explicit picker selections",
            labels=("kind",),
        )
        self.locale_redirects_total = Counter(
            name="docsfront_locale_redirects_total",
            description="Navigations answered with a redirect",
            labels=("reason",),
        )
        self.request_duration_seconds = Histogram(
            name="docsfront_request_duration_seconds",
            description="Fixture server request duration in seconds",
            labels=("endpoint",),
        )
        self.health_status = Gauge(
            name="docsfront_health_status",
            description="Health of fixture data (1=loaded, 0=missing)",
            labels=("dependency",),
        )

    def collect_all(self) -> str:
        """Collect all metrics in Prometheus format."""
        metrics = [
            self.events_received_total.collect(),
            self.events_dropped_total.collect(),
            self.suggestion_requests_total.collect(),
            self.suggestion_fetch_failures_total.collect(),
            self.picker_selections_total.collect(),
            self.locale_redirects_total.collect(),
            self.request_duration_seconds.collect(),
            self.health_status.collect(),
        ]
        return "\n\n".join(metrics) + "\n"


# Global metrics registry
metrics = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Return the global metrics registry."""
    return metrics
