# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Transaction metrics with Prometheus-compatible counters, gauges and histograms."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from txflow.context.model import MetricsContext
    from txflow.executor.result import TransactionError


class MetricsRegistry:
    """Registry for application metrics.

    Wraps prometheus_client to provide a clean API for creating and
    managing metrics. Ensures each metric name is registered only once.

    Args:
        registry: Target prometheus registry (the process-wide default
            registry when omitted).
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry if registry is not None else REGISTRY
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}
        self._gauges: dict[str, Gauge] = {}

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def counter(self, name: str, description: str, labels: list[str] | None = None) -> Counter:
        """Get or create a counter metric."""
        if name not in self._counters:
            self._counters[name] = Counter(name, description, labels or [], registry=self._registry)
        return self._counters[name]

    def histogram(
        self,
        name: str,
        description: str,
        labels: list[str] | None = None,
        buckets: tuple[float, ...] | None = None,
    ) -> Histogram:
        """Get or create a histogram metric."""
        if name not in self._histograms:
            kwargs: dict[str, Any] = {}
            if buckets:
                kwargs["buckets"] = buckets
            self._histograms[name] = Histogram(
                name, description, labels or [], registry=self._registry, **kwargs
            )
        return self._histograms[name]

    def gauge(self, name: str, description: str, labels: list[str] | None = None) -> Gauge:
        """Get or create a gauge metric."""
        if name not in self._gauges:
            self._gauges[name] = Gauge(name, description, labels or [], registry=self._registry)
        return self._gauges[name]


# Used by collectors built without an explicit registry.
default_registry = MetricsRegistry()


class PrometheusMetricsCollector:
    """MetricsCollector exporting transaction counts and durations to Prometheus.

    Prometheus needs a fixed label set, so only the tag keys listed in
    *label_tags* become labels; a transaction missing one of those tags is
    recorded with an empty label value.

    Collectors created without *registry* share ``default_registry`` and
    therefore the same metric objects; within one namespace they must use
    the same *label_tags*.

    Metrics (with the default ``txflow`` namespace):

    * ``txflow_transactions_started_total``
    * ``txflow_transactions_succeeded_total``
    * ``txflow_transactions_failed_total`` (extra ``code`` label)
    * ``txflow_transactions_in_flight``
    * ``txflow_transaction_duration_seconds`` (extra ``outcome`` label)
    """

    def __init__(
        self,
        registry: MetricsRegistry | None = None,
        label_tags: Sequence[str] = ("operation",),
        namespace: str = "txflow",
    ) -> None:
        self._registry = registry or default_registry
        self._label_tags = list(label_tags)
        self._started = self._registry.counter(
            f"{namespace}_transactions_started_total", "Transactions started", self._label_tags
        )
        self._succeeded = self._registry.counter(
            f"{namespace}_transactions_succeeded_total", "Transactions succeeded", self._label_tags
        )
        self._failed = self._registry.counter(
            f"{namespace}_transactions_failed_total", "Transactions failed", [*self._label_tags, "code"]
        )
        self._in_flight = self._registry.gauge(
            f"{namespace}_transactions_in_flight", "Transactions currently executing", self._label_tags
        )
        self._duration = self._registry.histogram(
            f"{namespace}_transaction_duration_seconds",
            "Transaction duration including retries",
            [*self._label_tags, "outcome"],
        )

    def _labels(self, metrics: MetricsContext) -> list[str]:
        return [metrics.tags.get(tag, "") for tag in self._label_tags]

    @staticmethod
    def _child(metric: Any, labels: list[str]) -> Any:
        # prometheus_client rejects .labels() on an unlabelled metric
        return metric.labels(*labels) if labels else metric

    def start_transaction(self, metrics: MetricsContext) -> None:
        labels = self._labels(metrics)
        self._child(self._started, labels).inc()
        self._child(self._in_flight, labels).inc()

    def record_success(self, metrics: MetricsContext, duration_ms: float) -> None:
        labels = self._labels(metrics)
        self._child(self._succeeded, labels).inc()
        self._child(self._in_flight, labels).dec()
        self._duration.labels(*labels, "success").observe(duration_ms / 1000.0)

    def record_error(self, metrics: MetricsContext, error: TransactionError, duration_ms: float) -> None:
        labels = self._labels(metrics)
        self._failed.labels(*labels, error.code.value).inc()
        self._child(self._in_flight, labels).dec()
        self._duration.labels(*labels, "failure").observe(duration_ms / 1000.0)
