"""Prometheus metrics sink: request counter, latency histogram, alert gauge.

Every instrument lives on a private CollectorRegistry so several monitors
(and tests) can coexist in one process.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, Optional, Protocol, runtime_checkable

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.core import GaugeMetricFamily

if TYPE_CHECKING:
    from httpmon.alerts.state import AlertStateStore


@runtime_checkable
class MetricsSink(Protocol):
    def increment_request_counter(self, url: str, status: str) -> None: ...

    def observe_latency(self, url: str, latency_s: float) -> None: ...


class AlertStateCollector:
    """Exposes 1 per URL that currently has an alert on record."""

    def __init__(self, store: AlertStateStore) -> None:
        self._store = store

    def collect(self) -> Iterator[GaugeMetricFamily]:
        gauge = GaugeMetricFamily(
            "http_monitor_alert_active",
            "1 while a URL has an unrecovered alert on record",
            labels=["url"],
        )
        for url in sorted(self._store.snapshot()):
            gauge.add_metric([url], 1.0)
        yield gauge


class PrometheusMetrics:
    """MetricsSink backed by prometheus_client instruments."""

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        alert_store: Optional[AlertStateStore] = None,
    ) -> None:
        self.registry = registry or CollectorRegistry()
        self.requests_total = Counter(
            "http_monitor_requests_total",
            "Total HTTP requests made by monitor, labeled by url and status",
            ["url", "status"],
            registry=self.registry,
        )
        self.request_duration = Histogram(
            "http_monitor_request_duration_seconds",
            "HTTP request duration in seconds",
            ["url"],
            registry=self.registry,
        )
        if alert_store is not None:
            self.registry.register(AlertStateCollector(alert_store))

    def increment_request_counter(self, url: str, status: str) -> None:
        self.requests_total.labels(url=url, status=status).inc()

    def observe_latency(self, url: str, latency_s: float) -> None:
        self.request_duration.labels(url=url).observe(latency_s)

    def render(self) -> bytes:
        """Text exposition of the whole registry."""
        return generate_latest(self.registry)
