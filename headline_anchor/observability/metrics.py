"""
Prometheus metrics for monitoring the anchoring pipeline.

Defines and exposes metrics for:
- Feed fetch outcomes per source
- Detector classifications
- Ledger anchor attempts and latency
- Capacity state and reconciliation backlog

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from headline_anchor.config.settings import get_settings

logger = logging.getLogger(__name__)

# Ledger writes are slow network round trips
LEDGER_LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the headline-anchor pipeline.

    Usage:
        metrics = MetricsCollector()
        metrics.start_server()

        metrics.record_fetch("bbc", success=True)
        metrics.record_anchor_attempt("anchored", latency=1.2)
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.feed_fetches = Counter(
            "headline_anchor_feed_fetches_total",
            "Total feed fetch attempts",
            ["source", "status"],  # status: success, error
            registry=registry,
        )

        self.items_detected = Counter(
            "headline_anchor_items_detected_total",
            "Total normalized items classified by the change detector",
            ["kind"],  # new, changed, unchanged
            registry=registry,
        )

        self.anchor_attempts = Counter(
            "headline_anchor_anchor_attempts_total",
            "Total anchor requests by outcome",
            ["outcome"],
            registry=registry,
        )

        self.ledger_latency = Histogram(
            "headline_anchor_ledger_latency_seconds",
            "Time spent inside a single ledger write",
            buckets=LEDGER_LATENCY_BUCKETS,
            registry=registry,
        )

        self.capacity_exhausted = Gauge(
            "headline_anchor_capacity_exhausted",
            "Ledger capacity flag (1=exhausted, 0=available)",
            registry=registry,
        )

        self.sweep_pending = Gauge(
            "headline_anchor_sweep_pending",
            "Unanchored records found by the last reconciliation pass",
            registry=registry,
        )

        self.sweep_retried = Counter(
            "headline_anchor_sweep_retried_total",
            "Records successfully anchored by reconciliation passes",
            registry=registry,
        )

        self._server_started = False

    def start_server(self, port: int | None = None) -> None:
        """
        Start HTTP server for Prometheus scraping.

        Args:
            port: Port to listen on (defaults to settings.metrics_port)
        """
        if self._server_started:
            logger.warning("Metrics server already started")
            return

        port = port or get_settings().metrics_port
        start_http_server(port)
        self._server_started = True
        logger.info("Metrics server started on port %d", port)

    def record_fetch(self, source: str, success: bool) -> None:
        self.feed_fetches.labels(
            source=source, status="success" if success else "error"
        ).inc()

    def record_detection(self, kind: str) -> None:
        self.items_detected.labels(kind=kind).inc()

    def record_anchor_attempt(self, outcome: str, latency: float | None = None) -> None:
        """Record one anchor request; latency only for calls that reached the ledger."""
        self.anchor_attempts.labels(outcome=outcome).inc()
        if latency is not None:
            self.ledger_latency.observe(latency)

    def set_capacity_exhausted(self, exhausted: bool) -> None:
        self.capacity_exhausted.set(1 if exhausted else 0)

    def record_sweep(self, pending: int, retried: int) -> None:
        self.sweep_pending.set(pending)
        if retried:
            self.sweep_retried.inc(retried)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics

    if _metrics is None:
        _metrics = MetricsCollector()

    return _metrics
