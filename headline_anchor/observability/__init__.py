"""Observability layer - logging and metrics."""

from headline_anchor.observability.logging import bound_context, setup_logging
from headline_anchor.observability.metrics import MetricsCollector, get_metrics

__all__ = ["bound_context", "setup_logging", "MetricsCollector", "get_metrics"]
