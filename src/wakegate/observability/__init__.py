"""WakeGate observability helpers."""

from wakegate.observability.metrics import MetricsRegistry, metrics

__all__ = ["MetricsRegistry", "metrics"]
