"""Monitoring and metrics instrumentation for retry runs.

Exports Prometheus metrics for operational monitoring and alerting.
"""

from classified_retry.monitoring.metrics import (
    retry_attempts_total,
    retry_backoff_seconds,
    retry_dispositions_total,
)

__all__ = [
    "retry_attempts_total",
    "retry_dispositions_total",
    "retry_backoff_seconds",
]
