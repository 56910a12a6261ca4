"""Prometheus metrics for retry runs.

Registered on the default registry; expose them with the host
application's own /metrics endpoint. Useful alert signals:
- retry_dispositions_total{disposition="propagate"} (fatal failures)
- retry_dispositions_total{disposition="continue"} (retry pressure on a dependency)
"""

from prometheus_client import Counter, Histogram

retry_attempts_total = Counter(
    "retry_attempts_total",
    "Total attempts made by retry runs, by outcome",
    ["outcome"],
)
"""
Labels:
- outcome: success (operation returned), failure (operation raised)
"""

retry_dispositions_total = Counter(
    "retry_dispositions_total",
    "Total handler chain decisions, by disposition",
    ["disposition"],
)
"""
Labels:
- disposition: propagate, suppressed, continue
"""

retry_backoff_seconds = Histogram(
    "retry_backoff_seconds",
    "Backoff waits before delayed retries in seconds",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 60.0],
)
