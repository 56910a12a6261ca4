"""Integration test fixtures.

Integration tests run the engine with real sleeps and the default
Prometheus registry; they take about a second in total.
"""

import pytest

from classified_retry.config import BackoffConfig
from classified_retry.retry.engine import RetryEngine


@pytest.fixture
def real_engine() -> RetryEngine:
    """RetryEngine with the default backoff constants and real sleeping."""
    return RetryEngine(BackoffConfig(), metrics_enabled=True)
