"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

import random

import pytest

from classified_retry.config import BackoffConfig, Settings
from classified_retry.retry.engine import RetryEngine


class CodedError(Exception):
    """Failure carrying a classification code, like a service error response."""

    def __init__(self, code):
        super().__init__(f"code={code}")
        self.code = code


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing."""
    return Settings(
        APP_NAME="classified-retry (Test)",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",
        RETRY_DEFAULT_MAX_ATTEMPTS=4,
        RETRY_BASE_DELAY=0.05,
        RETRY_BACKOFF_MULTIPLIER=10.0,
        RETRY_JITTER_MIN=0.8,
        RETRY_JITTER_MAX=1.2,
        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def coded_error():
    """The CodedError exception class."""
    return CodedError


@pytest.fixture
def sleeps() -> list[float]:
    """Waits requested by the engine, in order."""
    return []


@pytest.fixture
def engine(test_settings: Settings, sleeps: list[float]) -> RetryEngine:
    """RetryEngine that records waits instead of sleeping.

    Usage:
        def test_something(engine, sleeps):
            engine.run_with_retry(3, op, handlers)
            assert len(sleeps) == 2
    """

    async def async_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return RetryEngine(
        BackoffConfig.from_settings(test_settings),
        sleep=sleeps.append,
        async_sleep=async_sleep,
        rng=random.Random(1234),
        metrics_enabled=False,
    )


@pytest.fixture
def failing_operation():
    """Factory fixture for operations that raise on every call.

    Usage:
        op = failing_operation(lambda n: CodedError(n))
        ...
        assert op.calls == 3
    """

    class _Operation:
        def __init__(self, make_error):
            self.make_error = make_error
            self.calls = 0
            self.raised: list[BaseException] = []

        def __call__(self):
            self.calls += 1
            error = self.make_error(self.calls)
            self.raised.append(error)
            raise error

    return _Operation
