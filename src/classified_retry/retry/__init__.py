"""
Retry decision engine.

Main Components:
    - RetryEngine: Attempt loop for repeated- and protected-execution
    - HandlerChainEvaluator: Ordered, fail-safe handler matching
    - BackoffCalculator: Exponential backoff with jitter
    - RetryMetadata: Summary of a finished run
    - RetryConfigurationError: Raised for invalid run configuration

Usage:
    >>> from classified_retry.retry import RetryEngine
    >>> engine = RetryEngine()
    >>> value, metadata = engine.execute_with_retry(3, operation, handlers)
"""

from classified_retry.retry.backoff import BackoffCalculator
from classified_retry.retry.chain import HandlerChainEvaluator
from classified_retry.retry.decorators import protected, repeat
from classified_retry.retry.engine import (
    RetryEngine,
    arun_protected,
    arun_with_retry,
    get_default_engine,
    run_protected,
    run_with_retry,
)
from classified_retry.retry.exceptions import RetryConfigurationError
from classified_retry.retry.metadata import RetryMetadata
from classified_retry.retry.outcome import Disposition, Outcome
from classified_retry.retry.state import AttemptState

__all__ = [
    "AttemptState",
    "BackoffCalculator",
    "Disposition",
    "HandlerChainEvaluator",
    "Outcome",
    "RetryConfigurationError",
    "RetryEngine",
    "RetryMetadata",
    "arun_protected",
    "arun_with_retry",
    "get_default_engine",
    "protected",
    "repeat",
    "run_protected",
    "run_with_retry",
]
