"""
Classified retry for fallible operations.

Runs an operation, triages its failures against an ordered chain of
caller-supplied predicates and applies the first matching policy:

- ignore: stop and return a default value
- retry: try again immediately
- delayed retry: try again after exponential backoff with jitter

Anything unclassified (or still failing on the last attempt) is re-raised
unchanged, exactly as a direct call would have raised it.

Usage:
    >>> from classified_retry import Handlers, ecode, run_with_retry
    >>> handlers = Handlers().delay_retry_if(ConnectionError).ignore_if(lambda e: ecode(e) == 404)
    >>> body = run_with_retry(4, fetch, handlers)
"""

from classified_retry.failures import ecode, efield
from classified_retry.models.enums import DispositionKind, Policy
from classified_retry.models.handlers import (
    HandlerSpec,
    Handlers,
    delay_retry_if,
    ignore_if,
    retry_if,
)
from classified_retry.retry import (
    RetryConfigurationError,
    RetryEngine,
    RetryMetadata,
    arun_protected,
    arun_with_retry,
    protected,
    repeat,
    run_protected,
    run_with_retry,
)

__version__ = "0.1.0"

__all__ = [
    "DispositionKind",
    "HandlerSpec",
    "Handlers",
    "Policy",
    "RetryConfigurationError",
    "RetryEngine",
    "RetryMetadata",
    "arun_protected",
    "arun_with_retry",
    "delay_retry_if",
    "ecode",
    "efield",
    "ignore_if",
    "protected",
    "repeat",
    "retry_if",
    "run_protected",
    "run_with_retry",
]
