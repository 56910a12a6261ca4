"""Data models for handler chains and attempt outcomes."""

from classified_retry.models.enums import DispositionKind, Policy
from classified_retry.models.handlers import (
    HandlerSpec,
    Handlers,
    delay_retry_if,
    ignore_if,
    retry_if,
)

__all__ = [
    "DispositionKind",
    "HandlerSpec",
    "Handlers",
    "Policy",
    "delay_retry_if",
    "ignore_if",
    "retry_if",
]
