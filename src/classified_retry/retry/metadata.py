"""
Retry metadata tracking.

This module defines the RetryMetadata dataclass that summarizes a run
that finished with a value (success or suppressed failure).
"""

from dataclasses import dataclass, field

from classified_retry.models.enums import DispositionKind

FINAL_DISPOSITIONS = ("success", "suppressed")


@dataclass(frozen=True)
class RetryMetadata:
    """
    Summary of one finished retry run.

    Attributes:
        total_attempts: Number of times the operation was invoked
        final_disposition: "success" or "suppressed"
        total_delay_seconds: Sum of backoff waits slept during the run
        total_latency_ms: Wall-clock time from first attempt to result (ms)
        dispositions: Decision taken after each failed attempt, in order
    """

    total_attempts: int
    final_disposition: str
    total_delay_seconds: float
    total_latency_ms: int
    dispositions: list[DispositionKind] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate metadata invariants."""
        if self.total_attempts < 1:
            raise ValueError("total_attempts must be >= 1")

        if self.final_disposition not in FINAL_DISPOSITIONS:
            raise ValueError(
                f"final_disposition must be one of {FINAL_DISPOSITIONS}, got '{self.final_disposition}'"
            )

        if len(self.dispositions) > self.total_attempts:
            raise ValueError("dispositions cannot outnumber attempts")

        if self.total_delay_seconds < 0 or self.total_latency_ms < 0:
            raise ValueError("timings must be >= 0")

    @property
    def retries(self) -> int:
        return self.total_attempts - 1
