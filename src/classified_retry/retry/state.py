"""Per-invocation attempt state."""

from dataclasses import dataclass


@dataclass
class AttemptState:
    """
    Mutable state of one retry run.

    Created at the start of a run, mutated only by that run's loop and
    discarded when it returns or raises. Never shared between runs.

    Attributes:
        max_attempts: Upper bound on attempts for this run
        delay: Current backoff delay (seconds, before jitter)
        attempt_index: 1-based index of the current attempt
        resolved: True once the run produced its final value
        total_delay: Sum of all waits actually slept so far
    """

    max_attempts: int
    delay: float
    attempt_index: int = 1
    resolved: bool = False
    total_delay: float = 0.0

    @property
    def is_final_attempt(self) -> bool:
        return self.attempt_index >= self.max_attempts

    def advance(self) -> None:
        self.attempt_index += 1
