"""
Backoff calculator for delayed retries.

Before each delayed retry the run waits ``delay * jitter`` where jitter is
drawn uniformly from ``[jitter_min, jitter_max)``; afterwards ``delay`` is
multiplied by ``multiplier``. Immediate retries do not advance the delay.
"""

import random

from classified_retry.config import BackoffConfig
from classified_retry.retry.state import AttemptState


class BackoffCalculator:
    """
    Exponential backoff with multiplicative jitter.

    Attributes:
        config: Validated backoff constants
        rng: Random source for jitter (injectable for deterministic tests)
    """

    def __init__(self, config: BackoffConfig | None = None, rng: random.Random | None = None):
        self.config = config or BackoffConfig()
        self.rng = rng or random.Random()

    def new_state(self, max_attempts: int) -> AttemptState:
        return AttemptState(max_attempts=max_attempts, delay=self.config.base_delay)

    def jitter(self) -> float:
        low, high = self.config.jitter_min, self.config.jitter_max
        return low + (high - low) * self.rng.random()

    def next_wait(self, state: AttemptState) -> float:
        """Return the wait before the next delayed retry and grow the delay."""
        wait = state.delay * self.jitter()
        state.delay *= self.config.multiplier
        return wait

    def max_total_wait(self, max_attempts: int) -> float:
        """
        Worst-case sum of waits for a run of ``max_attempts`` attempts.

        Assumes every failure but the last one is delayed-retried.
        """
        delay = self.config.base_delay
        total = 0.0
        for _ in range(max(max_attempts - 1, 0)):
            total += delay * self.config.jitter_max
            delay *= self.config.multiplier
        return total
