"""
Enumerations for handler policies and attempt dispositions.

Both are closed sets - the engine dispatches exhaustively on them.
"""

from enum import Enum


class Policy(str, Enum):
    """
    What to do when a handler's predicate matches a failure.

    IGNORE stops the run and returns the handler's default value.
    RETRY starts the next attempt immediately.
    DELAYED_RETRY waits for the backoff delay, then starts the next attempt.
    On the last attempt both retry policies degrade to propagation.
    """

    IGNORE = "ignore"
    RETRY = "retry"
    DELAYED_RETRY = "delayed_retry"

    @property
    def retries(self) -> bool:
        return self is not Policy.IGNORE


class DispositionKind(str, Enum):
    """Decision produced by evaluating the handler chain against one failure."""

    PROPAGATE = "propagate"
    SUPPRESSED = "suppressed"
    CONTINUE = "continue"
