"""
Attempt outcomes.

Every attempt ends in exactly one Outcome: the operation's value, or the
Disposition the handler chain produced for its failure. The attempt loop
dispatches on these instead of using exceptions for control flow.
"""

from dataclasses import dataclass
from typing import Any

from classified_retry.models.enums import DispositionKind
from classified_retry.models.handlers import HandlerSpec


@dataclass(frozen=True)
class Disposition:
    """
    Decision for one failure.

    Attributes:
        kind: PROPAGATE, SUPPRESSED or CONTINUE
        failure: The operation's failure, untouched
        handler: Matched handler (None when nothing matched)
        value: Value returned to the caller on SUPPRESSED
        delayed: CONTINUE must wait for backoff before the next attempt
    """

    kind: DispositionKind
    failure: BaseException
    handler: HandlerSpec | None = None
    value: Any = None
    delayed: bool = False

    @classmethod
    def propagate(cls, failure: BaseException, handler: HandlerSpec | None = None) -> "Disposition":
        return cls(DispositionKind.PROPAGATE, failure, handler)

    @classmethod
    def suppressed(cls, failure: BaseException, handler: HandlerSpec) -> "Disposition":
        return cls(DispositionKind.SUPPRESSED, failure, handler, value=handler.default)

    @classmethod
    def continue_loop(
        cls, failure: BaseException, handler: HandlerSpec, delayed: bool = False
    ) -> "Disposition":
        return cls(DispositionKind.CONTINUE, failure, handler, delayed=delayed)


@dataclass(frozen=True)
class Outcome:
    """Result of one attempt: a value, or a disposition for its failure."""

    attempt: int
    value: Any = None
    disposition: Disposition | None = None

    @property
    def succeeded(self) -> bool:
        return self.disposition is None
