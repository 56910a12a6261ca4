"""
Handler chain evaluation.

Given a failure and an ordered handler chain, decide what the attempt loop
does next. Predicates are fail-safe: a predicate that raises is a
non-match, so a sloppy ``lambda e: e.response.status == 503`` can never
mask the original failure with an AttributeError. Actions are not
fail-safe: once a handler matched, errors from its action propagate.
"""

import inspect
from typing import Any, Sequence

import structlog

from classified_retry.models.enums import Policy
from classified_retry.models.handlers import HandlerSpec
from classified_retry.retry.outcome import Disposition
from classified_retry.retry.state import AttemptState

logger = structlog.get_logger(__name__)


class HandlerChainEvaluator:
    """
    Evaluates handler chains in declaration order; first match wins.

    ``evaluate`` serves blocking runs. ``aevaluate`` serves coroutine runs
    and additionally awaits predicates and actions that return awaitables.
    """

    def evaluate(
        self, failure: BaseException, handlers: Sequence[HandlerSpec], state: AttemptState
    ) -> Disposition:
        for handler in handlers:
            if not self._matches(handler, failure, state):
                continue
            if handler.action is not None:
                result = handler.action(failure)
                if inspect.isawaitable(result):
                    _discard(result)
                    raise TypeError(
                        f"Handler action for {handler.name} returned an awaitable; "
                        "use the async entry points for coroutine actions"
                    )
            return self._dispose(failure, handler, state)

        return self._unmatched(failure, state)

    async def aevaluate(
        self, failure: BaseException, handlers: Sequence[HandlerSpec], state: AttemptState
    ) -> Disposition:
        for handler in handlers:
            if not await self._amatches(handler, failure, state):
                continue
            if handler.action is not None:
                result = handler.action(failure)
                if inspect.isawaitable(result):
                    await result
            return self._dispose(failure, handler, state)

        return self._unmatched(failure, state)

    def _matches(self, handler: HandlerSpec, failure: BaseException, state: AttemptState) -> bool:
        try:
            result = handler.predicate(failure)
            if inspect.isawaitable(result):
                _discard(result)
                logger.warning(
                    "Async predicate used in blocking run, treating as no match",
                    extra={"handler": handler.name, "attempt": state.attempt_index},
                )
                return False
            return bool(result)
        except Exception as e:
            self._log_predicate_error(handler, e, state)
            return False

    async def _amatches(
        self, handler: HandlerSpec, failure: BaseException, state: AttemptState
    ) -> bool:
        try:
            result = handler.predicate(failure)
            if inspect.isawaitable(result):
                result = await result
            return bool(result)
        except Exception as e:
            self._log_predicate_error(handler, e, state)
            return False

    def _dispose(
        self, failure: BaseException, handler: HandlerSpec, state: AttemptState
    ) -> Disposition:
        if handler.policy is Policy.IGNORE:
            state.resolved = True
            logger.info(
                "Failure suppressed by handler",
                extra={
                    "handler": handler.name,
                    "attempt": state.attempt_index,
                    "error_type": type(failure).__name__,
                },
            )
            return Disposition.suppressed(failure, handler)

        # Retry policies never loop past the last attempt
        if state.is_final_attempt:
            logger.warning(
                f"Retries exhausted after {state.attempt_index} attempts",
                extra={
                    "handler": handler.name,
                    "policy": handler.policy.value,
                    "max_attempts": state.max_attempts,
                    "error_type": type(failure).__name__,
                },
            )
            return Disposition.propagate(failure, handler)

        return Disposition.continue_loop(
            failure, handler, delayed=handler.policy is Policy.DELAYED_RETRY
        )

    def _unmatched(self, failure: BaseException, state: AttemptState) -> Disposition:
        logger.warning(
            "No handler matched, propagating",
            extra={"attempt": state.attempt_index, "error_type": type(failure).__name__},
        )
        return Disposition.propagate(failure)

    @staticmethod
    def _log_predicate_error(handler: HandlerSpec, error: Exception, state: AttemptState) -> None:
        logger.debug(
            "Handler predicate raised, treating as no match",
            extra={
                "handler": handler.name,
                "attempt": state.attempt_index,
                "predicate_error_type": type(error).__name__,
                "predicate_error": str(error),
            },
        )


def _discard(awaitable: Any) -> None:
    # Avoid "coroutine was never awaited" warnings
    close = getattr(awaitable, "close", None)
    if close is not None:
        close()
