"""
Retry engine: the attempt loop and the public entry points.

Two entry points share one handler chain evaluator:

- Repeated-execution (``run_with_retry``): up to ``max_attempts`` attempts,
  handlers may ignore, retry or delay-retry.
- Protected-execution (``run_protected``): a single attempt, handlers may
  only ignore.

Default-rethrow: a failure that no handler suppressed or looped on is
re-raised as the identical exception object, never wrapped.

Usage:
    engine = RetryEngine()
    value = engine.run_with_retry(4, fetch, Handlers().delay_retry_if(TimeoutError))
"""

import asyncio
import random
import time
from typing import Any, Awaitable, Callable, Iterable, TypeVar

import structlog

from classified_retry.config import BackoffConfig, settings
from classified_retry.models.enums import DispositionKind, Policy
from classified_retry.models.handlers import HandlerSpec, Handlers, ignore_if
from classified_retry.monitoring import (
    retry_attempts_total,
    retry_backoff_seconds,
    retry_dispositions_total,
)
from classified_retry.retry.backoff import BackoffCalculator
from classified_retry.retry.chain import HandlerChainEvaluator
from classified_retry.retry.exceptions import RetryConfigurationError
from classified_retry.retry.metadata import RetryMetadata
from classified_retry.retry.outcome import Outcome
from classified_retry.retry.state import AttemptState

T = TypeVar("T")

HandlerLike = HandlerSpec | Handlers | tuple

logger = structlog.get_logger(__name__)


def validate_max_attempts(max_attempts: Any) -> int:
    """Return ``max_attempts`` if it is a positive int, else raise."""
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
        raise RetryConfigurationError(
            "max_attempts must be a positive integer",
            {"max_attempts": repr(max_attempts)},
        )
    return max_attempts


def normalize_handlers(handlers: Iterable[HandlerLike] | None) -> tuple[HandlerSpec, ...]:
    """
    Flatten handlers into an ordered tuple of HandlerSpec.

    Accepts HandlerSpec instances, Handlers builders and plain
    ``(predicate, policy[, action])`` tuples.
    """
    if handlers is None:
        return ()
    if isinstance(handlers, HandlerSpec):
        return (handlers,)

    specs: list[HandlerSpec] = []
    for item in handlers:
        if isinstance(item, HandlerSpec):
            specs.append(item)
        elif isinstance(item, Handlers):
            specs.extend(item)
        elif isinstance(item, tuple):
            try:
                specs.append(HandlerSpec(*item))
            except (TypeError, ValueError) as e:
                raise RetryConfigurationError(
                    f"Invalid handler tuple: {e}", {"handler": repr(item)}
                ) from e
        else:
            raise RetryConfigurationError(
                "Handlers must be HandlerSpec, Handlers or (predicate, policy[, action]) tuples",
                {"handler": repr(item)},
            )
    return tuple(specs)


def normalize_protected_handlers(handlers: Iterable[HandlerLike] | None) -> tuple[HandlerSpec, ...]:
    """
    Like normalize_handlers, but tuples are ``(predicate[, action])`` ignore
    rules and any non-IGNORE handler is rejected.
    """
    if handlers is None:
        return ()
    if isinstance(handlers, HandlerSpec):
        handlers = (handlers,)

    items: list[HandlerLike] = []
    for item in handlers:
        if isinstance(item, tuple):
            try:
                item = ignore_if(*item)
            except (TypeError, ValueError) as e:
                raise RetryConfigurationError(
                    f"Invalid handler tuple: {e}", {"handler": repr(item)}
                ) from e
        items.append(item)

    specs = normalize_handlers(items)
    retrying = [s.name for s in specs if s.policy is not Policy.IGNORE]
    if retrying:
        raise RetryConfigurationError(
            "Protected execution only accepts IGNORE handlers",
            {"handlers": retrying},
        )
    return specs


class RetryEngine:
    """
    Attempt loop driving operations through a handler chain.

    The engine holds only configuration; each run creates its own
    AttemptState, so one engine can serve concurrent runs.

    Attributes:
        backoff: Backoff calculator for delayed retries
        evaluator: Handler chain evaluator
        sleep: Blocking sleep used between delayed retries
        async_sleep: Coroutine sleep used between delayed retries
        metrics_enabled: Record Prometheus metrics
        default_max_attempts: Attempt bound used when a run passes max_attempts=None
    """

    def __init__(
        self,
        backoff: BackoffConfig | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        async_sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
        metrics_enabled: bool | None = None,
        default_max_attempts: int | None = None,
    ):
        self.backoff = BackoffCalculator(backoff or BackoffConfig.from_settings(settings), rng)
        self.evaluator = HandlerChainEvaluator()
        self.sleep = sleep
        self.async_sleep = async_sleep
        self.metrics_enabled = (
            settings.PROMETHEUS_ENABLED if metrics_enabled is None else metrics_enabled
        )
        self.default_max_attempts = validate_max_attempts(
            settings.RETRY_DEFAULT_MAX_ATTEMPTS
            if default_max_attempts is None
            else default_max_attempts
        )

    def resolve_max_attempts(self, max_attempts: int | None) -> int:
        if max_attempts is None:
            return self.default_max_attempts
        return validate_max_attempts(max_attempts)

    # ------------------------------------------------------------------
    # Repeated-execution
    # ------------------------------------------------------------------

    def execute_with_retry(
        self,
        max_attempts: int | None,
        operation: Callable[[], T],
        handlers: Iterable[HandlerLike] | None = None,
    ) -> tuple[T | Any, RetryMetadata]:
        """
        Run ``operation`` up to ``max_attempts`` times.

        Args:
            max_attempts: Positive attempt bound, or None for default_max_attempts
            operation: Zero-argument callable
            handlers: Ordered handler chain

        Returns:
            Tuple of (operation value or IGNORE handler default, run metadata)

        Raises:
            RetryConfigurationError: Invalid max_attempts or handlers (before any attempt)
            Exception: The operation's own failure, unchanged, when it is not
                suppressed and not retried (unmatched or retries exhausted)
        """
        max_attempts = self.resolve_max_attempts(max_attempts)
        chain = normalize_handlers(handlers)
        state = self.backoff.new_state(max_attempts)
        history: list[DispositionKind] = []
        start = time.monotonic()

        while True:
            try:
                value = operation()
            except Exception as e:
                outcome = Outcome(state.attempt_index, disposition=self.evaluator.evaluate(e, chain, state))
            else:
                outcome = Outcome(state.attempt_index, value=value)

            wait = self._settle(outcome, state, history)
            if state.resolved:
                return self._result(outcome, state, history, start)
            if wait:
                self.sleep(wait)

    def run_with_retry(
        self,
        max_attempts: int | None,
        operation: Callable[[], T],
        handlers: Iterable[HandlerLike] | None = None,
    ) -> T | Any:
        value, _ = self.execute_with_retry(max_attempts, operation, handlers)
        return value

    async def aexecute_with_retry(
        self,
        max_attempts: int | None,
        operation: Callable[[], Awaitable[T]],
        handlers: Iterable[HandlerLike] | None = None,
    ) -> tuple[T | Any, RetryMetadata]:
        """
        Coroutine twin of execute_with_retry.

        ``operation`` returns an awaitable; predicates and actions may too.
        Backoff waits use ``async_sleep`` so the event loop is not blocked.
        """
        max_attempts = self.resolve_max_attempts(max_attempts)
        chain = normalize_handlers(handlers)
        state = self.backoff.new_state(max_attempts)
        history: list[DispositionKind] = []
        start = time.monotonic()

        while True:
            try:
                value = await operation()
            except Exception as e:
                outcome = Outcome(
                    state.attempt_index, disposition=await self.evaluator.aevaluate(e, chain, state)
                )
            else:
                outcome = Outcome(state.attempt_index, value=value)

            wait = self._settle(outcome, state, history)
            if state.resolved:
                return self._result(outcome, state, history, start)
            if wait:
                await self.async_sleep(wait)

    async def arun_with_retry(
        self,
        max_attempts: int | None,
        operation: Callable[[], Awaitable[T]],
        handlers: Iterable[HandlerLike] | None = None,
    ) -> T | Any:
        value, _ = await self.aexecute_with_retry(max_attempts, operation, handlers)
        return value

    # ------------------------------------------------------------------
    # Protected-execution
    # ------------------------------------------------------------------

    def run_protected(
        self, operation: Callable[[], T], handlers: Iterable[HandlerLike] | None = None
    ) -> T | Any:
        """Run ``operation`` once; IGNORE handlers may suppress its failure."""
        return self.run_with_retry(1, operation, normalize_protected_handlers(handlers))

    async def arun_protected(
        self, operation: Callable[[], Awaitable[T]], handlers: Iterable[HandlerLike] | None = None
    ) -> T | Any:
        return await self.arun_with_retry(1, operation, normalize_protected_handlers(handlers))

    # ------------------------------------------------------------------
    # Loop internals
    # ------------------------------------------------------------------

    def _settle(
        self, outcome: Outcome, state: AttemptState, history: list[DispositionKind]
    ) -> float:
        """
        Apply one attempt's outcome to the run state.

        Returns the wait before the next attempt (0.0 for none). Raises the
        operation's failure when the disposition is PROPAGATE.
        """
        if outcome.succeeded:
            state.resolved = True
            self._record_attempt("success")
            return 0.0

        disposition = outcome.disposition
        history.append(disposition.kind)
        self._record_attempt("failure", disposition.kind)

        if disposition.kind is DispositionKind.PROPAGATE:
            raise disposition.failure

        if disposition.kind is DispositionKind.SUPPRESSED:
            return 0.0

        wait = 0.0
        if disposition.delayed:
            wait = self.backoff.next_wait(state)
            state.total_delay += wait
            if self.metrics_enabled:
                retry_backoff_seconds.observe(wait)

        logger.debug(
            f"Retrying (attempt {state.attempt_index + 1}/{state.max_attempts})",
            extra={
                "handler": disposition.handler.name,
                "policy": disposition.handler.policy.value,
                "error_type": type(disposition.failure).__name__,
                "wait_seconds": round(wait, 4),
            },
        )
        state.advance()
        return wait

    def _result(
        self,
        outcome: Outcome,
        state: AttemptState,
        history: list[DispositionKind],
        start: float,
    ) -> tuple[Any, RetryMetadata]:
        metadata = RetryMetadata(
            total_attempts=state.attempt_index,
            final_disposition="success" if outcome.succeeded else "suppressed",
            total_delay_seconds=state.total_delay,
            total_latency_ms=int((time.monotonic() - start) * 1000),
            dispositions=list(history),
        )
        if outcome.succeeded:
            return outcome.value, metadata
        return outcome.disposition.value, metadata

    def _record_attempt(self, outcome: str, kind: DispositionKind | None = None) -> None:
        if not self.metrics_enabled:
            return
        retry_attempts_total.labels(outcome=outcome).inc()
        if kind is not None:
            retry_dispositions_total.labels(disposition=kind.value).inc()


_default_engine: RetryEngine | None = None


def get_default_engine() -> RetryEngine:
    """Engine built from the global settings, created on first use."""
    global _default_engine
    if _default_engine is None:
        _default_engine = RetryEngine()
    return _default_engine


def run_with_retry(
    max_attempts: int | None,
    operation: Callable[[], T],
    handlers: Iterable[HandlerLike] | None = None,
) -> T | Any:
    return get_default_engine().run_with_retry(max_attempts, operation, handlers)


def run_protected(
    operation: Callable[[], T], handlers: Iterable[HandlerLike] | None = None
) -> T | Any:
    return get_default_engine().run_protected(operation, handlers)


async def arun_with_retry(
    max_attempts: int | None,
    operation: Callable[[], Awaitable[T]],
    handlers: Iterable[HandlerLike] | None = None,
) -> T | Any:
    return await get_default_engine().arun_with_retry(max_attempts, operation, handlers)


async def arun_protected(
    operation: Callable[[], Awaitable[T]], handlers: Iterable[HandlerLike] | None = None
) -> T | Any:
    return await get_default_engine().arun_protected(operation, handlers)
