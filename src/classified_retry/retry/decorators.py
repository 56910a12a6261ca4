"""
Decorator forms of the entry points.

    @repeat(4, Handlers().delay_retry_if(ConnectionError))
    def fetch(url): ...

    @protected(ignore_if(lambda e: ecode(e) == "NoSuchKey"))
    async def head_object(key): ...

Both work on plain functions and coroutine functions. Configuration is
validated when the decorator is applied, not on first call.
"""

import functools
import inspect
from typing import Any, Callable

from classified_retry.retry.engine import (
    HandlerLike,
    RetryEngine,
    get_default_engine,
    normalize_handlers,
    normalize_protected_handlers,
)


def repeat(
    max_attempts: int | None, *handlers: HandlerLike, engine: RetryEngine | None = None
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Retry the decorated function up to ``max_attempts`` times.

    ``None`` takes the engine's default_max_attempts (RETRY_DEFAULT_MAX_ATTEMPTS).
    """
    max_attempts = (engine or get_default_engine()).resolve_max_attempts(max_attempts)
    chain = normalize_handlers(handlers)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                return await (engine or get_default_engine()).arun_with_retry(
                    max_attempts, lambda: func(*args, **kwargs), chain
                )

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return (engine or get_default_engine()).run_with_retry(
                max_attempts, lambda: func(*args, **kwargs), chain
            )

        return wrapper

    return decorator


def protected(
    *handlers: HandlerLike, engine: RetryEngine | None = None
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Run the decorated function once, suppressing failures matched by IGNORE handlers."""
    chain = normalize_protected_handlers(handlers)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                return await (engine or get_default_engine()).arun_protected(
                    lambda: func(*args, **kwargs), chain
                )

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return (engine or get_default_engine()).run_protected(
                lambda: func(*args, **kwargs), chain
            )

        return wrapper

    return decorator
