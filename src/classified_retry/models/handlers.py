"""
Handler specifications.

A handler is one classification rule: a predicate over the failure, the
policy applied when it matches, and an optional action run on match.
Handlers are evaluated in declaration order and the first match wins.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from classified_retry.models.enums import Policy

Predicate = Callable[[BaseException], Any]
Action = Callable[[BaseException], Any]
PredicateLike = Predicate | type[BaseException] | tuple[type[BaseException], ...]


def _as_predicate(predicate: PredicateLike) -> Predicate:
    """Turn an exception class (or tuple of classes) into an isinstance check."""
    if isinstance(predicate, tuple):
        invalid = [item for item in predicate if not _is_exception_type(item)]
        if not predicate or invalid:
            raise TypeError(
                f"Handler predicate tuple must contain only exception types, got {predicate!r}"
            )

    if isinstance(predicate, tuple) or _is_exception_type(predicate):
        types = predicate

        def _isinstance_of(failure: BaseException) -> bool:
            return isinstance(failure, types)

        _isinstance_of.__qualname__ = f"isinstance_of({_type_names(types)})"
        return _isinstance_of

    if not callable(predicate):
        raise TypeError(
            f"Handler predicate must be callable or an exception type, got {type(predicate).__name__}"
        )
    return predicate


def _is_exception_type(value: Any) -> bool:
    return inspect.isclass(value) and issubclass(value, BaseException)


def _type_names(types: Any) -> str:
    if isinstance(types, tuple):
        return ", ".join(t.__name__ for t in types)
    return types.__name__


@dataclass(frozen=True)
class HandlerSpec:
    """
    One classification rule in a handler chain.

    Attributes:
        predicate: Called with the failure; truthy result means "match".
            Exceptions raised by the predicate count as "no match".
        policy: Policy applied on match
        action: Optional callable run with the failure on match. Exceptions
            raised by the action propagate to the caller.
        default: Value returned to the caller when an IGNORE handler matches
    """

    predicate: Predicate
    policy: Policy
    action: Action | None = None
    default: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "predicate", _as_predicate(self.predicate))
        object.__setattr__(self, "policy", Policy(self.policy))
        if self.action is not None and not callable(self.action):
            raise TypeError("Handler action must be callable")
        if _is_exception_type(self.action):
            # (KeyError, ValueError) read as (predicate, action) would make ValueError the action
            raise TypeError(
                f"Handler action cannot be an exception type ({self.action.__name__}); "
                "group exception types in one tuple predicate instead"
            )
        if self.default is not None and self.policy.retries:
            raise ValueError("default is only meaningful for IGNORE handlers")

    @property
    def name(self) -> str:
        return getattr(self.predicate, "__qualname__", repr(self.predicate))


def ignore_if(
    predicate: PredicateLike, action: Action | None = None, default: Any = None
) -> HandlerSpec:
    """Suppress matching failures and return ``default``."""
    return HandlerSpec(predicate, Policy.IGNORE, action, default)


def retry_if(predicate: PredicateLike, action: Action | None = None) -> HandlerSpec:
    """Retry immediately on matching failures."""
    return HandlerSpec(predicate, Policy.RETRY, action)


def delay_retry_if(predicate: PredicateLike, action: Action | None = None) -> HandlerSpec:
    """Retry after an exponentially growing, jittered delay on matching failures."""
    return HandlerSpec(predicate, Policy.DELAYED_RETRY, action)


class Handlers:
    """
    Fluent builder for an ordered handler chain.

    Usage:
        handlers = (
            Handlers()
            .delay_retry_if(lambda e: ecode(e) == "Throttling")
            .ignore_if(lambda e: ecode(e) == "NoSuchKey")
        )
    """

    def __init__(self, *specs: HandlerSpec):
        self._specs: list[HandlerSpec] = list(specs)

    def add(self, spec: HandlerSpec) -> "Handlers":
        self._specs.append(spec)
        return self

    def ignore_if(
        self, predicate: PredicateLike, action: Action | None = None, default: Any = None
    ) -> "Handlers":
        return self.add(ignore_if(predicate, action, default))

    def retry_if(self, predicate: PredicateLike, action: Action | None = None) -> "Handlers":
        return self.add(retry_if(predicate, action))

    def delay_retry_if(
        self, predicate: PredicateLike, action: Action | None = None
    ) -> "Handlers":
        return self.add(delay_retry_if(predicate, action))

    def __iter__(self) -> Iterator[HandlerSpec]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        rules = ", ".join(f"{s.policy.value}:{s.name}" for s in self._specs)
        return f"Handlers([{rules}])"
