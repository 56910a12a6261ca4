"""
Unit tests for RetryEngine.

Covers the attempt loop, default-rethrow, exhaustion, suppression,
backoff scheduling and run metadata.
"""

from unittest.mock import MagicMock

import pytest

from classified_retry import Handlers, Policy, delay_retry_if, ecode, ignore_if, retry_if
from classified_retry.models.enums import DispositionKind
from classified_retry.retry.engine import RetryEngine
from classified_retry.retry.exceptions import RetryConfigurationError


# ============================================================================
# Default-rethrow
# ============================================================================


@pytest.mark.parametrize("max_attempts", [1, 2, 4, 7])
def test_always_matching_retry_runs_exactly_max_attempts(
    engine, failing_operation, coded_error, max_attempts
):
    """Test operation is invoked N times, then the last failure is raised."""
    op = failing_operation(lambda n: coded_error(7))

    with pytest.raises(coded_error) as exc_info:
        engine.run_with_retry(max_attempts, op, [retry_if(lambda e: e.code == 7)])

    assert op.calls == max_attempts
    assert exc_info.value is op.raised[-1]


@pytest.mark.parametrize("max_attempts", [1, 4, 10])
def test_unmatched_failure_raised_after_one_attempt(
    engine, failing_operation, coded_error, max_attempts
):
    """Test no retries are wasted on failures no handler matches."""
    op = failing_operation(lambda n: coded_error(5))

    with pytest.raises(coded_error) as exc_info:
        engine.run_with_retry(max_attempts, op, [retry_if(lambda e: e.code == 7)])

    assert op.calls == 1
    assert exc_info.value is op.raised[0]


def test_no_handlers_reraises_identical_failure(engine):
    """Test the failure object reaches the caller unwrapped and unmodified."""
    failure = KeyError("missing")

    def op():
        raise failure

    with pytest.raises(KeyError) as exc_info:
        engine.run_with_retry(3, op)

    assert exc_info.value is failure
    assert exc_info.value.__cause__ is None
    assert exc_info.value.args == ("missing",)


def test_base_exceptions_are_not_classified(engine):
    """Test KeyboardInterrupt bypasses the handler chain entirely."""
    predicate = MagicMock(return_value=True)

    def op():
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        engine.run_with_retry(3, op, [retry_if(predicate)])

    predicate.assert_not_called()


# ============================================================================
# Success and suppression
# ============================================================================


def test_success_returns_value_without_evaluating_handlers(engine):
    """Test first-attempt success short-circuits the loop."""
    predicate = MagicMock(return_value=True)
    op = MagicMock(return_value="payload")

    value, metadata = engine.execute_with_retry(5, op, [retry_if(predicate)])

    assert value == "payload"
    assert op.call_count == 1
    predicate.assert_not_called()
    assert metadata.total_attempts == 1
    assert metadata.final_disposition == "success"
    assert metadata.dispositions == []


def test_success_after_retries(engine, coded_error):
    """Test the loop stops at the first successful attempt."""
    calls = 0

    def op():
        nonlocal calls
        calls += 1
        if calls < 3:
            raise coded_error("Throttling")
        return calls

    value, metadata = engine.execute_with_retry(
        5, op, Handlers().retry_if(lambda e: ecode(e) == "Throttling")
    )

    assert value == 3
    assert metadata.total_attempts == 3
    assert metadata.retries == 2
    assert metadata.dispositions == [DispositionKind.CONTINUE, DispositionKind.CONTINUE]


def test_ignore_on_first_attempt_returns_none(engine, failing_operation, coded_error):
    """Test IGNORE match stops after one attempt and returns no result."""
    op = failing_operation(lambda n: coded_error(7))

    value, metadata = engine.execute_with_retry(4, op, [ignore_if(lambda e: e.code == 7)])

    assert value is None
    assert op.calls == 1
    assert metadata.final_disposition == "suppressed"
    assert metadata.dispositions == [DispositionKind.SUPPRESSED]


def test_ignore_returns_handler_default(engine, failing_operation, coded_error):
    """Test IGNORE handler default is returned to the caller."""
    op = failing_operation(lambda n: coded_error("NoSuchKey"))

    value = engine.run_with_retry(
        2, op, [ignore_if(lambda e: e.code == "NoSuchKey", default=b"")]
    )

    assert value == b""


# ============================================================================
# Changing classification across attempts
# ============================================================================


def _code_sequence_handlers() -> Handlers:
    return Handlers().retry_if(lambda e: e.code < 3).ignore_if(lambda e: e.code == 3)


@pytest.mark.parametrize("max_attempts", [3, 10])
def test_ignore_reached_on_third_attempt(engine, failing_operation, coded_error, max_attempts):
    """Test attempts stop at the suppressing attempt regardless of max_attempts."""
    op = failing_operation(lambda n: coded_error(n))

    value = engine.run_with_retry(max_attempts, op, _code_sequence_handlers())

    assert value is None
    assert op.calls == 3


def test_retry_exhausted_before_ignore_is_reached(engine, failing_operation, coded_error):
    """Test a matching RETRY on the last attempt degrades to propagation."""
    op = failing_operation(lambda n: coded_error(n))

    with pytest.raises(coded_error) as exc_info:
        engine.run_with_retry(2, op, _code_sequence_handlers())

    assert op.calls == 2
    assert exc_info.value.code == 2
    assert exc_info.value is op.raised[-1]


# ============================================================================
# Handler evaluation
# ============================================================================


def test_predicate_errors_are_non_matches(engine, failing_operation):
    """Test a predicate reading a missing field neither masks nor matches."""
    op = failing_operation(lambda n: ValueError("no code here"))

    with pytest.raises(ValueError) as exc_info:
        engine.run_with_retry(3, op, [retry_if(lambda e: e.code == 7)])

    assert op.calls == 1
    assert str(exc_info.value) == "no code here"


def test_predicate_error_falls_through_to_next_handler(engine, failing_operation):
    """Test evaluation continues after a failing predicate."""
    op = failing_operation(lambda n: ValueError("bad"))

    value = engine.run_with_retry(
        3,
        op,
        Handlers()
        .retry_if(lambda e: e.response.status == 503)
        .ignore_if(ValueError, default="fallback"),
    )

    assert value == "fallback"
    assert op.calls == 1


def test_first_match_wins(engine, failing_operation, coded_error):
    """Test later handlers are not evaluated once one matches."""
    later_predicate = MagicMock(return_value=True)
    op = failing_operation(lambda n: coded_error(1))

    value = engine.run_with_retry(
        3, op, [ignore_if(lambda e: e.code == 1), retry_if(later_predicate)]
    )

    assert value is None
    later_predicate.assert_not_called()


def test_action_runs_on_each_match(engine, failing_operation, coded_error):
    """Test the action sees every matched failure, including the last."""
    cleanup = MagicMock()
    op = failing_operation(lambda n: coded_error("QueueExists"))

    with pytest.raises(coded_error):
        engine.run_with_retry(3, op, [retry_if(lambda e: e.code == "QueueExists", cleanup)])

    assert cleanup.call_count == 3
    assert [c.args[0] for c in cleanup.call_args_list] == op.raised


def test_action_errors_propagate(engine, failing_operation, coded_error):
    """Test an action failure replaces the normal loop flow."""

    def broken_cleanup(failure):
        raise RuntimeError("cleanup failed")

    op = failing_operation(lambda n: coded_error(7))

    with pytest.raises(RuntimeError, match="cleanup failed") as exc_info:
        engine.run_with_retry(4, op, [retry_if(lambda e: e.code == 7, broken_cleanup)])

    assert op.calls == 1
    assert exc_info.value.__context__ is op.raised[0]


def test_tuple_handlers(engine, failing_operation, coded_error):
    """Test (predicate, policy[, action]) tuples are accepted."""
    seen = []
    op = failing_operation(lambda n: coded_error(n))

    value = engine.run_with_retry(
        5,
        op,
        [
            (lambda e: e.code < 2, Policy.RETRY, seen.append),
            (lambda e: e.code == 2, "ignore"),
        ],
    )

    assert value is None
    assert op.calls == 2
    assert seen == op.raised[:1]


# ============================================================================
# Backoff
# ============================================================================


def test_delayed_retry_waits_grow_tenfold(engine, sleeps, failing_operation, coded_error):
    """Test waits before delayed retries follow the jittered x10 schedule."""
    op = failing_operation(lambda n: coded_error(7))

    with pytest.raises(coded_error):
        engine.run_with_retry(3, op, [delay_retry_if(lambda e: e.code == 7)])

    assert op.calls == 3
    # No wait after the final attempt
    assert len(sleeps) == 2
    assert 0.05 * 0.8 <= sleeps[0] < 0.05 * 1.2
    assert 0.5 * 0.8 <= sleeps[1] < 0.5 * 1.2
    # Worst case ratio with jitter [0.8, 1.2) and multiplier 10
    assert sleeps[1] > sleeps[0] * (10 * 0.8 / 1.2)


def test_immediate_retries_do_not_wait_or_advance_delay(engine, sleeps, failing_operation, coded_error):
    """Test RETRY skips backoff and leaves the delay for the next DELAYED_RETRY."""
    op = failing_operation(lambda n: coded_error(n))

    with pytest.raises(coded_error):
        engine.run_with_retry(
            4,
            op,
            Handlers().retry_if(lambda e: e.code == 1).delay_retry_if(lambda e: e.code > 1),
        )

    assert op.calls == 4
    assert len(sleeps) == 2
    assert 0.04 <= sleeps[0] < 0.06
    assert 0.4 <= sleeps[1] < 0.6


def test_total_delay_recorded_in_metadata(engine, sleeps, coded_error):
    """Test metadata sums the waits actually requested."""
    calls = 0

    def op():
        nonlocal calls
        calls += 1
        if calls < 3:
            raise coded_error(503)
        return "ok"

    _, metadata = engine.execute_with_retry(3, op, [delay_retry_if(lambda e: e.code == 503)])

    assert metadata.total_delay_seconds == pytest.approx(sum(sleeps))


def test_state_does_not_leak_between_runs(engine, sleeps, failing_operation, coded_error):
    """Test every run starts from the base delay and attempt 1."""
    handlers = [delay_retry_if(lambda e: e.code == 7)]

    for _ in range(2):
        op = failing_operation(lambda n: coded_error(7))
        with pytest.raises(coded_error):
            engine.run_with_retry(2, op, handlers)
        assert op.calls == 2

    assert len(sleeps) == 2
    assert all(0.04 <= wait < 0.06 for wait in sleeps)


# ============================================================================
# Configuration errors
# ============================================================================


@pytest.mark.parametrize("max_attempts", [0, -1, True, 2.5, "3"])
def test_invalid_max_attempts_rejected_before_any_attempt(engine, max_attempts):
    """Test configuration errors are raised without calling the operation."""
    op = MagicMock()

    with pytest.raises(RetryConfigurationError) as exc_info:
        engine.run_with_retry(max_attempts, op)

    op.assert_not_called()
    assert "max_attempts" in exc_info.value.details


def test_invalid_handler_rejected(engine):
    """Test unsupported handler objects are configuration errors."""
    op = MagicMock()

    with pytest.raises(RetryConfigurationError):
        engine.run_with_retry(2, op, ["not a handler"])

    op.assert_not_called()


def test_engine_uses_settings_backoff(test_settings, monkeypatch):
    """Test a default engine takes its backoff constants from settings."""
    monkeypatch.setattr("classified_retry.retry.engine.settings", test_settings)
    test_settings.RETRY_BASE_DELAY = 1.5

    engine = RetryEngine()

    assert engine.backoff.config.base_delay == 1.5
    assert engine.metrics_enabled is False


# ============================================================================
# Default attempt bound
# ============================================================================


def test_none_max_attempts_uses_engine_default(sleeps, failing_operation, coded_error):
    """Test max_attempts=None falls back to default_max_attempts."""
    engine = RetryEngine(sleep=sleeps.append, metrics_enabled=False, default_max_attempts=3)
    op = failing_operation(lambda n: coded_error(7))

    with pytest.raises(coded_error):
        engine.run_with_retry(None, op, [retry_if(lambda e: e.code == 7)])

    assert op.calls == 3


def test_default_max_attempts_from_settings(test_settings, monkeypatch, failing_operation, coded_error):
    """Test RETRY_DEFAULT_MAX_ATTEMPTS drives runs without an explicit bound."""
    test_settings.RETRY_DEFAULT_MAX_ATTEMPTS = 2
    monkeypatch.setattr("classified_retry.retry.engine.settings", test_settings)
    op = failing_operation(lambda n: coded_error(7))

    engine = RetryEngine()
    with pytest.raises(coded_error):
        engine.run_with_retry(None, op, [retry_if(coded_error)])

    assert engine.default_max_attempts == 2
    assert op.calls == 2


@pytest.mark.parametrize("default", [0, -2, True])
def test_invalid_default_max_attempts_rejected(default):
    """Test the configured default is validated when the engine is built."""
    with pytest.raises(RetryConfigurationError):
        RetryEngine(default_max_attempts=default, metrics_enabled=False)
