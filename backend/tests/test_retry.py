"""Unit tests for the transient-failure retry policy."""

import logging

import pytest
from google.genai.errors import ClientError, ServerError

from studiogen.errors import ProviderError, TransientServiceError
from studiogen.services.retry import is_transient, with_retry


def _failing_operation(failures: int, exc_factory):
    """Return (operation, counter) where the first `failures` calls raise."""
    state = {"calls": 0}

    async def operation():
        state["calls"] += 1
        if state["calls"] <= failures:
            raise exc_factory()
        return "ok"

    return operation, state


@pytest.mark.parametrize(
    "failures,expected_calls",
    [(0, 1), (1, 2), (2, 3), (3, 4)],
)
async def test_transient_failures_retried_with_doubling_delays(sleep, failures, expected_calls):
    operation, state = _failing_operation(
        failures, lambda: TransientServiceError("Service overloaded", status_code=503)
    )

    result = await with_retry(operation, max_attempts=3, initial_delay=2.0, sleep=sleep)

    assert result == "ok"
    assert state["calls"] == expected_calls
    assert sleep.delays == [2.0 * 2**i for i in range(expected_calls - 1)]


async def test_lambda_returning_coroutine_is_awaited(sleep):
    operation, state = _failing_operation(
        1, lambda: TransientServiceError("Service overloaded", status_code=503)
    )

    result = await with_retry(lambda: operation(), max_attempts=3, initial_delay=2.0, sleep=sleep)

    assert result == "ok"
    assert state["calls"] == 2
    assert sleep.delays == [2.0]


async def test_transient_error_propagates_after_attempts_exhausted(sleep):
    errors = []

    def make_error():
        err = TransientServiceError("Rate limited", status_code=429)
        errors.append(err)
        return err

    operation, state = _failing_operation(10, make_error)

    with pytest.raises(TransientServiceError) as exc_info:
        await with_retry(operation, max_attempts=3, initial_delay=2.0, sleep=sleep)

    assert state["calls"] == 4
    assert sleep.delays == [2.0, 4.0, 8.0]
    assert exc_info.value is errors[-1]


@pytest.mark.parametrize(
    "exc",
    [
        ProviderError("Bad request", status_code=400),
        ProviderError("Permission denied", status_code=403),
        ValueError("not a provider error"),
        ServerError(500, {"error": {"code": 500, "message": "Internal", "status": "INTERNAL"}}),
    ],
)
async def test_non_transient_error_raised_on_first_call(sleep, exc):
    operation, state = _failing_operation(1, lambda: exc)

    with pytest.raises(type(exc)) as exc_info:
        await with_retry(operation, sleep=sleep)

    assert exc_info.value is exc
    assert state["calls"] == 1
    assert sleep.delays == []


async def test_raw_provider_rate_limit_is_retried(sleep):
    operation, state = _failing_operation(
        1,
        lambda: ClientError(
            429, {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
        ),
    )

    assert await with_retry(operation, initial_delay=0.5, sleep=sleep) == "ok"
    assert state["calls"] == 2
    assert sleep.delays == [0.5]


async def test_zero_max_attempts_calls_once(sleep):
    operation, state = _failing_operation(
        1, lambda: TransientServiceError("Service overloaded", status_code=503)
    )

    with pytest.raises(TransientServiceError):
        await with_retry(operation, max_attempts=0, sleep=sleep)

    assert state["calls"] == 1
    assert sleep.delays == []


async def test_each_retry_is_logged_with_attempt_and_delay(sleep, caplog):
    operation, _ = _failing_operation(
        2, lambda: TransientServiceError("Service overloaded", status_code=503)
    )

    with caplog.at_level(logging.WARNING, logger="studiogen.services.retry"):
        await with_retry(operation, initial_delay=2.0, sleep=sleep)

    messages = [r.getMessage() for r in caplog.records if r.name == "studiogen.services.retry"]
    assert len(messages) == 2
    assert "attempt 1" in messages[0] and "2.0s" in messages[0]
    assert "attempt 2" in messages[1] and "4.0s" in messages[1]


def test_is_transient_classification():
    assert is_transient(TransientServiceError("x", status_code=503))
    assert is_transient(ServerError(503, {"error": {"code": 503, "message": "x"}}))
    assert not is_transient(ProviderError("x", status_code=400))
    assert not is_transient(ServerError(500, {"error": {"code": 500, "message": "x"}}))
    assert not is_transient(RuntimeError("x"))
