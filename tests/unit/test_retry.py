"""Unit tests for RetryPolicy and backoff helpers."""

import pytest

from utils.retry import NetworkError, RetryPolicy, fixed_backoff, linear_backoff


@pytest.mark.unit
def test_backoff_helpers():
    assert [fixed_backoff(2.0)(n) for n in (1, 2, 3)] == [2.0, 2.0, 2.0]
    assert [linear_backoff(2.0)(n) for n in (1, 2, 3)] == [2.0, 4.0, 6.0]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_returns_first_success(recording_sleep):
    attempts = []

    async def operation(attempt):
        attempts.append(attempt)
        if attempt < 3:
            raise NetworkError("reset")
        return "ok"

    policy = RetryPolicy(max_attempts=3, backoff=linear_backoff(2.0), sleep=recording_sleep)

    assert await policy.run(operation) == "ok"
    assert attempts == [1, 2, 3]
    assert recording_sleep.calls == [2.0, 4.0]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reraises_last_error(recording_sleep):
    async def operation(attempt):
        raise NetworkError(f"attempt {attempt}")

    policy = RetryPolicy(max_attempts=2, backoff=fixed_backoff(1.0), sleep=recording_sleep)

    with pytest.raises(NetworkError, match="attempt 2"):
        await policy.run(operation)
    assert recording_sleep.calls == [1.0]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_non_matching_errors_are_not_retried(recording_sleep):
    attempts = []

    async def operation(attempt):
        attempts.append(attempt)
        raise KeyError("bug")

    policy = RetryPolicy(max_attempts=3, sleep=recording_sleep, retry_on=(NetworkError,))

    with pytest.raises(KeyError):
        await policy.run(operation)
    assert attempts == [1]
    assert recording_sleep.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_zero_delay_does_not_sleep(recording_sleep):
    async def operation(attempt):
        if attempt == 1:
            raise NetworkError("once")
        return attempt

    policy = RetryPolicy(max_attempts=2, sleep=recording_sleep)

    assert await policy.run(operation) == 2
    assert recording_sleep.calls == []


@pytest.mark.unit
def test_with_attempts_copies_policy(recording_sleep):
    policy = RetryPolicy(max_attempts=3, sleep=recording_sleep, name="x")
    copy = policy.with_attempts(5)

    assert copy.max_attempts == 5
    assert copy.sleep is recording_sleep
    assert policy.max_attempts == 3
