"""Failure classifier, backoff and the iterative retry loop."""
import socket

import pytest
from pydantic import BaseModel, ValidationError

from cvextract.extraction.errors import ConfigurationError, ExtractionValidationError
from cvextract.jobs.errors import InvalidJobTransition, JobNotFound, JobResultInvalid
from cvextract.llm.errors import LLMAuthError, LLMError, LLMRateLimited, LLMTimeout, LLMUnavailable
from cvextract.retry import RetryPolicy, compute_backoff, error_code, is_retryable, retry_call


class _Strict(BaseModel):
    n: int


def _validation_error() -> ValidationError:
    try:
        _Strict(n="not a number")
    except ValidationError as e:
        return e
    raise AssertionError("expected ValidationError")


@pytest.mark.parametrize(
    "error",
    [
        LLMTimeout(),
        LLMRateLimited(),
        LLMUnavailable("upstream down"),
        TimeoutError(),
        ConnectionRefusedError(),
        socket.gaierror("name resolution"),
        RuntimeError("Temporary failure, try later"),
        LLMError("boom", code="SOMETHING", retryable=True),
        RuntimeError("unclassified"),
    ],
)
def test_retryable(error):
    assert is_retryable(error) is True


@pytest.mark.parametrize(
    "error",
    [
        ExtractionValidationError("CV text content is required"),
        ConfigurationError("Mandatory prompt template missing: chunk_profile"),
        JobNotFound("Job x not found"),
        InvalidJobTransition("completed", "processing"),
        JobResultInvalid("Job result could not be stored"),
        LLMAuthError("bad key"),
    ],
)
def test_not_retryable(error):
    assert is_retryable(error) is False


def test_pydantic_validation_error_not_retryable():
    assert is_retryable(_validation_error()) is False


def test_transient_keyword_beats_fatal_code():
    # Rule order: message keywords are checked before fatal codes.
    assert is_retryable(ExtractionValidationError("connection dropped while validating")) is True


def test_os_errors_map_to_codes():
    assert error_code(TimeoutError()) == "ETIMEDOUT"
    assert error_code(ConnectionRefusedError()) == "ECONNREFUSED"
    assert error_code(ConnectionResetError()) == "ECONNRESET"
    assert error_code(socket.gaierror()) == "ENOTFOUND"
    assert error_code(ValueError()) is None


def test_backoff_doubles_and_caps():
    assert [compute_backoff(i, 1.0) for i in range(4)] == [1.0, 2.0, 4.0, 8.0]
    assert compute_backoff(10, 1.0, max_delay_s=30.0) == 30.0


def test_policy_decide_uses_attempt_count():
    policy = RetryPolicy(max_attempts=3, base_delay_s=2.0)
    first = policy.decide(LLMTimeout(), 1)
    assert first.should_retry and first.delay_s == 2.0
    second = policy.decide(LLMTimeout(), 2)
    assert second.should_retry and second.delay_s == 4.0
    last = policy.decide(LLMTimeout(), 3)
    assert last.retryable and not last.should_retry
    fatal = policy.decide(ExtractionValidationError("bad"), 1)
    assert not fatal.retryable and not fatal.should_retry


@pytest.mark.asyncio
async def test_retry_call_retries_until_success():
    calls = []
    sleeps = []

    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise LLMRateLimited()
        return "ok"

    async def fake_sleep(delay):
        sleeps.append(delay)

    result = await retry_call(flaky, RetryPolicy(max_attempts=5, base_delay_s=0.5), sleep=fake_sleep)
    assert result == "ok"
    assert len(calls) == 3
    assert sleeps == [0.5, 1.0]


@pytest.mark.asyncio
async def test_retry_call_reraises_after_max_attempts():
    calls = []

    async def always_fail():
        calls.append(1)
        raise LLMUnavailable("down")

    async def no_sleep(delay):
        return None

    with pytest.raises(LLMUnavailable):
        await retry_call(always_fail, RetryPolicy(max_attempts=2, base_delay_s=0.0), sleep=no_sleep)
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_retry_call_reissue_filter_surfaces_error_immediately():
    calls = []

    async def times_out():
        calls.append(1)
        raise LLMTimeout()

    with pytest.raises(LLMTimeout):
        await retry_call(
            times_out,
            RetryPolicy(max_attempts=5, base_delay_s=0.0),
            reissue=lambda e: getattr(e, "code", None) != "TIMEOUT",
        )
    assert len(calls) == 1
