"""Shared retry policy: failure classification, exponential backoff, iterative retry loop.

Used by the LLM client for call-level retries and by the job manager for whole-job
retries. The two callers keep independent attempt counters and maxima.
"""
from __future__ import annotations

import asyncio
import logging
import socket
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from pydantic import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_CODES = frozenset(
    {
        "ECONNREFUSED",
        "ECONNRESET",
        "ETIMEDOUT",
        "ENOTFOUND",
        "RATE_LIMIT",
        "RATE_LIMITED",
        "SERVICE_UNAVAILABLE",
        "UNAVAILABLE",
        "TIMEOUT",
        "NETWORK_ERROR",
    }
)
TRANSIENT_KEYWORDS = ("timeout", "timed out", "connection", "network", "rate limit", "temporary", "service unavailable")
FATAL_CODES = frozenset(
    {
        "VALIDATION_ERROR",
        "NOT_FOUND",
        "CONFIGURATION_ERROR",
        "BAD_REQUEST",
        "AUTH_ERROR",
        "INVALID_TRANSITION",
        "RESULT_INVALID",
    }
)


def error_code(error: BaseException) -> str | None:
    """Stable code for an error: its own ``code`` attribute, else one derived from OS-level types."""
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code
    if isinstance(error, TimeoutError):
        return "ETIMEDOUT"
    if isinstance(error, ConnectionRefusedError):
        return "ECONNREFUSED"
    if isinstance(error, ConnectionResetError):
        return "ECONNRESET"
    if isinstance(error, socket.gaierror):
        return "ENOTFOUND"
    if isinstance(error, ConnectionError):
        return "NETWORK_ERROR"
    return None


def is_retryable(error: BaseException) -> bool:
    """Classify an error. First matching rule wins; unknown errors are retryable."""
    code = error_code(error)
    if code in TRANSIENT_CODES:
        return True
    message = str(error).lower()
    if any(keyword in message for keyword in TRANSIENT_KEYWORDS):
        return True
    if getattr(error, "retryable", False) is True:
        return True
    if code in FATAL_CODES or isinstance(error, ValidationError):
        return False
    return True


def compute_backoff(attempt_index: int, base_delay_s: float, max_delay_s: float | None = None) -> float:
    """base * 2**attempt_index, no jitter. attempt_index is 0 for the first retry."""
    delay = base_delay_s * (2 ** max(attempt_index, 0))
    if max_delay_s is not None:
        delay = min(delay, max_delay_s)
    return delay


@dataclass(frozen=True)
class RetryState:
    """Outcome of classifying one failure. Consumed immediately, never stored."""

    attempt: int
    delay_s: float
    retryable: bool
    should_retry: bool


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    base_delay_s: float
    max_delay_s: float | None = None
    classify: Callable[[BaseException], bool] = is_retryable

    def decide(self, error: BaseException, attempts_made: int) -> RetryState:
        """attempts_made counts the failing attempt (1-based)."""
        retryable = self.classify(error)
        return RetryState(
            attempt=attempts_made,
            delay_s=compute_backoff(attempts_made - 1, self.base_delay_s, self.max_delay_s),
            retryable=retryable,
            should_retry=retryable and attempts_made < self.max_attempts,
        )


async def retry_call(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    reissue: Callable[[BaseException], bool] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await fn() until it succeeds or the policy gives up; re-raise the last error.

    reissue(error) -> False surfaces an error to the caller even when it is retryable
    (used to keep timeouts and unparseable responses out of the immediate retry path).
    """
    attempts = 0
    total_delay_s = 0.0
    while True:
        attempts += 1
        try:
            return await fn()
        except Exception as e:
            state = policy.decide(e, attempts)
            if not state.should_retry or (reissue is not None and not reissue(e)):
                raise
            total_delay_s += state.delay_s
            logger.debug(
                "retrying after %s (attempt %d/%d, sleep %.2fs, total %.2fs)",
                type(e).__name__,
                attempts,
                policy.max_attempts,
                state.delay_s,
                total_delay_s,
            )
            await sleep(state.delay_s)
