"""Retry policy shared by the HTTP clients."""

from __future__ import annotations

import httpx
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential, wait_random


def is_retryable_http_error(exc: BaseException) -> bool:
    """Return whether an httpx exception should trigger retry/backoff."""

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))


def build_retryer(*, max_retries: int, backoff_seconds: float) -> Retrying:
    """Build a tenacity loop making at most `max_retries` attempts (minimum one)."""

    wait_strategy = wait_exponential(
        multiplier=backoff_seconds,
        min=backoff_seconds,
        max=max(backoff_seconds, backoff_seconds * 8),
    ) + wait_random(0.0, 0.25)
    return Retrying(
        retry=retry_if_exception(is_retryable_http_error),
        wait=wait_strategy,
        stop=stop_after_attempt(max(1, max_retries)),
        reraise=True,
    )
