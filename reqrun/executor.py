"""reqrun executor - run a RequestConfig with bounded retry."""

import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from reqrun.builder import Transport, build_request
from reqrun.errors import RetryExhausted
from reqrun.resolver import RequestConfig

logger = logging.getLogger(__name__)

BuildFn = Callable[[RequestConfig], tuple[Any, Transport]]


class ResponseResult:
    """Final response of a call."""

    def __init__(self):
        self.status_code: int = 0
        self.reason: str = ""
        self.headers: dict[str, str] = {}
        self.content: bytes = b""
        self.elapsed_ms: float = 0
        self.attempts: int = 0

    @classmethod
    def from_response(cls, resp: requests.Response, elapsed_ms: float, attempts: int):
        result = cls()
        result.status_code = resp.status_code
        result.reason = resp.reason or ""
        result.headers = dict(resp.headers)
        result.content = resp.content or b""
        result.elapsed_ms = elapsed_ms
        result.attempts = attempts
        return result


class Success:
    """Attempt produced a response that ends the loop."""

    def __init__(self, result: ResponseResult):
        self.result = result


class RetryableFailure:
    """Network failure or 5xx; worth another attempt."""

    def __init__(self, reason: str):
        self.reason = reason


def is_retryable_status(status_code: int) -> bool:
    return 500 <= status_code <= 599


def max_attempts(retries: int) -> int:
    """retries + 1, never less than one."""
    return max(retries + 1, 1)


def attempt_once(
    config: RequestConfig,
    attempt: int,
    build: BuildFn = build_request,
) -> Success | RetryableFailure:
    """Build a fresh request, send it and classify the outcome.

    Build errors are not caught: they are configuration errors and must end
    the call without counting as an attempt.
    """
    prepared, transport = build(config)
    try:
        start = time.monotonic()
        try:
            resp = transport.send(prepared)
        except requests.exceptions.Timeout:
            return RetryableFailure(f"request timed out after {config.timeout}s")
        except requests.exceptions.ConnectionError as e:
            return RetryableFailure(f"connection error: {e}")
        except requests.exceptions.RequestException as e:
            return RetryableFailure(f"request failed: {e}")
        elapsed_ms = (time.monotonic() - start) * 1000

        try:
            if is_retryable_status(resp.status_code):
                # drain so the connection can be released
                _ = resp.content
                return RetryableFailure(f"received HTTP {resp.status_code}")
            return Success(ResponseResult.from_response(resp, elapsed_ms, attempt))
        finally:
            resp.close()
    finally:
        transport.close()


def execute(
    config: RequestConfig,
    retries: int = 0,
    retry_delay: float = 1.0,
    build: BuildFn | None = None,
    sleep: Callable[[float], None] | None = None,
) -> ResponseResult:
    """Execute config, retrying network failures and 5xx responses.

    Makes at most retries + 1 attempts, pausing retry_delay seconds between
    them. Any non-5xx status ends the loop. Raises RetryExhausted when the
    last attempt fails too.
    """
    build = build or build_request
    sleep = sleep or time.sleep
    attempts = max_attempts(retries)
    last_reason = ""

    for attempt in range(1, attempts + 1):
        logger.debug("attempt %d/%d: %s %s", attempt, attempts, config.method, config.url)
        outcome = attempt_once(config, attempt, build=build)

        if isinstance(outcome, Success):
            logger.debug(
                "attempt %d/%d: HTTP %d in %.0fms",
                attempt,
                attempts,
                outcome.result.status_code,
                outcome.result.elapsed_ms,
            )
            return outcome.result

        last_reason = outcome.reason
        if attempt < attempts:
            logger.warning(
                "attempt %d/%d failed (%s), retrying in %ss",
                attempt,
                attempts,
                last_reason,
                retry_delay,
            )
            sleep(max(retry_delay, 0))
        else:
            logger.debug("attempt %d/%d failed (%s)", attempt, attempts, last_reason)

    raise RetryExhausted(attempts, last_reason)
