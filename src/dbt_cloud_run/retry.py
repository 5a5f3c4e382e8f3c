# This is free software for the public good of a permacomputer hosted at
# permacomputer.com, an always-on computer by the people, for the people.
# One which is durable, easy to repair, & distributed like tap water
# for machine learning intelligence.
#
# The permacomputer is community-owned infrastructure optimized around
# four values:
#
#   TRUTH      First principles, math & science, open source code freely distributed
#   FREEDOM    Voluntary partnerships, freedom from tyranny & corporate control
#   HARMONY    Minimal waste, self-renewing systems with diverse thriving connections
#   LOVE       Be yourself without hurting others, cooperation through natural law
#
# This software contributes to that vision by letting CI pipelines trigger, follow and clean up dbt Cloud job runs through a unified interface, accessible to all.
# Code is seeds to sprout on any abandoned technology.

"""
Bounded retry for transport-level failures.

Retries (default 3) back off linearly: attempt number x 1 second. Each attempt
gets its own request timeout. When retries run out the last transport error
is raised unchanged.

Retried:
    - connection errors and timeouts, for every HTTP method
    - 5xx responses, for idempotent methods only (a POST may already have
      taken effect on the server)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import aiohttp
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)


logger = logging.getLogger(__name__)

RETRIES = 3
RETRY_DELAY = 1.0
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})


def is_transient(exc: BaseException, method: str) -> bool:
    """Return True if a failed request is worth sending again."""
    if isinstance(exc, aiohttp.ClientResponseError):
        return exc.status >= 500 and method.upper() in IDEMPOTENT_METHODS
    return isinstance(exc, (aiohttp.ClientConnectionError, asyncio.TimeoutError))


async def _async_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.error("Error in request. Retrying... (attempt %d): %s", retry_state.attempt_number, exc)


class RetryPolicy:
    """Wraps a coroutine function with bounded, linearly backed-off retries."""

    def __init__(
        self,
        retries: int = RETRIES,
        delay: float = RETRY_DELAY,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.retries = retries
        self.delay = delay
        self._sleep = sleep or _async_sleep

    async def call(self, method: str, fn: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """
        Await ``fn(*args, **kwargs)``, retrying transient failures.

        Args:
            method: HTTP method of the wrapped request, used to decide
                whether a 5xx response may be retried
            fn: Coroutine function performing exactly one request

        Returns:
            Whatever ``fn`` returns on the first successful attempt

        Raises:
            The last exception raised by ``fn`` once retries are exhausted,
            or the first non-transient one.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retries + 1),
            wait=wait_incrementing(start=self.delay, increment=self.delay),
            retry=retry_if_exception(lambda exc: is_transient(exc, method)),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(fn, *args, **kwargs)
