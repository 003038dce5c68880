"""
HTTP transport with bounded retries for the storage upstream.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from utils.error_handlers import TransportError

logger = logging.getLogger(__name__)

RATE_LIMIT_BASE_DELAY = 1.0
RATE_LIMIT_MAX_DELAY = 30.0
SERVER_ERROR_STEP = 0.5
NETWORK_ERROR_STEP = 1.0


def retry_delay(status_code: int, attempt: int) -> Optional[float]:
    """
    Seconds to wait before retrying a response with ``status_code``.

    ``attempt`` is the 1-indexed attempt that produced the response.
    Returns ``None`` when the response must not be retried.
    """
    if status_code == 429:
        return min(RATE_LIMIT_BASE_DELAY * 2 ** attempt, RATE_LIMIT_MAX_DELAY)
    if status_code >= 500:
        return SERVER_ERROR_STEP * attempt
    return None


def network_retry_delay(attempt: int) -> float:
    """Seconds to wait after a connection error or timeout on ``attempt``."""
    return NETWORK_ERROR_STEP * attempt


class RetryingTransport:
    """
    Sends requests through a shared ``httpx.AsyncClient`` and retries
    rate-limited, server-side and network failures.

    A 2xx response or a non-retryable 4xx is returned at once. When the
    attempts run out on a retryable status, the last response is returned
    so the caller can read the upstream's error envelope; a network failure
    on the last attempt raises ``TransportError``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_attempts: int = 3,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def send(
        self,
        request: httpx.Request,
        max_attempts: Optional[int] = None,
        label: str = "request"
    ) -> httpx.Response:
        attempts = max_attempts or self.max_attempts

        for attempt in range(1, attempts + 1):
            try:
                response = await self.client.send(request)
            except httpx.TransportError as e:
                if attempt == attempts:
                    logger.error(f"{label}: network error on final attempt {attempt}/{attempts}: {e!r}")
                    raise TransportError(
                        f"Network error after {attempts} attempts: {e}",
                        details={"attempts": attempts, "reason": type(e).__name__}
                    ) from e
                delay = network_retry_delay(attempt)
                logger.warning(
                    f"{label}: network error on attempt {attempt}/{attempts} ({e!r}), "
                    f"retrying in {delay:.1f}s"
                )
                await self._sleep(delay)
                continue

            if response.is_success:
                return response

            delay = retry_delay(response.status_code, attempt)
            if delay is None:
                logger.info(f"{label}: HTTP {response.status_code} is not retryable")
                return response

            if attempt == attempts:
                logger.error(
                    f"{label}: HTTP {response.status_code} on final attempt {attempt}/{attempts}"
                )
                return response

            logger.warning(
                f"{label}: HTTP {response.status_code} on attempt {attempt}/{attempts}, "
                f"retrying in {delay:.1f}s"
            )
            await self._sleep(delay)

        # only reached when attempts < 1
        raise ValueError(f"max_attempts must be at least 1, got {attempts}")
