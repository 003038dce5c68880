"""
Error taxonomy for the upload pipeline and recovery helpers.
"""

import asyncio
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error class."""

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500,
        details: Optional[Dict] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.user_message = user_message or message
        self.timestamp = datetime.now(timezone.utc).isoformat()


class ValidationError(AppError):
    """A file (or the whole file list) failed pre-flight checks."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            status_code=400,
            **kwargs
        )


class UpstreamError(AppError):
    """
    The storage API rejected the file or answered without a usable media branch.

    ``http_status`` is the status the upstream answered with (``None`` when the
    envelope itself was malformed) and ``retryable`` tells the outer task retry
    whether another round could help.
    """

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        description: Optional[str] = None,
        retryable: bool = False,
        **kwargs
    ):
        super().__init__(
            message,
            code="UPSTREAM_ERROR",
            status_code=502,
            **kwargs
        )
        self.http_status = http_status
        self.description = description
        self.retryable = retryable


class TransportError(AppError):
    """Network-level failure talking to the upstream after all attempts."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            status_code=504,
            **kwargs
        )
        self.retryable = True


class IndexingError(AppError):
    """A metadata write to the KV store failed."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            code="INDEXING_ERROR",
            status_code=500,
            **kwargs
        )
        self.key = key


class RequestError(AppError):
    """Malformed multipart body or missing file fields."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="REQUEST_ERROR",
            status_code=500,
            **kwargs
        )


class ConfigurationError(AppError):
    """Required upstream or KV configuration is missing."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            status_code=500,
            **kwargs
        )


def error_response(
    error: Union[AppError, Exception],
    extra: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """
    Create the ``{error, details}`` failure body.

    Args:
        error: The error to convert to response
        extra: Additional fields merged into the body (zeroed counters etc.)

    Returns:
        JSONResponse with status 500
    """
    if isinstance(error, AppError):
        content = {
            "error": error.user_message,
            "details": error.details.get("reason") or error.code,
        }
    else:
        content = {
            "error": str(error) or "An unexpected error occurred",
            "details": "No additional details",
        }
        logger.error(f"Unhandled error: {str(error)}", exc_info=error)

    if extra:
        content.update(extra)

    return JSONResponse(status_code=500, content=content)


class ErrorRecovery:
    """Utilities for error recovery."""

    @staticmethod
    async def retry_async(
        func: Callable[[], Awaitable[Any]],
        max_attempts: int = 3,
        delay: float = 1.0,
        backoff: float = 2.0,
        exceptions: tuple = (Exception,),
        should_retry: Optional[Callable[[Exception], bool]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ) -> Any:
        """
        Retry an async function with exponential backoff.

        Args:
            func: Async function to retry
            max_attempts: Maximum number of attempts
            delay: Initial delay between attempts
            backoff: Backoff multiplier
            exceptions: Tuple of exceptions to catch
            should_retry: Predicate deciding whether a caught exception is
                worth another attempt; non-retryable ones are raised at once
            sleep: Delay primitive

        Returns:
            Result of the function

        Raises:
            Last exception if all attempts fail
        """
        current_delay = delay

        for attempt in range(1, max_attempts + 1):
            try:
                return await func()
            except exceptions as e:
                if should_retry is not None and not should_retry(e):
                    raise
                if attempt == max_attempts:
                    logger.error(f"All {max_attempts} attempts failed")
                    raise
                logger.warning(
                    f"Attempt {attempt} failed: {str(e)}. "
                    f"Retrying in {current_delay:.1f}s..."
                )
                await sleep(current_delay)
                current_delay *= backoff


def log_error(error: Exception, context: Optional[Dict] = None):
    """
    Log error with context and traceback.

    Args:
        error: The error to log
        context: Additional context information
    """
    error_info = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "traceback": "".join(traceback.format_exception(type(error), error, error.__traceback__))
    }

    if context:
        error_info["context"] = context

    if isinstance(error, AppError):
        error_info["error_code"] = error.code
        error_info["error_details"] = error.details

    logger.error("Error occurred", extra=error_info)
