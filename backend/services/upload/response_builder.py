"""
Shapes a BatchResult into the HTTP response.
"""

import logging
from typing import Optional

from fastapi.responses import JSONResponse

from models.upload import (
    BatchUploadError,
    BatchUploadResponse,
    FailedFile,
    LegacyUploadedFile,
    ThumbnailInfo,
    UploadedFile,
)
from utils.error_handlers import error_response
from .batch import BatchResult
from .task import UploadSuccess

logger = logging.getLogger(__name__)

STRUCTURED = "structured"
LEGACY = "legacy"


def format_success_rate(success_count: int, total: int) -> str:
    if total == 0:
        return "0.0%"
    return f"{success_count / total * 100:.1f}%"


def _thumbnail(success: UploadSuccess) -> Optional[ThumbnailInfo]:
    if success.thumbnail is None:
        return None
    return ThumbnailInfo(
        src=success.thumbnail.src,
        width=success.thumbnail.width,
        height=success.thumbnail.height,
    )


def _uploaded_file(success: UploadSuccess) -> UploadedFile:
    return UploadedFile(
        src=success.url,
        file_name=success.file_name,
        size=success.size,
        width=success.width,
        height=success.height,
        thumbnail=_thumbnail(success),
        elapsed_ms=success.elapsed_ms,
    )


def _summary_fields(result: BatchResult) -> dict:
    return dict(
        successful=[_uploaded_file(s) for s in result.successes],
        failed=[FailedFile(file_name=f.file_name, error=f.error_message) for f in result.failures],
        total=result.total,
        success_count=result.success_count,
        fail_count=result.fail_count,
        success_rate=format_success_rate(result.success_count, result.total),
    )


def build_response(result: BatchResult, response_format: str = STRUCTURED) -> JSONResponse:
    """
    200 with the uploaded files when at least one succeeded, 500 otherwise.

    The structured shape always enumerates failures; the legacy shape is the
    bare ``[{src, thumbnail}]`` array of successes.
    """
    if result.success_count == 0:
        return build_all_failed_response(result, response_format)

    if response_format == LEGACY:
        body = [
            LegacyUploadedFile(src=s.url, thumbnail=_thumbnail(s)).model_dump(by_alias=True)
            for s in result.successes
        ]
        return JSONResponse(status_code=200, content=body)

    body = BatchUploadResponse(**_summary_fields(result))
    return JSONResponse(status_code=200, content=body.model_dump(by_alias=True))


def build_all_failed_response(result: BatchResult, response_format: str = STRUCTURED) -> JSONResponse:
    if result.total == 0:
        message, details = "No files uploaded", "NO_FILES"
    else:
        message = "All files failed to upload"
        details = "; ".join(f"{f.file_name}: {f.error_message}" for f in result.failures)

    logger.error(f"{message} ({result.fail_count}/{result.total})")

    if response_format == LEGACY:
        return JSONResponse(status_code=500, content={"error": message, "details": details})

    body = BatchUploadError(error=message, details=details, **_summary_fields(result))
    return JSONResponse(status_code=500, content=body.model_dump(by_alias=True))


def build_error_response(error: Exception, response_format: str = STRUCTURED) -> JSONResponse:
    """500 for failures before orchestration began (bad form, missing config)."""
    if response_format == LEGACY:
        return error_response(error)

    return error_response(error, extra={
        "successful": [],
        "failed": [],
        "total": 0,
        "successCount": 0,
        "failCount": 0,
        "successRate": format_success_rate(0, 0),
    })
