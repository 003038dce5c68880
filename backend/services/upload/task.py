"""
Upload of a single file: validation, upstream call, URL mapping.
"""

import io
import logging
import time
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

from starlette.datastructures import UploadFile

from utils.error_handlers import AppError, ErrorRecovery, TransportError, UpstreamError
from utils.file_utils import build_public_url, format_size
from utils.validators import validate_file_extension, validate_file_size
from .context import UploadContext
from .telegram_client import FileDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadRequest:
    """One uploaded blob as received from the client."""
    name: str
    size: int
    content: BinaryIO
    content_type: str = "application/octet-stream"

    @classmethod
    def from_upload_file(cls, upload: UploadFile) -> "UploadRequest":
        size = upload.size
        if size is None:
            upload.file.seek(0, io.SEEK_END)
            size = upload.file.tell()
            upload.file.seek(0)
        return cls(
            name=upload.filename or "",
            size=size,
            content=upload.file,
            content_type=upload.content_type or "application/octet-stream",
        )


@dataclass(frozen=True)
class ThumbnailLink:
    src: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class UploadSuccess:
    url: str
    file_name: str
    size: int
    remote_file_id: str
    extension: str
    width: Optional[int] = None
    height: Optional[int] = None
    thumbnail: Optional[ThumbnailLink] = None
    elapsed_ms: int = 0

    @property
    def thumbnail_url(self) -> Optional[str]:
        return self.thumbnail.src if self.thumbnail else None


@dataclass(frozen=True)
class UploadFailure:
    file_name: str
    error_message: str


UploadOutcome = Union[UploadSuccess, UploadFailure]


def validate_upload(upload: UploadRequest, max_size: int) -> str:
    """Run the pre-flight checks and return the file's extension."""
    extension = validate_file_extension(upload.name)
    validate_file_size(upload.size, max_size)
    return extension


def _is_retryable(error: Exception) -> bool:
    return getattr(error, "retryable", False)


class UploadTask:
    """
    Uploads exactly one file and always produces an outcome.

    Transport-level retries happen inside the RetryingTransport; on top of
    that the whole upload is repeated ``TASK_RETRIES`` more times with its
    own exponential backoff when the failure looks transient.
    """

    def __init__(self, ctx: UploadContext):
        self.ctx = ctx
        self._client = ctx.telegram_client()

    async def run(self, upload: UploadRequest) -> UploadOutcome:
        settings = self.ctx.settings
        start = time.perf_counter()

        try:
            extension = validate_upload(upload, settings.MAX_FILE_SIZE)
            descriptor = await ErrorRecovery.retry_async(
                lambda: self._client.upload(upload),
                max_attempts=1 + max(settings.TASK_RETRIES, 0),
                delay=settings.TASK_RETRY_DELAY,
                backoff=2.0,
                exceptions=(UpstreamError, TransportError),
                should_retry=_is_retryable,
                sleep=self.ctx.sleep,
            )
        except AppError as e:
            logger.error(f"Upload of {upload.name} failed: {e.message}")
            return UploadFailure(file_name=upload.name, error_message=e.message)
        except Exception as e:
            logger.exception(f"Unexpected error uploading {upload.name}")
            return UploadFailure(file_name=upload.name, error_message=str(e) or type(e).__name__)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        success = self._to_success(upload, extension, descriptor, elapsed_ms)
        logger.info(
            f"Uploaded {upload.name} ({format_size(upload.size)}) "
            f"in {elapsed_ms}ms"
        )
        return success

    def _to_success(
        self,
        upload: UploadRequest,
        extension: str,
        descriptor: FileDescriptor,
        elapsed_ms: int
    ) -> UploadSuccess:
        origin = self.ctx.origin
        prefix = self.ctx.settings.PUBLIC_FILE_PREFIX

        thumbnail = None
        if descriptor.thumbnail is not None:
            thumbnail = ThumbnailLink(
                src=build_public_url(origin, descriptor.thumbnail.remote_file_id, extension, prefix),
                width=descriptor.thumbnail.width,
                height=descriptor.thumbnail.height,
            )

        return UploadSuccess(
            url=build_public_url(origin, descriptor.remote_file_id, extension, prefix),
            file_name=upload.name,
            size=upload.size,
            remote_file_id=descriptor.remote_file_id,
            extension=extension,
            width=descriptor.width,
            height=descriptor.height,
            thumbnail=thumbnail,
            elapsed_ms=elapsed_ms,
        )
