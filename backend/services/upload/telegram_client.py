"""
Telegram Bot API client used purely as a file-storage backend.

A file is stored by posting it to ``sendDocument``; the reply carries the
remote file identifier under one of several media branches depending on how
Telegram classified the upload.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING

import httpx

from utils.error_handlers import UpstreamError
from .multipart import MultipartBody
from .transport import RetryingTransport

if TYPE_CHECKING:
    from .task import UploadRequest

logger = logging.getLogger(__name__)


class MediaKind(str, Enum):
    STICKER = "sticker"
    DOCUMENT = "document"
    VIDEO = "video"
    PHOTO = "photo"


# Order in which the result branches are checked
MEDIA_PRIORITY = (MediaKind.STICKER, MediaKind.DOCUMENT, MediaKind.VIDEO, MediaKind.PHOTO)


@dataclass(frozen=True)
class ThumbnailDescriptor:
    remote_file_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    file_size: Optional[int] = None


@dataclass(frozen=True)
class FileDescriptor:
    """Normalized view of the stored file, whatever branch it came from."""
    kind: MediaKind
    remote_file_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    thumbnail: Optional[ThumbnailDescriptor] = None


def _dimension(value: Any) -> Optional[int]:
    if isinstance(value, int) and value > 0:
        return value
    return None


def _parse_thumbnail(media: Dict[str, Any]) -> Optional[ThumbnailDescriptor]:
    # Bot API 6.6 renamed 'thumb' to 'thumbnail'
    thumb = media.get("thumbnail") or media.get("thumb")
    if not isinstance(thumb, dict) or not thumb.get("file_id"):
        return None
    return ThumbnailDescriptor(
        remote_file_id=thumb["file_id"],
        width=_dimension(thumb.get("width")),
        height=_dimension(thumb.get("height")),
        file_size=thumb.get("file_size"),
    )


def parse_file_descriptor(payload: Dict[str, Any]) -> Optional[FileDescriptor]:
    """
    Decode a ``sendDocument`` reply into a FileDescriptor.

    Returns None when the envelope is not ``ok`` or no known media branch
    carries a file id.
    """
    if not payload.get("ok") or not isinstance(payload.get("result"), dict):
        return None

    result = payload["result"]
    for kind in MEDIA_PRIORITY:
        media = result.get(kind.value)
        if not media:
            continue

        if kind is MediaKind.PHOTO:
            # photo is a list of sizes, smallest first
            if not isinstance(media, list):
                continue
            largest = media[-1]
            if not isinstance(largest, dict) or not largest.get("file_id"):
                continue
            return FileDescriptor(
                kind=kind,
                remote_file_id=largest["file_id"],
                width=_dimension(largest.get("width")),
                height=_dimension(largest.get("height")),
            )

        if not isinstance(media, dict) or not media.get("file_id"):
            continue
        return FileDescriptor(
            kind=kind,
            remote_file_id=media["file_id"],
            width=_dimension(media.get("width")),
            height=_dimension(media.get("height")),
            thumbnail=_parse_thumbnail(media),
        )

    return None


class TelegramClient:
    """Uploads one file per call through a RetryingTransport."""

    def __init__(
        self,
        transport: RetryingTransport,
        bot_token: str,
        chat_id: str,
        api_base_url: str = "https://api.telegram.org"
    ):
        self._transport = transport
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._api_base_url = api_base_url.rstrip("/")

    @property
    def send_document_url(self) -> str:
        return f"{self._api_base_url}/bot{self._bot_token}/sendDocument"

    def build_request(self, upload: "UploadRequest") -> httpx.Request:
        body = MultipartBody(
            fields={"chat_id": self._chat_id},
            file_field="document",
            file_name=upload.name,
            file=upload.content,
            file_size=upload.size,
            content_type=upload.content_type,
        )
        return self._transport.client.build_request(
            "POST",
            self.send_document_url,
            content=body,
            headers=body.headers(),
        )

    async def upload(self, upload: "UploadRequest") -> FileDescriptor:
        """
        Store ``upload`` upstream and return its descriptor.

        Raises:
            UpstreamError: non-success envelope or no recognized media branch
            TransportError: network failure after all attempts
        """
        request = self.build_request(upload)
        response = await self._transport.send(request, label=upload.name)

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if not response.is_success or not payload.get("ok"):
            description = payload.get("description") or response.reason_phrase or "Upstream request failed"
            status = response.status_code
            logger.error(f"Upstream rejected {upload.name}: HTTP {status} {description}")
            raise UpstreamError(
                f"Upstream error {payload.get('error_code') or status}: {description}",
                http_status=status,
                description=description,
                retryable=status == 429 or status >= 500,
                details={"http_status": status, "reason": description},
            )

        descriptor = parse_file_descriptor(payload)
        if descriptor is None:
            logger.error(f"Upstream reply for {upload.name} has no recognized media branch")
            raise UpstreamError(
                "Failed to get file info from upstream response",
                http_status=response.status_code,
                details={"reason": "NO_MEDIA_BRANCH"},
            )

        logger.debug(f"Stored {upload.name} as {descriptor.kind.value} {descriptor.remote_file_id}")
        return descriptor
