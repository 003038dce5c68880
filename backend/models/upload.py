"""
Upload-related Pydantic models
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional


class WireModel(BaseModel):
    """Serialized with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ThumbnailInfo(WireModel):
    src: str
    width: Optional[int] = None
    height: Optional[int] = None


class UploadedFile(WireModel):
    """One successfully stored file"""
    src: str
    file_name: str
    size: int
    width: Optional[int] = None
    height: Optional[int] = None
    thumbnail: Optional[ThumbnailInfo] = None
    elapsed_ms: int = 0


class LegacyUploadedFile(WireModel):
    """Entry of the bare-array response"""
    src: str
    thumbnail: Optional[ThumbnailInfo] = None


class FailedFile(WireModel):
    file_name: str
    error: str


class BatchUploadResponse(WireModel):
    """Structured response for a multi-file upload"""
    successful: List[UploadedFile]
    failed: List[FailedFile]
    total: int
    success_count: int
    fail_count: int
    success_rate: str  # formatted percentage, e.g. "60.0%"


class BatchUploadError(BatchUploadResponse):
    """Failure body carrying the same counters"""
    error: str
    details: Optional[str] = None
