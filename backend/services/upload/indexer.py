"""
Best-effort metadata index of uploaded files.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from utils.error_handlers import IndexingError
from utils.file_utils import build_storage_key
from .kv_store import KVStore
from .task import UploadSuccess

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetadataRecord:
    """One KV entry: empty value, descriptive metadata on the side."""
    key: str
    file_name: str
    file_size: int
    timestamp: int
    width: Optional[int] = None
    height: Optional[int] = None
    list_type: str = "None"
    label: str = "None"
    liked: bool = False

    @classmethod
    def from_success(cls, success: UploadSuccess, timestamp: Optional[int] = None) -> "MetadataRecord":
        return cls(
            key=build_storage_key(success.remote_file_id, success.extension),
            file_name=success.file_name,
            file_size=success.size,
            timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
            width=success.width,
            height=success.height,
        )

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "TimeStamp": self.timestamp,
            "ListType": self.list_type,
            "Label": self.label,
            "liked": self.liked,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "width": self.width,
            "height": self.height,
        }


class MetadataIndexer:
    """Writes MetadataRecords in small groups; a failed write is only logged."""

    def __init__(
        self,
        store: KVStore,
        batch_size: int = 5,
        pause: float = 0.05,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.store = store
        self.batch_size = max(batch_size, 1)
        self.pause = pause
        self._sleep = sleep

    async def record_all(self, successes: Sequence[UploadSuccess]) -> List[IndexingError]:
        """Index every success; returns the write errors that were swallowed."""
        records = [MetadataRecord.from_success(s) for s in successes]
        errors: List[IndexingError] = []

        for start in range(0, len(records), self.batch_size):
            if start > 0 and self.pause:
                await self._sleep(self.pause)
            group = records[start:start + self.batch_size]
            results = await asyncio.gather(
                *(self._write(record) for record in group),
                return_exceptions=True
            )
            for record, outcome in zip(group, results):
                if isinstance(outcome, BaseException):
                    error = outcome if isinstance(outcome, IndexingError) else IndexingError(
                        f"KV write for {record.key} failed: {outcome}", key=record.key
                    )
                    logger.error(f"Metadata for {record.file_name} not indexed: {error.message}")
                    errors.append(error)

        logger.info(f"Indexed {len(records) - len(errors)}/{len(records)} files")
        return errors

    async def _write(self, record: MetadataRecord) -> None:
        await self.store.put(record.key, "", record.to_metadata())
