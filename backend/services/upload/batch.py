"""
Batch orchestration: pre-validation, dispatch scheduling, outcome aggregation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from utils.error_handlers import ValidationError
from .context import UploadContext
from .task import UploadFailure, UploadOutcome, UploadRequest, UploadSuccess, UploadTask, validate_upload

logger = logging.getLogger(__name__)

MIB = 1024 * 1024

# (average size strictly above, concurrency), checked top to bottom
CONCURRENCY_TIERS = (
    (100 * MIB, 1),
    (10 * MIB, 2),
    (2 * MIB, 3),
)
MAX_CONCURRENCY = 4


@dataclass
class BatchResult:
    """Aggregated outcomes of one request; every input file lands in exactly one list."""
    total: int
    successes: List[UploadSuccess] = field(default_factory=list)
    failures: List[UploadFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.successes)

    @property
    def fail_count(self) -> int:
        return len(self.failures)

    def add(self, outcome: UploadOutcome) -> None:
        if isinstance(outcome, UploadSuccess):
            self.successes.append(outcome)
        else:
            self.failures.append(outcome)


def average_size(uploads: Sequence[UploadRequest]) -> float:
    if not uploads:
        return 0.0
    return sum(u.size for u in uploads) / len(uploads)


def concurrency_for(uploads: Sequence[UploadRequest]) -> int:
    """Slice width for a batch, from its average file size."""
    avg = average_size(uploads)
    for threshold, limit in CONCURRENCY_TIERS:
        if avg > threshold:
            return limit
    return MAX_CONCURRENCY


class BatchUploader:
    """
    Runs one UploadTask per file and collects every outcome.

    ``adaptive`` dispatch runs the files in consecutive slices whose width
    comes from ``concurrency_for`` with a short pause between slices;
    ``parallel`` dispatch starts every file at once. A failing file never
    cancels its siblings.
    """

    def __init__(self, ctx: UploadContext, task: Optional[UploadTask] = None):
        self.ctx = ctx
        self.task = task or UploadTask(ctx)

    async def run(self, uploads: Sequence[UploadRequest]) -> BatchResult:
        result = BatchResult(total=len(uploads))

        valid: List[UploadRequest] = []
        for upload in uploads:
            try:
                validate_upload(upload, self.ctx.settings.MAX_FILE_SIZE)
            except ValidationError as e:
                logger.warning(f"Skipping {upload.name!r}: {e.message}")
                result.add(UploadFailure(file_name=upload.name, error_message=e.message))
                continue
            valid.append(upload)

        if valid:
            if self.ctx.settings.DISPATCH_MODE == "parallel":
                outcomes = await self._settle(valid)
            else:
                outcomes = await self._dispatch_in_slices(valid)
            for outcome in outcomes:
                result.add(outcome)

        logger.info(
            f"Batch done: {result.success_count}/{result.total} succeeded, "
            f"{result.fail_count} failed"
        )
        return result

    async def _dispatch_in_slices(self, uploads: List[UploadRequest]) -> List[UploadOutcome]:
        limit = concurrency_for(uploads)
        logger.info(
            f"Dispatching {len(uploads)} files, "
            f"concurrency {limit} (avg {average_size(uploads) / MIB:.1f}MiB)"
        )

        outcomes: List[UploadOutcome] = []
        for start in range(0, len(uploads), limit):
            if start > 0:
                await self.ctx.sleep(self.ctx.settings.SLICE_PAUSE)
            outcomes.extend(await self._settle(uploads[start:start + limit]))
        return outcomes

    async def _settle(self, uploads: Sequence[UploadRequest]) -> List[UploadOutcome]:
        settled = await asyncio.gather(
            *(self.task.run(upload) for upload in uploads),
            return_exceptions=True
        )

        outcomes: List[UploadOutcome] = []
        for upload, outcome in zip(uploads, settled):
            if isinstance(outcome, BaseException):
                logger.error(f"Task for {upload.name} raised: {outcome!r}")
                outcome = UploadFailure(file_name=upload.name, error_message=str(outcome) or type(outcome).__name__)
            outcomes.append(outcome)
        return outcomes
