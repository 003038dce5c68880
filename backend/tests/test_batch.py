"""
Tests for batch dispatch and outcome aggregation.
"""

import asyncio
import unittest

import httpx
import pytest

from conftest import document_reply, make_upload
from services.upload import BatchUploader, UploadFailure, UploadSuccess, concurrency_for

MIB = 1024 * 1024


class TestConcurrencyFor(unittest.TestCase):

    def sized(self, *sizes):
        return [make_upload(f"f{i}.bin", size=size) for i, size in enumerate(sizes)]

    def test_very_large_files_are_serial(self):
        self.assertEqual(concurrency_for(self.sized(150 * MIB, 150 * MIB)), 1)

    def test_tiers(self):
        self.assertEqual(concurrency_for(self.sized(20 * MIB)), 2)
        self.assertEqual(concurrency_for(self.sized(5 * MIB)), 3)
        self.assertEqual(concurrency_for(self.sized(1 * MIB, 1 * MIB)), 4)

    def test_thresholds_are_exclusive(self):
        self.assertEqual(concurrency_for(self.sized(100 * MIB)), 2)
        self.assertEqual(concurrency_for(self.sized(10 * MIB)), 3)
        self.assertEqual(concurrency_for(self.sized(2 * MIB)), 4)

    def test_uses_average_not_maximum(self):
        # avg = (200 + 1 + 1) / 3 ≈ 67MiB
        self.assertEqual(concurrency_for(self.sized(200 * MIB, MIB, MIB)), 2)

    def test_empty_batch(self):
        self.assertEqual(concurrency_for([]), 4)


class InFlightTracker:
    """Async handler that records the peak number of concurrent uploads."""

    def __init__(self, fail_names=()):
        self.current = 0
        self.peak = 0
        self.calls = 0
        self.fail_names = set(fail_names)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        self.current += 1
        self.peak = max(self.peak, self.current)
        await asyncio.sleep(0.01)
        self.current -= 1

        for name in self.fail_names:
            if f'filename="{name}"'.encode() in request.content:
                return httpx.Response(400, json={"ok": False, "description": "Bad Request"})
        return httpx.Response(200, json=document_reply(f"ID{self.calls}"))


class TestBatchUploader:

    @pytest.mark.asyncio
    async def test_counts_add_up_with_mixed_outcomes(self, make_context):
        tracker = InFlightTracker(fail_names={"rejected.png"})
        uploader = BatchUploader(make_context(tracker))
        uploads = [
            make_upload("a.png"),
            make_upload("empty.png", b""),
            make_upload("noextension"),
            make_upload("rejected.png"),
            make_upload("b.jpg"),
        ]

        result = await uploader.run(uploads)

        assert result.total == 5
        assert result.success_count == 2
        assert result.fail_count == 3
        assert result.success_count + result.fail_count == result.total
        assert {s.file_name for s in result.successes} == {"a.png", "b.jpg"}
        assert {f.file_name for f in result.failures} == {"empty.png", "noextension", "rejected.png"}
        # pre-validation failures never reach the upstream
        assert tracker.calls == 3

    @pytest.mark.asyncio
    async def test_large_files_dispatch_serially(self, make_context, sleeper):
        tracker = InFlightTracker()
        uploader = BatchUploader(make_context(tracker))
        uploads = [make_upload(f"movie{i}.mp4", size=150 * MIB) for i in range(3)]

        result = await uploader.run(uploads)

        assert result.success_count == 3
        assert tracker.peak == 1
        assert sleeper.delays == [0.1, 0.1]

    @pytest.mark.asyncio
    async def test_small_files_dispatch_four_at_a_time(self, make_context, sleeper):
        tracker = InFlightTracker()
        uploader = BatchUploader(make_context(tracker))
        uploads = [make_upload(f"img{i}.png", size=MIB) for i in range(6)]

        result = await uploader.run(uploads)

        assert result.success_count == 6
        assert tracker.peak == 4
        assert sleeper.delays == [0.1]

    @pytest.mark.asyncio
    async def test_parallel_mode_starts_everything(self, make_context, sleeper):
        tracker = InFlightTracker()
        uploader = BatchUploader(make_context(tracker, DISPATCH_MODE="parallel"))
        uploads = [make_upload(f"img{i}.png", size=150 * MIB) for i in range(6)]

        result = await uploader.run(uploads)

        assert result.success_count == 6
        assert tracker.peak == 6
        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_all_invalid_skips_dispatch(self, make_context):
        tracker = InFlightTracker()
        uploader = BatchUploader(make_context(tracker))

        result = await uploader.run([make_upload("a.png", b""), make_upload("b")])

        assert result.total == 2
        assert result.success_count == 0
        assert result.fail_count == 2
        assert tracker.calls == 0

    @pytest.mark.asyncio
    async def test_crashing_task_becomes_failure(self, make_context):
        class FlakyTask:
            async def run(self, upload):
                if upload.name == "bad.png":
                    raise RuntimeError("task exploded")
                return UploadSuccess(
                    url=f"https://x/file/{upload.name}", file_name=upload.name,
                    size=upload.size, remote_file_id="id", extension="png",
                )

        uploader = BatchUploader(make_context(InFlightTracker()), task=FlakyTask())

        result = await uploader.run([make_upload("good.png"), make_upload("bad.png")])

        assert result.success_count == 1
        assert result.failures == [UploadFailure(file_name="bad.png", error_message="task exploded")]
