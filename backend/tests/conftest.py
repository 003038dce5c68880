"""
Shared fixtures: settings, recording sleep, fake Telegram replies.
"""

import io
import itertools

import httpx
import pytest

from core.config import Settings
from services.upload import UploadContext, UploadRequest

BOT_TOKEN = "123456:TEST-TOKEN"
CHAT_ID = "-100200300"
ORIGIN = "https://img.example.com"


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def document_reply(file_id: str, width=None, height=None, thumbnail=None) -> dict:
    document = {"file_id": file_id, "file_unique_id": f"u-{file_id}", "file_size": 10}
    if width is not None:
        document["width"] = width
    if height is not None:
        document["height"] = height
    if thumbnail is not None:
        document["thumbnail"] = thumbnail
    return {"ok": True, "result": {"message_id": 1, "document": document}}


def make_upload(name: str = "photo.png", data: bytes = b"\x89PNG data", size=None,
                content_type: str = "image/png") -> UploadRequest:
    return UploadRequest(
        name=name,
        size=len(data) if size is None else size,
        content=io.BytesIO(data),
        content_type=content_type,
    )


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def make_settings():
    def factory(**overrides) -> Settings:
        values = dict(
            TG_BOT_TOKEN=BOT_TOKEN,
            TG_CHAT_ID=CHAT_ID,
            TRANSPORT_MAX_ATTEMPTS=3,
            TASK_RETRIES=1,
            TASK_RETRY_DELAY=1.0,
            DISPATCH_MODE="adaptive",
            SLICE_PAUSE=0.1,
            KV_BACKEND="none",
            RESPONSE_FORMAT="structured",
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return factory


@pytest.fixture
def make_context(make_settings, sleeper):
    """Build an UploadContext whose HTTP traffic goes to ``handler``."""
    def factory(handler, kv_store=None, **overrides) -> UploadContext:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return UploadContext(
            settings=make_settings(**overrides),
            client=client,
            origin=ORIGIN,
            kv_store=kv_store,
            sleep=sleeper,
            request_id="test",
        )

    return factory


@pytest.fixture
def file_ids():
    counter = itertools.count(1)
    return lambda: f"BQACAgIAAx{next(counter):04d}"
