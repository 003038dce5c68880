"""
Per-request collaborators handed to every upload component.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx

from core.config import Settings
from utils.error_handlers import ConfigurationError
from .kv_store import KVStore
from .telegram_client import TelegramClient
from .transport import RetryingTransport


@dataclass
class UploadContext:
    """Everything one upload request needs, passed explicitly."""
    settings: Settings
    client: httpx.AsyncClient
    origin: str
    kv_store: Optional[KVStore] = None
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    request_id: str = "-"

    def ensure_configured(self) -> None:
        if not self.settings.upstream_configured:
            raise ConfigurationError(
                "Upload backend is not configured",
                details={"reason": "TG_BOT_TOKEN and TG_CHAT_ID must be set"}
            )

    def transport(self) -> RetryingTransport:
        return RetryingTransport(
            self.client,
            max_attempts=self.settings.TRANSPORT_MAX_ATTEMPTS,
            sleep=self.sleep,
        )

    def telegram_client(self) -> TelegramClient:
        return TelegramClient(
            self.transport(),
            bot_token=self.settings.TG_BOT_TOKEN,
            chat_id=self.settings.TG_CHAT_ID,
            api_base_url=self.settings.TG_API_BASE_URL,
        )
