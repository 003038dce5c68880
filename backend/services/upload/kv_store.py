"""
Key-value stores the metadata index is written to.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import httpx

from core.config import Settings
from utils.error_handlers import ConfigurationError, IndexingError

logger = logging.getLogger(__name__)


class KVStore:
    """Put-only store: ``put(key, value, metadata)``."""

    async def put(self, key: str, value: str, metadata: Dict[str, Any]) -> None:
        raise NotImplementedError


class InMemoryKVStore(KVStore):
    """Process-local store for development and tests."""

    def __init__(self):
        self.entries: Dict[str, Tuple[str, Dict[str, Any]]] = {}

    async def put(self, key: str, value: str, metadata: Dict[str, Any]) -> None:
        self.entries[key] = (value, dict(metadata))

    def __len__(self) -> int:
        return len(self.entries)


class CloudflareKVStore(KVStore):
    """Workers KV namespace written through the Cloudflare REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        account_id: str,
        namespace_id: str,
        api_token: str,
        api_base_url: str = "https://api.cloudflare.com/client/v4"
    ):
        self._client = client
        self._api_token = api_token
        self._namespace_url = (
            f"{api_base_url.rstrip('/')}/accounts/{account_id}"
            f"/storage/kv/namespaces/{namespace_id}"
        )

    def value_url(self, key: str) -> str:
        return f"{self._namespace_url}/values/{quote(key, safe='')}"

    async def put(self, key: str, value: str, metadata: Dict[str, Any]) -> None:
        try:
            response = await self._client.put(
                self.value_url(key),
                headers={"Authorization": f"Bearer {self._api_token}"},
                files={
                    "value": (None, value.encode("utf-8")),
                    "metadata": (None, json.dumps(metadata).encode("utf-8")),
                },
            )
        except httpx.HTTPError as e:
            raise IndexingError(f"KV write for {key} failed: {e}", key=key) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.is_success or not body.get("success", False):
            errors = body.get("errors") or response.text
            raise IndexingError(
                f"KV write for {key} failed with HTTP {response.status_code}: {errors}",
                key=key,
                details={"http_status": response.status_code},
            )


def create_kv_store(settings: Settings, client: httpx.AsyncClient) -> Optional[KVStore]:
    """Build the store selected by ``KV_BACKEND``; None disables indexing."""
    backend = settings.KV_BACKEND
    if backend == "none":
        return None
    if backend == "memory":
        return InMemoryKVStore()
    if backend == "cloudflare":
        missing = [
            name for name in ("CF_ACCOUNT_ID", "CF_KV_NAMESPACE_ID", "CF_API_TOKEN")
            if not getattr(settings, name)
        ]
        if missing:
            raise ConfigurationError(f"Cloudflare KV backend needs {', '.join(missing)}")
        return CloudflareKVStore(
            client,
            account_id=settings.CF_ACCOUNT_ID,
            namespace_id=settings.CF_KV_NAMESPACE_ID,
            api_token=settings.CF_API_TOKEN,
            api_base_url=settings.CF_API_BASE_URL,
        )
    raise ConfigurationError(f"Unknown KV_BACKEND '{backend}'")
