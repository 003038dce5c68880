"""
Multi-file upload pipeline: Telegram storage upstream, retries, batching, KV index.
"""

from .batch import BatchResult, BatchUploader, concurrency_for
from .context import UploadContext
from .indexer import MetadataIndexer, MetadataRecord
from .kv_store import CloudflareKVStore, InMemoryKVStore, KVStore, create_kv_store
from .response_builder import build_error_response, build_response, format_success_rate
from .task import UploadFailure, UploadRequest, UploadSuccess, UploadTask
from .telegram_client import FileDescriptor, MediaKind, TelegramClient, parse_file_descriptor
from .transport import RetryingTransport, retry_delay

__all__ = [
    'BatchResult',
    'BatchUploader',
    'concurrency_for',
    'UploadContext',
    'MetadataIndexer',
    'MetadataRecord',
    'KVStore',
    'InMemoryKVStore',
    'CloudflareKVStore',
    'create_kv_store',
    'build_response',
    'build_error_response',
    'format_success_rate',
    'UploadRequest',
    'UploadSuccess',
    'UploadFailure',
    'UploadTask',
    'FileDescriptor',
    'MediaKind',
    'TelegramClient',
    'parse_file_descriptor',
    'RetryingTransport',
    'retry_delay',
]
