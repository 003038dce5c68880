"""
Core module for the upload backend
"""

from .config import settings, Settings
from .middleware import (
    LoggingMiddleware,
    RequestIDFilter,
    RequestIDMiddleware,
    current_request_id,
)

__all__ = [
    "settings",
    "Settings",
    "RequestIDMiddleware",
    "LoggingMiddleware",
    "RequestIDFilter",
    "current_request_id",
]
