"""
Pre-flight validation for uploaded files.
"""

from typing import Sequence

from utils.error_handlers import ValidationError
from utils.file_utils import get_file_extension

# File validation constants
MAX_FILE_SIZE = 10 * 1024 * 1024 * 1024  # 10GiB
MIN_FILE_SIZE = 1  # zero-byte files are rejected


def validate_file_size(file_size: int, max_size: int = MAX_FILE_SIZE) -> bool:
    """
    Validate file size is within acceptable limits.

    Args:
        file_size: Size of file in bytes
        max_size: Upper bound in bytes

    Returns:
        True if valid

    Raises:
        ValidationError: If file size is invalid
    """
    if file_size < MIN_FILE_SIZE:
        raise ValidationError(
            "File is empty (0 bytes)",
            details={"size": file_size, "reason": "FILE_EMPTY"}
        )

    if file_size > max_size:
        raise ValidationError(
            f"File too large. Maximum size is {max_size / (1024 ** 3):.0f}GiB",
            details={"size": file_size, "max_size": max_size, "reason": "FILE_TOO_LARGE"}
        )

    return True


def validate_file_extension(filename: str) -> str:
    """
    Validate and return the lower-cased extension (without the dot).

    Raises:
        ValidationError: If the name has no dot-delimited extension
    """
    extension = get_file_extension(filename or "")
    if not extension:
        raise ValidationError(
            f"File '{filename}' has no extension",
            details={"filename": filename, "reason": "NO_EXTENSION"}
        )
    return extension


def validate_file_list(files: Sequence) -> None:
    """Reject a request that carries no file parts at all."""
    if not files:
        raise ValidationError(
            "No files uploaded",
            details={"reason": "NO_FILES"}
        )
