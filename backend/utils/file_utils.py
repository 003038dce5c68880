"""
File naming and public URL helpers
"""

from typing import Optional


def get_file_extension(filename: str) -> str:
    """Lower-cased text after the last dot, without the dot ('' when absent)"""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def build_storage_key(remote_file_id: str, extension: str) -> str:
    """Key shared by public URLs and the metadata index: ``{id}.{ext}``"""
    return f"{remote_file_id}.{extension}"


def build_public_url(origin: str, remote_file_id: str, extension: str, prefix: str = "/file") -> str:
    """Absolute URL a client uses to fetch the stored file back"""
    return f"{origin.rstrip('/')}{prefix}/{build_storage_key(remote_file_id, extension)}"


def format_size(size: Optional[int]) -> str:
    """Human readable byte count for log lines"""
    if size is None:
        return "unknown size"
    if size < 1024:
        return f"{size}B"
    value = size / 1024
    for unit in ("KiB", "MiB"):
        if value < 1024:
            return f"{value:.1f}{unit}"
        value /= 1024
    return f"{value:.1f}GiB"
