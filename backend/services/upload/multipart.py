"""
Streaming multipart/form-data body for large uploads.

File parts are read in chunks on a worker thread so a multi-gigabyte file
spooled to disk never blocks the event loop. The body can be iterated more
than once; each pass rewinds the file, which lets the transport resend it.
"""

import os
from typing import AsyncIterator, BinaryIO, Dict, List

from starlette.concurrency import run_in_threadpool

CHUNK_SIZE = 64 * 1024
CRLF = b"\r\n"


def quote_param(value: str) -> str:
    """Escape a header parameter the way browsers encode form filenames."""
    out = []
    for char in value:
        if char == '"':
            out.append("%22")
        elif char == "\\":
            out.append("\\\\")
        elif ord(char) < 0x20 and char != "\x1b":
            out.append(f"%{ord(char):02X}")
        else:
            out.append(char)
    return "".join(out)


class MultipartBody:
    """
    A ``multipart/form-data`` body with plain fields and one file part.

    Args:
        fields: text fields sent before the file
        file_field: form name of the file part
        file_name: filename advertised for the file part
        file: binary file object, read from offset 0
        file_size: exact byte length of ``file``
        content_type: media type of the file part
    """

    def __init__(
        self,
        fields: Dict[str, str],
        file_field: str,
        file_name: str,
        file: BinaryIO,
        file_size: int,
        content_type: str = "application/octet-stream",
        chunk_size: int = CHUNK_SIZE
    ):
        self.boundary = os.urandom(16).hex()
        self._file = file
        self._file_size = file_size
        self._chunk_size = chunk_size

        dash_boundary = f"--{self.boundary}".encode("ascii")
        parts: List[bytes] = []
        for name, value in fields.items():
            parts.append(dash_boundary + CRLF)
            parts.append(f'Content-Disposition: form-data; name="{quote_param(name)}"'.encode())
            parts.append(CRLF + CRLF + str(value).encode() + CRLF)
        parts.append(dash_boundary + CRLF)
        parts.append(
            f'Content-Disposition: form-data; name="{quote_param(file_field)}"; '
            f'filename="{quote_param(file_name)}"'.encode()
        )
        parts.append(CRLF + f"Content-Type: {content_type}".encode() + CRLF + CRLF)

        self._preamble = b"".join(parts)
        self._epilogue = CRLF + dash_boundary + b"--" + CRLF

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    @property
    def content_length(self) -> int:
        return len(self._preamble) + self._file_size + len(self._epilogue)

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": self.content_type,
            "Content-Length": str(self.content_length),
        }

    async def _read_chunk(self) -> bytes:
        return await run_in_threadpool(self._file.read, self._chunk_size)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self._preamble
        await run_in_threadpool(self._file.seek, 0)
        while True:
            chunk = await self._read_chunk()
            if not chunk:
                break
            yield chunk
        yield self._epilogue
