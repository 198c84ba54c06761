"""
File parts of multipart inputs.

FilePart is what a decoded form hands to validators: metadata is free to read,
the byte stream can be opened once. UploadedFile is the in-memory value a
validator produces when it chooses to drain a part.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Mapping

from starlette.datastructures import UploadFile

DEFAULT_CHUNK_SIZE = 64 * 1024


class StreamConsumedError(RuntimeError):
    """The byte stream of a FilePart was already opened."""


@dataclass(frozen=True)
class UploadedFile:
    """File fully read into memory."""

    content: bytes
    filename: str | None = None
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    def text(self, encoding: str = "utf-8") -> str:
        return self.content.decode(encoding)


class FilePart:
    """
    Streamed binary form field backed by Starlette's spooled upload file
    (kept in memory up to the parser's spool size, on disk beyond it).
    """

    def __init__(self, name: str, upload: UploadFile) -> None:
        self.name = name
        self._upload = upload
        self._consumed = False

    def __repr__(self) -> str:
        return f"FilePart(name={self.name!r}, filename={self.filename!r}, content_type={self.content_type!r})"

    @property
    def filename(self) -> str | None:
        return self._upload.filename

    @property
    def content_type(self) -> str:
        return self._upload.content_type or "application/octet-stream"

    @property
    def headers(self) -> Mapping[str, str]:
        return self._upload.headers

    @property
    def consumed(self) -> bool:
        """True once the stream was opened or the upload closed (the server closes uploads after responding)."""
        return self._consumed or self._upload.file.closed

    def stream(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Open the byte stream. Second call raises StreamConsumedError, even if the first read stopped early."""
        if self.consumed:
            raise StreamConsumedError(f"stream of file part {self.name!r} was already consumed")
        self._consumed = True
        return self._iter_chunks(chunk_size)

    async def _iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        await self._upload.seek(0)
        while True:
            chunk = await self._upload.read(chunk_size)
            if not chunk:
                return
            yield chunk

    async def read(self) -> bytes:
        """Drain the whole stream."""
        return b"".join([chunk async for chunk in self.stream()])

    async def materialize(self) -> UploadedFile:
        content = await self.read()
        return UploadedFile(content=content, filename=self.filename, content_type=self.content_type)

    async def aclose(self) -> None:
        self._consumed = True
        await self._upload.close()
