"""Binary stream adapters used by the unpacking pipeline.

Every adapter here is a forward-only :class:`io.RawIOBase`. None of them is
seekable, which keeps ``tarfile`` and libarchive in their streaming modes no
matter whether the bytes come from a socket, a local file, or a decompressor.
"""

from __future__ import annotations

import contextlib
import io
import zlib
from typing import BinaryIO, Iterable, Iterator, Optional

from ..errors import FormatError, SourceError

__all__ = [
    "PeekableStream",
    "IterableReader",
    "SourceReader",
    "LayerReader",
    "copy_stream",
    "closing_after_copy",
]

DEFAULT_CHUNK_SIZE = 1 << 20


class PeekableStream(io.RawIOBase):
    """Wrap ``source`` with an unbounded look-ahead buffer.

    ``peek`` keeps reading from the source until the requested number of bytes
    is buffered or the source is exhausted, unlike :meth:`io.BufferedReader.peek`
    which may return after a single short read. Peeked bytes are replayed by
    subsequent reads, so classification never consumes the stream.

    The source is borrowed; closing the wrapper leaves it open.
    """

    def __init__(self, source: BinaryIO) -> None:
        super().__init__()
        self._source = source
        self._buffer = bytearray()
        self._eof = False

    def readable(self) -> bool:
        return True

    def peek(self, size: int) -> bytes:
        """Return up to ``size`` leading bytes without consuming them."""

        while len(self._buffer) < size and not self._eof:
            chunk = self._source.read(size - len(self._buffer))
            if not chunk:
                self._eof = True
                break
            self._buffer += chunk
        return bytes(self._buffer[:size])

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        if not len(view):
            return 0
        if self._buffer:
            count = min(len(view), len(self._buffer))
            view[:count] = self._buffer[:count]
            del self._buffer[:count]
            return count
        if self._eof:
            return 0
        data = self._source.read(len(view))
        if not data:
            self._eof = True
            return 0
        count = len(data)
        view[:count] = data
        return count


class IterableReader(io.RawIOBase):
    """Expose an iterator of byte chunks as a readable binary stream."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        super().__init__()
        self._chunks: Iterator[bytes] = iter(chunks)
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        while not self._pending:
            chunk = next(self._chunks, None)
            if chunk is None:
                return 0
            self._pending = bytes(chunk)
        count = min(len(view), len(self._pending))
        view[:count] = self._pending[:count]
        self._pending = self._pending[count:]
        return count


class SourceReader(io.RawIOBase):
    """Report read failures of the raw source as :class:`SourceError`.

    Wrapping the source before any decompressor sees it keeps a failing disk or
    socket from being mistaken for corrupt compressed data further up.
    """

    def __init__(self, source: BinaryIO) -> None:
        super().__init__()
        self._source = source

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        try:
            data = self._source.read(len(view))
        except OSError as exc:
            raise SourceError(f"error reading source: {exc}") from exc
        count = len(data)
        view[:count] = data
        return count


class LayerReader(io.RawIOBase):
    """Translate decompression failures of ``inner`` into :class:`FormatError`.

    ``gzip`` and ``bz2`` report corrupt or truncated data lazily, from inside
    whatever consumer happens to be reading. Wrapping the decompressor means
    the failure names its layer regardless of where it surfaces. Errors
    from the source itself arrive as :class:`SourceError` and pass through.
    """

    def __init__(self, inner: BinaryIO, *, layer: str) -> None:
        super().__init__()
        self._inner = inner
        self.layer = layer

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        try:
            data = self._inner.read(len(view))
        except (OSError, EOFError, zlib.error) as exc:
            raise FormatError(self.layer, str(exc) or type(exc).__name__) from exc
        count = len(data)
        view[:count] = data
        return count

    def close(self) -> None:
        if not self.closed:
            try:
                self._inner.close()
            finally:
                super().close()


def copy_stream(
    source: BinaryIO,
    target: BinaryIO,
    *,
    chunk_size: Optional[int] = None,
) -> int:
    """Copy ``source`` into ``target`` and return the number of bytes moved."""

    size = chunk_size or DEFAULT_CHUNK_SIZE
    total = 0
    for chunk in iter(lambda: source.read(size), b""):
        target.write(chunk)
        total += len(chunk)
    return total


@contextlib.contextmanager
def closing_after_copy(target: BinaryIO) -> Iterator[BinaryIO]:
    """Close ``target`` on exit, letting an error from the body win over one from ``close``."""

    try:
        yield target
    except BaseException:
        with contextlib.suppress(OSError):
            target.close()
        raise
    target.close()
