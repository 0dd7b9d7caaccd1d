# === NAVMAP v1 ===
# {
#   "module": "StreamFetch.io.archives",
#   "purpose": "One streaming iteration contract over tar and zip archive readers",
#   "sections": [
#     {"id": "entries", "name": "Archive Entries", "anchor": "ENT", "kind": "api"},
#     {"id": "contract", "name": "Archive Contract", "anchor": "CON", "kind": "api"},
#     {"id": "tar", "name": "Tar Backend", "anchor": "TAR", "kind": "api"},
#     {"id": "zip", "name": "Zip Backend", "anchor": "ZIP", "kind": "api"},
#     {"id": "factory", "name": "Backend Selection", "anchor": "FAC", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Streaming archive readers behind a single ``next_entry`` contract.

Two backends implement :class:`Archive`:

- :class:`TarArchive` drives the standard library ``tarfile`` module in its
  ``"r|"`` stream mode, which walks the self-delimiting headers forward only.
- :class:`ZipArchive` drives libarchive's zip reader. Given a non-seekable
  source libarchive falls back to its streamable zip implementation, which
  reads local file headers as they arrive and never needs the central
  directory at the end of the file. Local headers carry no Unix attributes,
  so zip members come out with libarchive's default modes and stored
  symbolic links come out as regular files holding the link target.

Input that ends inside a member is not an archive format error: the member
reader simply stops short and the extractor compares what it got against
the declared size.

Both yield ``(ArchiveEntry, reader)`` pairs. Readers are only valid until the
next call to :meth:`Archive.next_entry`; whatever was left unread is skipped.
Symbolic link targets are exposed as the content of the link entry, so the
extractor treats every entry body the same way.
"""

from __future__ import annotations

import abc
import contextlib
import enum
import io
import os
import tarfile
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional, Tuple

import libarchive

from ..errors import FormatError
from .sniff import StreamKind
from .streams import IterableReader

__all__ = [
    "EntryKind",
    "ArchiveEntry",
    "Archive",
    "TarArchive",
    "ZipArchive",
    "open_archive",
]

_EMPTY = b""


class EntryKind(str, enum.Enum):
    """Filesystem object an archive member describes."""

    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class ArchiveEntry:
    """Metadata for one archive member.

    Attributes:
        name: Archive-internal path, untrusted.
        kind: Which filesystem object the member describes.
        mode: Permission bits, when the format records them.
        size: Declared content length for regular files, when known.
        mtime: Modification time as seconds since the epoch, when known.
        detail: Native type description, used to report unsupported members.
    """

    name: str
    kind: EntryKind
    mode: Optional[int] = None
    size: Optional[int] = None
    mtime: Optional[float] = None
    detail: str = ""


ArchiveMember = Tuple[ArchiveEntry, BinaryIO]


class Archive(abc.ABC):
    """Forward-only iteration over the members of an archive stream."""

    format_name: str = ""

    @abc.abstractmethod
    def next_entry(self) -> Optional[ArchiveMember]:
        """Return the next member and its content reader, or ``None`` at the end.

        Raises:
            FormatError: If the archive structure is malformed.
        """

    def close(self) -> None:
        """Release backend resources."""

    def __iter__(self) -> Iterator[ArchiveMember]:
        while True:
            member = self.next_entry()
            if member is None:
                return
            yield member

    def __enter__(self) -> "Archive":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class TarArchive(Archive):
    """Tar backend built on :mod:`tarfile` stream mode."""

    format_name = StreamKind.TAR.value

    def __init__(self, stream: BinaryIO) -> None:
        try:
            self._tar = tarfile.open(fileobj=stream, mode="r|")
        except (tarfile.TarError, EOFError) as exc:
            raise FormatError(self.format_name, str(exc)) from exc

    def next_entry(self) -> Optional[ArchiveMember]:
        try:
            member = self._tar.next()
        except (tarfile.TarError, EOFError) as exc:
            raise FormatError(self.format_name, str(exc)) from exc
        if member is None:
            return None

        if member.isdir():
            kind = EntryKind.DIRECTORY
        elif member.isreg():
            kind = EntryKind.FILE
        elif member.issym():
            kind = EntryKind.SYMLINK
        else:
            kind = EntryKind.UNSUPPORTED

        entry = ArchiveEntry(
            name=member.name,
            kind=kind,
            mode=member.mode,
            size=member.size if kind is EntryKind.FILE else None,
            mtime=member.mtime or None,
            detail=_tar_type_name(member),
        )
        if kind is EntryKind.FILE:
            reader = self._tar.extractfile(member)
            if reader is None:  # pragma: no cover - isreg() members always have data
                reader = io.BytesIO(_EMPTY)
            return entry, _TarMemberReader(reader, self.format_name)
        if kind is EntryKind.SYMLINK:
            return entry, io.BytesIO(os.fsencode(member.linkname))
        return entry, io.BytesIO(_EMPTY)

    def close(self) -> None:
        self._tar.close()


class _TarMemberReader(io.RawIOBase):
    """Read one tar member, ending early when the archive runs out of data.

    ``tarfile`` raises :class:`tarfile.ReadError` when a member's data is cut
    short. That is reported here as end of file, so the extractor sees fewer
    bytes than the header declared and raises an integrity error for the entry.
    """

    def __init__(self, inner: BinaryIO, layer: str) -> None:
        super().__init__()
        self._inner = inner
        self._layer = layer
        self.truncated = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        if self.truncated:
            return 0
        try:
            data = self._inner.read(len(view))
        except tarfile.ReadError:
            self.truncated = True
            return 0
        except (tarfile.TarError, EOFError) as exc:
            raise FormatError(self._layer, str(exc)) from exc
        count = len(data)
        view[:count] = data
        return count


_TAR_TYPE_NAMES = {
    tarfile.LNKTYPE: "hard link",
    tarfile.CHRTYPE: "character device",
    tarfile.BLKTYPE: "block device",
    tarfile.FIFOTYPE: "fifo",
}


def _tar_type_name(member: tarfile.TarInfo) -> str:
    if member.isdir():
        return "directory"
    if member.isreg():
        return "regular file"
    if member.issym():
        return "symlink"
    return _TAR_TYPE_NAMES.get(member.type, f"type {member.type!r}")


class _CapturingSource(io.RawIOBase):
    """Hold back exceptions raised by ``inner`` while libarchive pulls data.

    libarchive reads through a C callback that cannot propagate a Python
    exception. A failed read is reported to libarchive as end of input and the
    original exception is kept for :class:`ZipArchive` to re-raise.
    """

    def __init__(self, inner: BinaryIO) -> None:
        super().__init__()
        self._inner = inner
        self.error: Optional[BaseException] = None
        self.exhausted = False

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def readinto(self, buffer) -> int:
        # libarchive hands over a ctypes char array; slice assignment works for
        # it and for ordinary byte buffers alike.
        try:
            data = self._inner.read(len(buffer))
        except Exception as exc:
            self.error = exc
            return 0
        count = len(data)
        if not count:
            self.exhausted = True
        buffer[:count] = data
        return count


class ZipArchive(Archive):
    """Zip backend built on libarchive's streaming reader."""

    format_name = StreamKind.ZIP.value

    def __init__(self, stream: BinaryIO) -> None:
        self._source = _CapturingSource(stream)
        self._stack = contextlib.ExitStack()
        try:
            archive = self._stack.enter_context(
                libarchive.stream_reader(self._source, format_name="zip")
            )
        except libarchive.ArchiveError as exc:
            self._stack.close()
            self._raise(exc)
        self._entries = iter(archive)

    def _raise(self, exc: BaseException) -> None:
        if self._source.error is not None:
            raise self._source.error from exc
        raise FormatError(self.format_name, str(exc)) from exc

    def next_entry(self) -> Optional[ArchiveMember]:
        try:
            native = next(self._entries, None)
        except libarchive.ArchiveError as exc:
            self._raise(exc)
        if native is None:
            if self._source.error is not None:
                raise self._source.error
            return None

        if native.islnk:
            kind = EntryKind.UNSUPPORTED
        elif native.isdir:
            kind = EntryKind.DIRECTORY
        elif native.isreg:
            kind = EntryKind.FILE
        elif native.issym:
            kind = EntryKind.SYMLINK
        else:
            kind = EntryKind.UNSUPPORTED

        entry = ArchiveEntry(
            name=native.pathname,
            kind=kind,
            mode=native.perm,
            size=native.size if kind is EntryKind.FILE else None,
            mtime=native.mtime or None,
            detail=_zip_type_name(native),
        )
        if kind is EntryKind.FILE:
            return entry, IterableReader(self._blocks(native, entry.size))
        if kind is EntryKind.SYMLINK:
            return entry, io.BytesIO(os.fsencode(native.linkpath or ""))
        return entry, io.BytesIO(_EMPTY)

    def _blocks(self, native, size: Optional[int]) -> Iterator[bytes]:
        delivered = 0
        try:
            for block in native.get_blocks():
                delivered += len(block)
                yield block
        except libarchive.ArchiveError as exc:
            # Input ran out inside a member with a declared size: stop here and
            # let the extractor report the short entry.
            if self._source.error is None and self._source.exhausted and delivered < (size or 0):
                return
            self._raise(exc)
        if self._source.error is not None:
            raise self._source.error

    def close(self) -> None:
        self._stack.close()


def _zip_type_name(native) -> str:
    if native.islnk:
        return "hard link"
    if native.ischr:
        return "character device"
    if native.isblk:
        return "block device"
    if native.isfifo:
        return "fifo"
    if native.issock:
        return "socket"
    if native.isdir:
        return "directory"
    if native.issym:
        return "symlink"
    return "regular file"


def open_archive(kind: StreamKind, stream: BinaryIO) -> Archive:
    """Return the :class:`Archive` backend for ``kind`` reading from ``stream``."""

    if kind is StreamKind.TAR:
        return TarArchive(stream)
    if kind is StreamKind.ZIP:
        return ZipArchive(stream)
    raise ValueError(f"{kind.value} is not an archive format")
