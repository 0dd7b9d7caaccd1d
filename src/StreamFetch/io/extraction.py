# === NAVMAP v1 ===
# {
#   "module": "StreamFetch.io.extraction",
#   "purpose": "Materialize archive entries under a destination directory without escaping it",
#   "sections": [
#     {"id": "permissions", "name": "Directory Permissions", "anchor": "PRM", "kind": "helpers"},
#     {"id": "containment", "name": "Path Containment", "anchor": "CNT", "kind": "api"},
#     {"id": "materialize", "name": "Entry Materialization", "anchor": "MAT", "kind": "helpers"},
#     {"id": "extract", "name": "Archive Extraction", "anchor": "EXT", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Secure, streaming extraction of archive entries.

The extractor is written once against :class:`~StreamFetch.io.archives.Archive`
and never learns which backend produced an entry. For every entry it:

1. resolves the destination path and verifies it stays inside the
   extraction root, *before* touching the filesystem;
2. creates a directory, writes a regular file, or creates a symbolic link,
   preserving the stored mode and modification time;
3. refuses any other member type.

The first failure aborts the whole extraction. Entries written before the
failure stay on disk.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from ..errors import IntegrityError, SecurityError, UnsupportedEntryError
from .archives import Archive, ArchiveEntry, EntryKind
from .streams import closing_after_copy, copy_stream

__all__ = [
    "directory_mode",
    "canonical_root",
    "resolve_entry_path",
    "extract_archive",
]

_LOGGER = logging.getLogger(__name__)

_DEFAULT_FILE_MODE = 0o644
_DEFAULT_DIR_MODE = 0o755

PathLike = Union[str, "os.PathLike[str]"]


def directory_mode(mode: Optional[int]) -> int:
    """Return the creation mode for a directory entry stored with ``mode``.

    Group and other execute bits are added wherever read or write is granted,
    and the owner always gets write and execute so later entries can be
    written beneath the directory.
    """

    perm = (_DEFAULT_DIR_MODE if mode is None else mode) & 0o777
    if perm & 0o007:
        perm |= 0o001
    if perm & 0o070:
        perm |= 0o010
    return perm | 0o300


def canonical_root(root: PathLike) -> str:
    """Return the absolute, symlink-free form of ``root`` with a trailing separator."""

    resolved = os.path.realpath(os.fspath(root))
    if not resolved.endswith(os.sep):
        resolved += os.sep
    return resolved


def resolve_entry_path(root: PathLike, name: str, *, allow_root: bool = False) -> str:
    """Join ``name`` onto ``root`` and verify the result stays inside ``root``.

    Both separators are accepted in ``name``. The joined path is normalized
    lexically and must have the canonical root as a strict prefix; in addition
    the real path of its parent directory must lie inside the root, so a link
    created by an earlier entry cannot redirect later writes. ``allow_root``
    admits a name that normalizes to the root itself (``./`` directory
    entries).

    Raises:
        SecurityError: If the entry would land outside ``root``.
    """

    prefix = canonical_root(root)
    root_path = prefix.rstrip(os.sep) or os.sep
    relative = name.replace("\\", "/")
    if os.sep != "/":
        relative = relative.replace("/", os.sep)
    candidate = os.path.normpath(os.path.join(prefix, relative))

    if candidate == root_path:
        if allow_root:
            return candidate
        raise SecurityError(name)
    if not candidate.startswith(prefix):
        raise SecurityError(name)

    parent = os.path.realpath(os.path.dirname(candidate))
    if parent != root_path and not parent.startswith(prefix):
        raise SecurityError(name)
    return candidate


def _write_file(
    entry: ArchiveEntry,
    reader: BinaryIO,
    path: str,
    *,
    chunk_size: Optional[int],
    logger: logging.Logger,
) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    if os.path.islink(path):
        os.unlink(path)

    perm = _DEFAULT_FILE_MODE if entry.mode is None else entry.mode & 0o777
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, perm)
    with closing_after_copy(os.fdopen(fd, "wb")) as target:
        written = copy_stream(reader, target, chunk_size=chunk_size)

    if entry.size and written != entry.size:
        raise IntegrityError(entry.name, expected=entry.size, actual=written)

    if entry.mtime:
        try:
            os.utime(path, (entry.mtime, entry.mtime))
        except (OSError, OverflowError, ValueError) as exc:
            logger.debug(
                "could not set modification time",
                extra={"stage": "extract", "entry": entry.name, "error": str(exc)},
            )


def _write_symlink(reader: BinaryIO, path: str) -> str:
    target = os.fsdecode(reader.read())
    os.makedirs(os.path.dirname(path), exist_ok=True)
    if os.path.islink(path) or (os.path.lexists(path) and not os.path.isdir(path)):
        os.unlink(path)
    os.symlink(target, path)
    return target


def extract_archive(
    archive: Archive,
    root: PathLike,
    *,
    logger: Optional[logging.Logger] = None,
    chunk_size: Optional[int] = None,
) -> List[Path]:
    """Extract every entry of ``archive`` beneath ``root``.

    Args:
        archive: Open archive positioned before its first entry.
        root: Destination directory; created when missing.
        logger: Optional logger for structured ``stage="extract"`` records.
        chunk_size: Copy buffer size for regular files.

    Returns:
        Paths of the regular files and symbolic links written, in archive order.

    Raises:
        SecurityError: If an entry name escapes ``root``.
        IntegrityError: If a regular file's content differs from its declared size.
        UnsupportedEntryError: If the archive holds devices, hard links, or similar.
        FormatError: If the archive or an enclosing compression layer is malformed.
    """

    log = logger or _LOGGER
    os.makedirs(os.fspath(root), exist_ok=True)

    written: List[Path] = []
    directories = 0
    for entry, reader in archive:
        path = resolve_entry_path(root, entry.name, allow_root=entry.kind is EntryKind.DIRECTORY)

        if entry.kind is EntryKind.DIRECTORY:
            os.makedirs(path, directory_mode(entry.mode), exist_ok=True)
            directories += 1
        elif entry.kind is EntryKind.FILE:
            _write_file(entry, reader, path, chunk_size=chunk_size, logger=log)
            written.append(Path(path))
        elif entry.kind is EntryKind.SYMLINK:
            target = _write_symlink(reader, path)
            written.append(Path(path))
            log.debug(
                "created symlink",
                extra={"stage": "extract", "entry": entry.name, "target": target},
            )
        else:
            raise UnsupportedEntryError(entry.name, entry.detail or entry.kind.value)

    log.info(
        "extracted archive",
        extra={
            "stage": "extract",
            "format": archive.format_name,
            "files": len(written),
            "directories": directories,
        },
    )
    return written
