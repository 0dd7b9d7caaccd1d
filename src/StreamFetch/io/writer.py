"""Verbatim copy of an opaque stream to its destination."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import BinaryIO, Optional

from ..destination import Destination
from ..errors import SecurityError
from .extraction import resolve_entry_path
from .streams import closing_after_copy, copy_stream

__all__ = ["target_path", "write_plain"]

_LOGGER = logging.getLogger(__name__)


def target_path(destination: Destination, name: str) -> Path:
    """Return the file a plain payload is written to.

    For directory destinations ``name`` must be a single path component; it
    is then joined onto the directory and checked for containment like an
    archive entry.
    """

    if destination.path is None:
        raise ValueError("standard output has no target path")
    if not destination.is_directory:
        return destination.path

    normalized = name.replace("\\", "/")
    if not normalized or "/" in normalized or normalized in {".", ".."}:
        raise SecurityError(name)
    return Path(resolve_entry_path(destination.path, normalized))


def write_plain(
    stream: BinaryIO,
    destination: Destination,
    name: str = "",
    *,
    stdout: Optional[BinaryIO] = None,
    chunk_size: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> Optional[Path]:
    """Copy ``stream`` byte for byte to ``destination``.

    Standard output is flushed but never closed. For files, a copy error takes
    priority over an error raised while closing.

    Returns:
        The path written, or ``None`` for standard output.
    """

    log = logger or _LOGGER
    if destination.is_stdout:
        sink = stdout if stdout is not None else sys.stdout.buffer
        count = copy_stream(stream, sink, chunk_size=chunk_size)
        sink.flush()
        log.debug("wrote payload to stdout", extra={"stage": "write", "bytes": count})
        return None

    path = target_path(destination, name)
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with closing_after_copy(open(path, "wb")) as target:
        count = copy_stream(stream, target, chunk_size=chunk_size)
    log.info("wrote payload", extra={"stage": "write", "path": str(path), "bytes": count})
    return path
