# === NAVMAP v1 ===
# {
#   "module": "StreamFetch.pipeline",
#   "purpose": "Sniff, peel compression layers, and dispatch a stream to the extractor or writer",
#   "sections": [
#     {"id": "result", "name": "UnpackResult", "anchor": "RES", "kind": "api"},
#     {"id": "materialize", "name": "materialize", "anchor": "MAT", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Format detection and dispatch for fetched byte streams.

Decompression is modelled as an explicit loop rather than recursion: the
current stream is sniffed, wrapped in a decompressing layer when it is gzip
or bzip2, and sniffed again, until it classifies as an archive or as an
opaque payload. Every layer opened along the way is owned by the loop and
closed exactly once when the run finishes or fails.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, List, Optional

from .destination import Destination
from .io.archives import open_archive
from .io.decompress import InferredName, open_layer
from .io.extraction import extract_archive
from .io.sniff import StreamKind, sniff
from .io.streams import PeekableStream, SourceReader
from .io.writer import write_plain

__all__ = ["UnpackResult", "materialize"]

_LOGGER = logging.getLogger(__name__)


@dataclass
class UnpackResult:
    """Summary of one :func:`materialize` run.

    Attributes:
        layers: Compression layers removed, outermost first.
        terminal: Kind of the innermost stream (``tar``, ``zip`` or ``opaque``).
        name: Inferred output name after every layer was removed.
        paths: Files and links written; empty for standard output.
    """

    layers: List[str] = field(default_factory=list)
    terminal: str = StreamKind.OPAQUE.value
    name: str = ""
    paths: List[Path] = field(default_factory=list)


def materialize(
    stream: BinaryIO,
    destination: Destination,
    *,
    unpack: bool = False,
    name: Optional[str] = None,
    chunk_size: Optional[int] = None,
    stdout: Optional[BinaryIO] = None,
    logger: Optional[logging.Logger] = None,
) -> UnpackResult:
    """Write ``stream`` to ``destination``, unwrapping it first when ``unpack`` is set.

    Args:
        stream: Forward-only source of bytes; left open for the caller to close.
        destination: Resolved output target.
        unpack: Sniff the stream and remove compression / extract archives.
        name: Suggested output file name, used for directory destinations.
        chunk_size: Copy buffer size.
        stdout: Binary sink standing in for standard output.
        logger: Optional logger for structured records.

    Returns:
        :class:`UnpackResult` describing what was written.

    Raises:
        StreamFetchError: On the first source, format, integrity, security or
            unsupported-entry failure. Nothing is rolled back.
    """

    log = logger or _LOGGER
    inferred = InferredName(name)
    source = SourceReader(stream)

    if not unpack:
        path = write_plain(
            source, destination, inferred.value, stdout=stdout, chunk_size=chunk_size, logger=log
        )
        return UnpackResult(name=inferred.value, paths=[path] if path else [])

    result = UnpackResult()
    with contextlib.ExitStack() as stack:
        current = stack.enter_context(contextlib.closing(PeekableStream(source)))
        while True:
            kind = sniff(current, allow_archives=not destination.is_stdout)
            log.debug(
                "sniffed stream",
                extra={"stage": "sniff", "kind": kind.value, "depth": len(result.layers)},
            )
            if not kind.is_compression:
                break
            layer = stack.enter_context(
                contextlib.closing(open_layer(kind, current, inferred, logger=log))
            )
            result.layers.append(kind.value)
            current = stack.enter_context(contextlib.closing(PeekableStream(layer)))

        result.terminal = kind.value
        if kind.is_archive:
            # Archive members carry their own names; a file destination is
            # treated as the directory to extract into.
            assert destination.path is not None
            archive = stack.enter_context(open_archive(kind, current))
            result.paths = extract_archive(
                archive, destination.path, logger=log, chunk_size=chunk_size
            )
        else:
            path = write_plain(
                current,
                destination,
                inferred.value,
                stdout=stdout,
                chunk_size=chunk_size,
                logger=log,
            )
            result.paths = [path] if path else []

    result.name = inferred.value
    return result
