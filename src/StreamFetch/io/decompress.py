"""Single-layer decompression for the unpacking loop.

Each call peels exactly one gzip or bzip2 layer; the pipeline re-sniffs the
result and decides whether another layer follows.
"""

from __future__ import annotations

import bz2
import gzip
import logging
from typing import BinaryIO, Optional

from .sniff import StreamKind, gzip_member_name
from .streams import LayerReader, PeekableStream

__all__ = ["InferredName", "open_layer"]

_SUFFIXES = {StreamKind.GZIP: ".gz", StreamKind.BZIP2: ".bz2"}


class InferredName:
    """Output file name tracked while compression layers are removed.

    One instance belongs to one pipeline run and is threaded through the
    decompression loop explicitly.
    """

    def __init__(self, value: Optional[str] = None) -> None:
        self.value = value or ""

    def strip_suffix(self, suffix: str) -> None:
        if self.value.endswith(suffix):
            self.value = self.value[: -len(suffix)]

    def adopt(self, name: str) -> None:
        self.value = name

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"InferredName({self.value!r})"


def open_layer(
    kind: StreamKind,
    stream: PeekableStream,
    name: InferredName,
    *,
    logger: Optional[logging.Logger] = None,
) -> BinaryIO:
    """Return a reader that strips one ``kind`` compression layer from ``stream``.

    ``name`` is updated in place: gzip adopts the name stored in its header
    when there is one, otherwise the matching suffix is dropped.
    """

    if kind is StreamKind.GZIP:
        embedded = gzip_member_name(stream)
        if embedded:
            name.adopt(embedded)
        else:
            name.strip_suffix(_SUFFIXES[kind])
        inner: BinaryIO = gzip.GzipFile(fileobj=stream, mode="rb")
    elif kind is StreamKind.BZIP2:
        name.strip_suffix(_SUFFIXES[kind])
        inner = bz2.BZ2File(stream, mode="rb")
    else:
        raise ValueError(f"{kind.value} is not a compression layer")

    if logger:
        logger.debug(
            "opened compression layer",
            extra={"stage": "decompress", "layer": kind.value, "name": name.value},
        )
    return LayerReader(inner, layer=kind.value)
