# === NAVMAP v1 ===
# {
#   "module": "StreamFetch.io.sniff",
#   "purpose": "Classify a stream from its leading bytes without consuming it",
#   "sections": [
#     {"id": "kinds", "name": "Stream Kinds", "anchor": "KND", "kind": "api"},
#     {"id": "classify", "name": "Signature Classification", "anchor": "CLS", "kind": "api"},
#     {"id": "gzip-header", "name": "Gzip Header Name", "anchor": "GZH", "kind": "helpers"}
#   ]
# }
# === /NAVMAP ===

"""Binary signature sniffing for the unpacking pipeline.

The sniffer only ever *peeks*: the classified stream is handed to the next
stage with its prefix intact.
"""

from __future__ import annotations

import enum
import struct
from typing import Optional

from .streams import PeekableStream

__all__ = ["SNIFF_WINDOW", "StreamKind", "classify", "sniff", "gzip_member_name"]

# Large enough to reach the ustar magic at offset 257.
SNIFF_WINDOW = 264

GZIP_MAGIC = b"\x1f\x8b"
BZIP2_MAGIC = b"BZh"
ZIP_MAGIC = b"PK"
TAR_MAGIC = b"ustar"
TAR_MAGIC_OFFSET = 257

_FEXTRA, _FNAME = 0x04, 0x08
_GZIP_HEADER_LIMIT = 1 << 16


class StreamKind(str, enum.Enum):
    """Classification returned by :func:`sniff`."""

    GZIP = "gzip"
    BZIP2 = "bzip2"
    ZIP = "zip"
    TAR = "tar"
    OPAQUE = "opaque"

    @property
    def is_compression(self) -> bool:
        return self in (StreamKind.GZIP, StreamKind.BZIP2)

    @property
    def is_archive(self) -> bool:
        return self in (StreamKind.ZIP, StreamKind.TAR)


def classify(prefix: bytes, *, allow_archives: bool) -> StreamKind:
    """Return the :class:`StreamKind` signalled by ``prefix``.

    Archive signatures are only honoured when ``allow_archives`` is set; a
    single output stream has nowhere to put multiple members, so archives
    bound for standard output are copied through as opaque payloads.
    """

    if prefix.startswith(GZIP_MAGIC):
        return StreamKind.GZIP
    if prefix.startswith(BZIP2_MAGIC):
        return StreamKind.BZIP2
    if allow_archives and prefix.startswith(ZIP_MAGIC):
        return StreamKind.ZIP
    if allow_archives and prefix[TAR_MAGIC_OFFSET:].startswith(TAR_MAGIC):
        return StreamKind.TAR
    return StreamKind.OPAQUE


def sniff(stream: PeekableStream, *, allow_archives: bool) -> StreamKind:
    """Peek :data:`SNIFF_WINDOW` bytes of ``stream`` and classify them."""

    return classify(stream.peek(SNIFF_WINDOW), allow_archives=allow_archives)


def gzip_member_name(stream: PeekableStream) -> Optional[str]:
    """Return the file name embedded in the leading gzip member header, if any.

    The standard library ``gzip`` reader skips the FNAME field, so the header
    is parsed here through :meth:`PeekableStream.peek` (RFC 1952, section 2.3).
    ``None`` is returned when the field is absent, empty, or cannot be read.
    """

    header = stream.peek(10)
    if len(header) < 10 or not header.startswith(GZIP_MAGIC):
        return None
    flags = header[3]
    if not flags & _FNAME:
        return None

    offset = 10
    if flags & _FEXTRA:
        extra = stream.peek(offset + 2)
        if len(extra) < offset + 2:
            return None
        (extra_len,) = struct.unpack("<H", extra[offset : offset + 2])
        offset += 2 + extra_len

    want = offset + 256
    while True:
        window = stream.peek(want)
        end = window.find(b"\x00", offset)
        if end >= 0:
            break
        if len(window) < want or want >= offset + _GZIP_HEADER_LIMIT:
            return None
        want *= 2

    name = window[offset:end].decode("latin-1")
    return name or None
