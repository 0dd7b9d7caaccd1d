"""Aggregated stream, archive, and extraction helpers for StreamFetch.

This subpackage bundles the pieces the unpacking pipeline is assembled from:
non-seekable stream adapters with look-ahead, binary signature sniffing,
single-layer gzip/bzip2 decompression, the tar/zip archive abstraction, the
containment-checked extractor, and the plain writer. Re-exporting the most
common symbols keeps imports short for the rest of the codebase.
"""

from .archives import (
    Archive,
    ArchiveEntry,
    EntryKind,
    TarArchive,
    ZipArchive,
    open_archive,
)
from .decompress import InferredName, open_layer
from .extraction import (
    canonical_root,
    directory_mode,
    extract_archive,
    resolve_entry_path,
)
from .sniff import SNIFF_WINDOW, StreamKind, classify, gzip_member_name, sniff
from .streams import IterableReader, LayerReader, PeekableStream, SourceReader, copy_stream
from .writer import target_path, write_plain

__all__ = [
    # Streams
    "PeekableStream",
    "IterableReader",
    "SourceReader",
    "LayerReader",
    "copy_stream",
    # Sniffing & decompression
    "SNIFF_WINDOW",
    "StreamKind",
    "classify",
    "sniff",
    "gzip_member_name",
    "InferredName",
    "open_layer",
    # Archives & extraction
    "Archive",
    "ArchiveEntry",
    "EntryKind",
    "TarArchive",
    "ZipArchive",
    "open_archive",
    "canonical_root",
    "directory_mode",
    "resolve_entry_path",
    "extract_archive",
    # Plain output
    "target_path",
    "write_plain",
]
