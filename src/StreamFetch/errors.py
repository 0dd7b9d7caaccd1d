# === NAVMAP v1 ===
# {
#   "module": "StreamFetch.errors",
#   "purpose": "Define the exception hierarchy used across fetching, unpacking, and extraction",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "source", "name": "Source & Download Errors", "anchor": "SRC", "kind": "api"},
#     {"id": "format", "name": "Format & Integrity Errors", "anchor": "FMT", "kind": "api"},
#     {"id": "security", "name": "Security & Entry Errors", "anchor": "SEC", "kind": "api"},
#     {"id": "configuration", "name": "Configuration Errors", "anchor": "CFG", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Exception hierarchy shared across fetching, unpacking, and extraction.

A run either materializes the whole payload or aborts on the first failure.
The categories below let the CLI boundary report *which* stage failed (the
source, a compression layer, an archive entry) without the core ever deciding
how the process exits.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "StreamFetchError",
    "SourceError",
    "DownloadFailure",
    "FormatError",
    "IntegrityError",
    "SecurityError",
    "UnsupportedEntryError",
    "UserConfigError",
]


class StreamFetchError(RuntimeError):
    """Base exception for every fatal condition raised by StreamFetch."""


class SourceError(StreamFetchError):
    """Raised when the source byte stream cannot be opened or read."""


class DownloadFailure(SourceError):
    """Raised when an HTTP download answers with a non-success status."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FormatError(StreamFetchError):
    """Raised when a compression or archive layer is malformed."""

    def __init__(self, layer: str, message: str) -> None:
        super().__init__(f"{layer}: {message}")
        self.layer = layer


class IntegrityError(StreamFetchError):
    """Raised when the bytes written for an entry differ from its declared size."""

    def __init__(self, entry: str, *, expected: int, actual: int) -> None:
        super().__init__(f"wrote {actual} bytes to {entry!r}; expected {expected}")
        self.entry = entry
        self.expected = expected
        self.actual = actual


class SecurityError(StreamFetchError):
    """Raised when a destination path would escape the extraction root."""

    def __init__(self, entry: str) -> None:
        super().__init__(f"illegal file path {entry!r}")
        self.entry = entry


class UnsupportedEntryError(StreamFetchError):
    """Raised when an archive contains a member type that cannot be materialized."""

    def __init__(self, entry: str, kind: str) -> None:
        super().__init__(f"archive contained unsupported file {entry!r} of type {kind}")
        self.entry = entry
        self.kind = kind


class UserConfigError(StreamFetchError):
    """Raised when CLI arguments or environment settings are invalid."""
