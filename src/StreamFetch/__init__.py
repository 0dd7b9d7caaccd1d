"""StreamFetch: fetch a byte stream and materialize it on disk.

The public surface is small: :func:`materialize` runs the sniff, decompress
and extract pipeline over any forward-only binary stream, and
:func:`open_source` supplies such a stream from an HTTP(S) URL or a local
path. Everything fatal is raised as a :class:`StreamFetchError` subclass.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .destination import Destination, DestinationKind, resolve_destination  # noqa: E402
from .errors import (  # noqa: E402
    DownloadFailure,
    FormatError,
    IntegrityError,
    SecurityError,
    SourceError,
    StreamFetchError,
    UnsupportedEntryError,
    UserConfigError,
)
from .network import FetchedSource, open_source  # noqa: E402
from .pipeline import UnpackResult, materialize  # noqa: E402

__all__ = [
    "__version__",
    "Destination",
    "DestinationKind",
    "resolve_destination",
    "FetchedSource",
    "open_source",
    "UnpackResult",
    "materialize",
    "StreamFetchError",
    "SourceError",
    "DownloadFailure",
    "FormatError",
    "IntegrityError",
    "SecurityError",
    "UnsupportedEntryError",
    "UserConfigError",
]
