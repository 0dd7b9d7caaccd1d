"""Where a fetched payload ends up."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import UserConfigError

__all__ = ["DestinationKind", "Destination", "resolve_destination", "STDOUT_TARGET"]

STDOUT_TARGET = "-"


class DestinationKind(str, enum.Enum):
    STDOUT = "stdout"
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class Destination:
    """Resolved output target for one run.

    Attributes:
        kind: Standard output, a single file, or a directory.
        path: Filesystem path; ``None`` for standard output.
    """

    kind: DestinationKind
    path: Optional[Path] = None

    @property
    def is_stdout(self) -> bool:
        return self.kind is DestinationKind.STDOUT

    @property
    def is_directory(self) -> bool:
        return self.kind is DestinationKind.DIRECTORY

    @classmethod
    def stdout(cls) -> "Destination":
        return cls(DestinationKind.STDOUT)

    @classmethod
    def file(cls, path: os.PathLike[str] | str) -> "Destination":
        return cls(DestinationKind.FILE, Path(path))

    @classmethod
    def directory(cls, path: os.PathLike[str] | str) -> "Destination":
        return cls(DestinationKind.DIRECTORY, Path(path))


def resolve_destination(target: str) -> Destination:
    """Interpret a CLI ``target`` argument.

    ``-`` selects standard output. A target ending in a path separator, or one
    naming an existing directory, is a directory; anything else is a file.
    """

    if not target:
        raise UserConfigError("target must not be empty")
    if target == STDOUT_TARGET:
        return Destination.stdout()
    separators = (os.sep, os.altsep) if os.altsep else (os.sep,)
    if target.endswith(separators) or os.path.isdir(target):
        return Destination.directory(target)
    return Destination.file(target)
