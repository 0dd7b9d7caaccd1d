# === NAVMAP v1 ===
# {
#   "module": "StreamFetch.cli",
#   "purpose": "Typer command line entry point and the single process-exit boundary",
#   "sections": [
#     {"id": "app", "name": "Typer App", "anchor": "APP", "kind": "api"},
#     {"id": "fetch", "name": "fetch", "anchor": "function-fetch", "kind": "function"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command line interface for StreamFetch.

Usage::

    streamfetch [--unpack] SOURCE TARGET

``TARGET`` is ``-`` for standard output, a path ending in a separator (or an
existing directory) to write into a directory, or a file path. This module is
the only place that turns failures into exit codes: ``0`` on success, ``1``
for any fetch or unpack failure, ``2`` for usage errors. Diagnostics always go
to stderr so that standard output carries nothing but the payload.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from . import __version__
from .destination import resolve_destination
from .errors import StreamFetchError
from .logging_utils import setup_logging
from .network import open_source
from .pipeline import materialize
from .settings import get_settings

__all__ = ["app", "fetch", "main"]

_err_console = Console(stderr=True)

app = typer.Typer(
    name="streamfetch",
    help="Fetch a URL or file and write it to disk, optionally unpacking it.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"streamfetch {__version__}")
        raise typer.Exit(0)


@app.command()
def fetch(
    source: str = typer.Argument(..., help="http(s):// URL, file:// URL, or local path"),
    target: str = typer.Argument(
        ..., help="Output file, directory (trailing separator), or - for stdout"
    ),
    unpack: bool = typer.Option(
        False,
        "--unpack",
        "-u",
        help="Remove gzip/bzip2 layers and extract tar/zip archives",
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (default from STREAMFETCH_LOG_LEVEL or INFO)"
    ),
    log_dir: Optional[Path] = typer.Option(
        None, "--log-dir", help="Also write JSON-lines logs into this directory"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Network timeout in seconds (default: none)"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Fetch SOURCE and materialize it at TARGET.

    Example:
        $ streamfetch --unpack https://example.org/release.tar.gz ./release/
        $ streamfetch https://example.org/data.csv.gz - | zcat
    """

    try:
        settings = get_settings().with_overrides(
            log_level=log_level, log_dir=log_dir, timeout=timeout
        )
        logger = setup_logging(level=settings.log_level, log_dir=settings.log_dir)
        destination = resolve_destination(target)
        with open_source(source, settings=settings, logger=logger) as fetched:
            name = fetched.suggested_name if destination.is_directory else None
            result = materialize(
                fetched.stream,
                destination,
                unpack=unpack,
                name=name,
                chunk_size=settings.chunk_size,
                logger=logger,
            )
    except (StreamFetchError, OSError) as exc:
        _err_console.print(
            f"error: {exc}", style="red", markup=False, highlight=False, soft_wrap=True
        )
        raise typer.Exit(1) from exc

    logger.debug(
        "run complete",
        extra={
            "stage": "write",
            "layers": result.layers,
            "terminal": result.terminal,
            "paths": [str(path) for path in result.paths],
        },
    )


def main() -> None:
    """Console-script entry point."""

    app()


if __name__ == "__main__":
    main()
