# === NAVMAP v1 ===
# {
#   "module": "StreamFetch.network",
#   "purpose": "Open the source byte stream over HTTP(S) or from the local filesystem",
#   "sections": [
#     {"id": "fetched-source", "name": "FetchedSource", "anchor": "FSR", "kind": "api"},
#     {"id": "client", "name": "HTTP Client Factory", "anchor": "CLI", "kind": "helpers"},
#     {"id": "open-source", "name": "open_source", "anchor": "OPN", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Source acquisition for StreamFetch.

HTTP(S) sources are streamed with HTTPX: redirects are followed, the final
status must be ``200``, and the body is handed to the pipeline as a
forward-only reader without ever being buffered whole. Local paths and
``file://`` URLs are opened directly, which keeps offline use and tests simple.
No retries are attempted; any failure is terminal for the run.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from .errors import DownloadFailure, SourceError, UserConfigError
from .io.streams import IterableReader
from .naming import filename_from_content_disposition, infer_target_name
from .settings import StreamFetchSettings, get_settings

__all__ = ["FetchedSource", "build_http_client", "open_source"]

_LOGGER = logging.getLogger(__name__)


@dataclass
class FetchedSource:
    """An open source stream plus the naming hints that came with it.

    Attributes:
        stream: Forward-only body reader, valid inside :func:`open_source`.
        source: Source identifier as given by the caller.
        final_url: URL after redirects, for HTTP sources.
        disposition_name: File name announced by Content-Disposition.
        status_code: HTTP status of the final response.
    """

    stream: BinaryIO
    source: str
    final_url: Optional[str] = None
    disposition_name: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def suggested_name(self) -> str:
        return infer_target_name(
            self.source,
            disposition_name=self.disposition_name,
            final_url=self.final_url,
        )


def build_http_client(settings: StreamFetchSettings) -> httpx.Client:
    """Create the HTTPX client used for a single fetch."""

    return httpx.Client(
        follow_redirects=settings.follow_redirects,
        timeout=httpx.Timeout(settings.timeout),
        headers={"User-Agent": settings.user_agent},
    )


def _iter_body(response: httpx.Response, chunk_size: int) -> Iterator[bytes]:
    try:
        yield from response.iter_bytes(chunk_size)
    except httpx.HTTPError as exc:
        raise SourceError(f"error reading response body: {exc}") from exc


@contextlib.contextmanager
def _open_http(
    source: str,
    settings: StreamFetchSettings,
    client: Optional[httpx.Client],
    log: logging.Logger,
) -> Iterator[FetchedSource]:
    with contextlib.ExitStack() as stack:
        if client is None:
            client = stack.enter_context(build_http_client(settings))
        try:
            response = stack.enter_context(client.stream("GET", source))
        except httpx.HTTPError as exc:
            raise SourceError(f"GET {source} failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise DownloadFailure(
                f"http error: {response.status_code} {response.reason_phrase}".rstrip(),
                status_code=response.status_code,
            )

        final_url = str(response.url)
        log.info(
            "fetching source",
            extra={
                "stage": "fetch",
                "source": source,
                "final_url": final_url,
                "status": response.status_code,
                "content_length": response.headers.get("Content-Length"),
            },
        )
        yield FetchedSource(
            stream=IterableReader(_iter_body(response, settings.chunk_size)),
            source=source,
            final_url=final_url,
            disposition_name=filename_from_content_disposition(
                response.headers.get("Content-Disposition")
            ),
            status_code=response.status_code,
        )


@contextlib.contextmanager
def _open_local(source: str, path: str, log: logging.Logger) -> Iterator[FetchedSource]:
    try:
        handle = open(path, "rb")
    except OSError as exc:
        raise SourceError(f"cannot open {source}: {exc.strerror or exc}") from exc
    log.info("reading local source", extra={"stage": "fetch", "source": source})
    with handle:
        yield FetchedSource(stream=handle, source=source)


def open_source(
    source: str,
    *,
    settings: Optional[StreamFetchSettings] = None,
    client: Optional[httpx.Client] = None,
    logger: Optional[logging.Logger] = None,
) -> contextlib.AbstractContextManager[FetchedSource]:
    """Open ``source`` for streaming.

    Args:
        source: ``http(s)://`` URL, ``file://`` URL, or local path.
        settings: Runtime settings; defaults to :func:`get_settings`.
        client: Pre-built HTTPX client (for example one using a mock transport).
            It is left open.
        logger: Optional logger for structured ``stage="fetch"`` records.

    Returns:
        Context manager yielding a :class:`FetchedSource`; the body is released
        on exit.

    Raises:
        DownloadFailure: If the final HTTP status is not ``200``.
        SourceError: If the source cannot be reached or read.
        UserConfigError: If the URL scheme is not supported.
    """

    settings = settings or get_settings()
    log = logger or _LOGGER
    parsed = urlparse(source)
    scheme = parsed.scheme.lower()

    if scheme in ("http", "https"):
        return _open_http(source, settings, client, log)
    if scheme == "file":
        return _open_local(source, url2pathname(parsed.path), log)
    # A single letter is a Windows drive, not a scheme.
    if not scheme or len(scheme) == 1:
        return _open_local(source, source, log)
    raise UserConfigError(f"unsupported source scheme {scheme!r}")
