"""Default output file names for directory destinations."""

from __future__ import annotations

import posixpath
from email.message import Message
from typing import Optional
from urllib.parse import unquote, urlparse

__all__ = ["filename_from_content_disposition", "url_basename", "infer_target_name"]


def filename_from_content_disposition(header: Optional[str]) -> Optional[str]:
    """Return the ``filename`` parameter of a Content-Disposition header.

    RFC 2231 / RFC 6266 ``filename*`` values are decoded and preferred.
    """

    if not header:
        return None
    message = Message()
    message["content-disposition"] = header
    # ``get_filename`` folds filename* into filename and decodes it.
    name = message.get_filename()
    if not name:
        return None
    name = name.strip().strip('"')
    return name or None


def url_basename(url: str) -> str:
    """Return the last path segment of ``url``, percent-decoded."""

    return unquote(posixpath.basename(urlparse(url).path.rstrip("/")))


def infer_target_name(
    source: str,
    *,
    disposition_name: Optional[str] = None,
    final_url: Optional[str] = None,
) -> str:
    """Pick the output name for a payload written into a directory.

    The Content-Disposition file name wins, then the base name of the final
    (post-redirect) URL. When that candidate has no real extension, the base
    name of the original source URL is used instead because it is the more
    predictable of the two.
    """

    name = disposition_name or ""
    if not name and final_url:
        name = url_basename(final_url)
    if len(posixpath.splitext(name)[1]) <= 1:
        name = url_basename(source)
    return name
