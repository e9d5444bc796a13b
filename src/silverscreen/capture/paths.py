"""On-disk artifact layout.

``outputDir/{browser}/{pageDirectoryName}/{breakpoint}_{timestamp}_{seq}.png``
plus one ``.url`` sidecar per page directory holding the source URL. The
directory name must stay stable across runs so the viewer's manifest can
group repeat captures of the same page.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from urllib.parse import quote, urlsplit

from silverscreen.exceptions import InvalidUrlError

logger = logging.getLogger(__name__)

URL_SIDECAR_NAME = ".url"
QUERY_MAX_CHARS = 50

_HOST_DISALLOWED = re.compile(r"[^a-zA-Z0-9-]")
_PATH_DISALLOWED = re.compile(r"[^a-zA-Z0-9\-_]")
_QUERY_DISALLOWED = re.compile(r"[^a-zA-Z0-9\-_=]")
_DASH_RUNS = re.compile(r"-+")

# Characters a WHATWG URL parser leaves unescaped in the path and in the
# query of http(s) URLs; everything else is percent-encoded as UTF-8.
_PATH_SAFE = "!$%&'()*+,-./:;=@[\\]^_|~"
_QUERY_SAFE = "!$%&()*+,-./:;=?@[\\]^_`{|}~"

_SINGLE_DOT = frozenset({".", "%2e"})
_DOUBLE_DOT = frozenset({"..", ".%2e", "%2e.", "%2e%2e"})


def _remove_dot_segments(path: str) -> str:
    """Resolve ``.`` and ``..`` segments the way browsers do, keeping the leading ``/``."""
    segments: list[str] = []
    parts = path.lstrip("/").split("/")
    for i, segment in enumerate(parts):
        last = i == len(parts) - 1
        if segment.lower() in _DOUBLE_DOT:
            if segments:
                segments.pop()
            if last:
                segments.append("")
        elif segment.lower() in _SINGLE_DOT:
            if last:
                segments.append("")
        else:
            segments.append(segment)
    return "/" + "/".join(segments)


def _ascii_host(hostname: str, url: str) -> str:
    if hostname.isascii():
        return hostname
    try:
        return hostname.encode("idna").decode("ascii")
    except UnicodeError as exc:
        raise InvalidUrlError(url) from exc


def page_directory_name(url: str) -> str:
    """Derive the per-page directory name from *url*.

    The URL is first normalized the way a browser's URL parser would:
    internationalized hosts become punycode, dot segments are resolved,
    and the path and query are percent-encoded. The hostname is also
    lower-cased, so ``https://A.com`` and ``https://a.com`` map to the same
    directory. Path and query keep their case.

    Raises:
        InvalidUrlError: If *url* has no scheme or hostname.
    """
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.hostname:
        raise InvalidUrlError(url)

    dir_name = _HOST_DISALLOWED.sub("-", _ascii_host(parts.hostname, url))

    path = quote(_remove_dot_segments(parts.path.replace("\\", "/")), safe=_PATH_SAFE)
    if path != "/":
        path_part = _DASH_RUNS.sub("-", _PATH_DISALLOWED.sub("-", path.strip("/")))
        if path_part:
            dir_name += "_" + path_part

    if parts.query:
        query = quote(parts.query, safe=_QUERY_SAFE)
        query_part = _QUERY_DISALLOWED.sub("-", query)[:QUERY_MAX_CHARS]
        if query_part:
            dir_name += "_" + query_part

    return dir_name


def artifact_filename(breakpoint: str, timestamp_ms: int, sequence: int, extension: str = "png") -> str:
    """Return ``{breakpoint}_{timestamp}_{seq:04d}.{extension}``."""
    return f"{breakpoint}_{timestamp_ms}_{sequence:04d}.{extension}"


def write_url_sidecar(page_dir: Path, url: str) -> bool:
    """Write the ``.url`` sidecar once; later calls leave it untouched.

    Returns:
        True if this call created the file.
    """
    sidecar = page_dir / URL_SIDECAR_NAME
    try:
        with open(sidecar, "x", encoding="utf-8") as f:
            f.write(url)
    except FileExistsError:
        return False
    logger.debug("Wrote URL sidecar %s", sidecar)
    return True
