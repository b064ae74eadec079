"""
URL composition and normalization.

Joins an optional base URL with a rendered request URL, validates the result and
decomposes it into protocol, host[:port], path and query pairs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from .exceptions import MalformedUrlError
from .http import NameValue

DEFAULT_PORT = 80
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


@dataclass(frozen=True, slots=True)
class NormalizedUrl:
    protocol: str
    host_port: str
    path: str
    query: str | None
    query_pairs: tuple[NameValue, ...]

    @property
    def url(self) -> str:
        """protocol://host[:port]path, without the query."""
        return f"{self.protocol}://{self.host_port}{self.path}"


def has_protocol(url: str) -> bool:
    return bool(_SCHEME_RE.match(url.strip()))


def join_url(base_url: str | None, url: str) -> str:
    """
    Combine a base URL with a rendered URL.

    An absolute `url` is used verbatim. Otherwise it is appended to `base_url`
    with a single `/` between them; with no base, `http://` is assumed.
    """
    url = url.strip()
    if has_protocol(url):
        return url
    base = (base_url or "").strip()
    if base:
        if not url:
            return base
        return f"{base.rstrip('/')}/{url.lstrip('/')}"
    return f"http://{url}"


def parse_query(query: str | None) -> tuple[NameValue, ...]:
    """
    Split a raw query string into query pairs.

    Segments split on `&`, then on the first `=`; a segment without `=` becomes a
    name-only pair whose value is None. Empty segments are skipped.
    """
    if not query:
        return ()
    pairs: list[NameValue] = []
    for segment in query.split("&"):
        if not segment:
            continue
        name, sep, value = segment.partition("=")
        pairs.append(NameValue(name, value if sep else None, is_query=True))
    return tuple(pairs)


def normalize_url(base_url: str | None, url: str) -> NormalizedUrl:
    """
    Join and decompose a URL.

    Raises:
        MalformedUrlError: If the combined URL has no valid scheme or host, or an invalid port.
    """
    combined = join_url(base_url, url)
    if not has_protocol(combined):
        raise MalformedUrlError(f"URL has no protocol: {combined!r}", url=combined)
    try:
        parts = urlsplit(combined)
        port = parts.port
    except ValueError as e:
        raise MalformedUrlError(f"Malformed URL {combined!r}: {e}", url=combined, cause=e) from e

    host = parts.hostname
    if not host:
        raise MalformedUrlError(f"URL has no host: {combined!r}", url=combined)
    if ":" in host:
        host = f"[{host}]"

    host_port = host
    if port is not None and port != DEFAULT_PORT:
        host_port = f"{host}:{port}"

    query = parts.query or None
    return NormalizedUrl(
        protocol=parts.scheme.lower(),
        host_port=host_port,
        path=parts.path,
        query=query,
        query_pairs=parse_query(query),
    )
