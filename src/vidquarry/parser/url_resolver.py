"""
Resolution of relative and protocol-relative URLs found in scraped markup.
"""

from __future__ import annotations

from urllib.parse import urljoin, urlparse

ABSOLUTE_PREFIXES = ("http://", "https://")


def _base_origin(base_url: str) -> str | None:
    try:
        parsed = urlparse(base_url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def resolve_url(url: str, base_url: str) -> str:
    """Return an absolute form of ``url``.

    Absolute ``http(s)`` URLs pass through unchanged, ``//host/...`` gains an
    ``https:`` scheme, ``/path`` is joined to the origin of ``base_url`` and
    anything else is resolved against the base URL's path. When ``base_url``
    cannot be parsed the input is returned as-is.
    """
    candidate = url.strip()
    if not candidate:
        return url
    if candidate.lower().startswith(ABSOLUTE_PREFIXES):
        return candidate
    if candidate.startswith("//"):
        return f"https:{candidate}"

    origin = _base_origin(base_url)
    if origin is None:
        return candidate
    if candidate.startswith("/"):
        return f"{origin}{candidate}"
    try:
        return urljoin(base_url, candidate)
    except ValueError:
        return candidate


def site_url(url: str) -> str:
    """Scheme and host of ``url``; the raw string when it has neither."""
    return _base_origin(url) or url


def host_of(url: str) -> str | None:
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return host or None
