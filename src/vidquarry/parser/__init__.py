"""HTML parsing and URL resolution."""

from __future__ import annotations

from .document import HTMLDocument
from .url_resolver import resolve_url, site_url

__all__ = ["HTMLDocument", "resolve_url", "site_url"]
