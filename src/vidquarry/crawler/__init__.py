"""HTTP access for page fetching and video probing."""

from __future__ import annotations

from .http_client import CrawlerResponse, HttpClient

__all__ = ["CrawlerResponse", "HttpClient"]
