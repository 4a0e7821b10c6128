"""
Order-preserving duplicate elimination for analysis results.

Each record type has two identity keys (its id and its canonical URL); a
record repeating either key of an earlier record is dropped. The functions
never mutate their input and ``dedupe(dedupe(x)) == dedupe(x)``.
"""

from __future__ import annotations

from typing import Callable, Hashable, Iterable, List, Optional, Sequence, TypeVar
from urllib.parse import urlsplit, urlunsplit

import structlog

from vidquarry.protocols import Article, LoggerProtocol, Video, VideoUrlDetail

T = TypeVar("T")
KeyFunc = Callable[[T], Hashable]


def canonical_url(url: str) -> str:
    """Lowercase scheme and host; everything else is significant."""
    candidate = url.strip()
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return candidate
    if not parts.scheme or not parts.netloc:
        return candidate
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, parts.fragment))


def dedupe(items: Iterable[T], *keys: KeyFunc) -> List[T]:
    """Keep the first item for every key value, in input order."""
    seen: List[set] = [set() for _ in keys]
    unique: List[T] = []
    for item in items:
        values = [key(item) for key in keys]
        if any(value in bucket for value, bucket in zip(values, seen)):
            continue
        for value, bucket in zip(values, seen):
            bucket.add(value)
        unique.append(item)
    return unique


class DuplicateDetector:
    """Removes repeated videos, articles and video URL details."""

    def __init__(self, logger: Optional[LoggerProtocol] = None) -> None:
        self.logger = logger or structlog.get_logger(__name__)

    def remove_duplicate_videos(self, videos: Sequence[Video]) -> List[Video]:
        return self._run("videos", videos, lambda v: v.id, lambda v: canonical_url(v.url))

    def remove_duplicate_articles(self, articles: Sequence[Article]) -> List[Article]:
        return self._run("articles", articles, lambda a: a.id, lambda a: canonical_url(a.url))

    def remove_duplicate_video_urls(self, details: Sequence[VideoUrlDetail]) -> List[VideoUrlDetail]:
        return self._run("video_urls", details, lambda d: d.id, lambda d: canonical_url(d.original_url))

    def _run(self, kind: str, items: Sequence[T], *keys: KeyFunc) -> List[T]:
        unique = dedupe(items, *keys)
        removed = len(items) - len(unique)
        if removed:
            self.logger.debug("duplicates_removed", kind=kind, removed=removed, kept=len(unique))
        return unique
