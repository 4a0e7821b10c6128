"""
Publication date discovery for article containers.

Candidate strings are gathered in priority order (``<time datetime>``, date
meta tags, then dates spotted in the visible text) and each is run through
an ordered list of parsers. The first candidate that parses wins; running
out of candidates simply means the article has no date.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Callable, Iterator, List, Optional

from bs4 import Tag
from dateutil.parser import isoparse

from vidquarry.parser.document import HTMLDocument

TEXT_DATE_PATTERNS = [
    re.compile(r"\b(\d{4}-\d{2}-\d{2})\b"),
    re.compile(r"\b(\d{1,2}/\d{1,2}/\d{4})\b"),
]

PUBLISHED_META_KEYS = ("published_time", "date")
MODIFIED_META_KEYS = ("modified",)


def _parse_iso(value: str) -> datetime:
    return isoparse(value)


def _strptime(fmt: str) -> Callable[[str], datetime]:
    def parse(value: str) -> datetime:
        return datetime.strptime(value, fmt)

    return parse


DATE_PARSERS: List[Callable[[str], datetime]] = [
    _parse_iso,
    _strptime("%m/%d/%Y"),
    _strptime("%Y-%m-%d"),
]


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Try each parser in order; ``None`` when none accepts ``value``."""
    if not value:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    for parser in DATE_PARSERS:
        try:
            return parser(candidate)
        except (ValueError, OverflowError):
            continue
    return None


def _meta_candidates(document: HTMLDocument, keys: tuple[str, ...], exclude: tuple[str, ...] = ()) -> Iterator[str]:
    for meta in document.soup.find_all("meta"):
        if not isinstance(meta, Tag):
            continue
        for attr in ("property", "name", "itemprop"):
            key = (document.attribute(meta, attr) or "").lower()
            if not key or any(word in key for word in exclude):
                continue
            if any(word in key for word in keys):
                content = document.attribute(meta, "content")
                if content:
                    yield content
                break


def _publication_candidates(document: HTMLDocument) -> Iterator[str]:
    for time_tag in document.find_all("time"):
        value = document.attribute(time_tag, "datetime")
        if value:
            yield value
    yield from _meta_candidates(document, PUBLISHED_META_KEYS, exclude=MODIFIED_META_KEYS)
    text = document.text()
    for pattern in TEXT_DATE_PATTERNS:
        for match in pattern.finditer(text):
            yield match.group(1)


def extract_publication_date(document: HTMLDocument) -> Optional[datetime]:
    for candidate in _publication_candidates(document):
        parsed = parse_date(candidate)
        if parsed is not None:
            return parsed
    return None


def extract_modified_date(document: HTMLDocument) -> Optional[datetime]:
    for candidate in _meta_candidates(document, MODIFIED_META_KEYS):
        parsed = parse_date(candidate)
        if parsed is not None:
            return parsed
    return None
