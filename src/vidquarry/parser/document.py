"""
Queryable HTML document built on BeautifulSoup.

Every detector works against :class:`HTMLDocument` rather than against
BeautifulSoup directly, so there is exactly one parsing path. The built-in
``html.parser`` backend is used for maximum compatibility; it also records
the source line and column of each element, which end up in video metadata.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog
from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from vidquarry.protocols import LoggerProtocol

PARSER = "html.parser"


class HTMLDocument:
    """A parsed document, or a view scoped to one of its elements."""

    def __init__(self, root: Tag, *, soup: Optional[BeautifulSoup] = None) -> None:
        self.root = root
        self.soup = soup if soup is not None else root

    @classmethod
    def parse(cls, html: str, *, logger: Optional[LoggerProtocol] = None) -> "HTMLDocument":
        """Parse ``html``; unrecoverable markup yields an empty document."""
        log = logger or structlog.get_logger(__name__)
        try:
            soup = BeautifulSoup(html or "", PARSER)
        except (ParserRejectedMarkup, AssertionError, ValueError) as exc:
            log.warning("html_parse_failed", error=str(exc), length=len(html or ""))
            soup = BeautifulSoup("", PARSER)
        return cls(soup, soup=soup)

    @classmethod
    def empty(cls) -> "HTMLDocument":
        return cls.parse("")

    @property
    def is_scoped(self) -> bool:
        return self.root is not self.soup

    def scoped(self, element: Tag) -> "HTMLDocument":
        """A view limited to ``element``; document-level lookups still see the whole page."""
        return HTMLDocument(element, soup=self.soup)

    # --- Selection ---

    def find_all(self, tag: str | Sequence[str]) -> List[Tag]:
        names = [tag] if isinstance(tag, str) else list(tag)
        return [el for el in self.root.find_all(names) if isinstance(el, Tag)]

    def find_first(self, tag: str | Sequence[str]) -> Optional[Tag]:
        found = self.find_all(tag)
        return found[0] if found else None

    def find_by_attribute(
        self, attr: str, substring: str, tags: Optional[Iterable[str]] = None
    ) -> List[Tag]:
        """Elements whose ``attr`` value contains ``substring`` (case-insensitive)."""
        needle = substring.lower()
        names = list(tags) if tags is not None else True
        matches: List[Tag] = []
        for el in self.root.find_all(names):
            if not isinstance(el, Tag):
                continue
            value = self.attribute(el, attr)
            if value is not None and needle in value.lower():
                matches.append(el)
        return matches

    def find_by_class(self, substring: str, tags: Optional[Iterable[str]] = None) -> List[Tag]:
        return self.find_by_attribute("class", substring, tags)

    # --- Element access ---

    @staticmethod
    def attribute(element: Tag, name: str) -> Optional[str]:
        value = element.get(name)
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return " ".join(str(v) for v in value)
        return str(value)

    @classmethod
    def attributes(cls, element: Tag) -> Dict[str, str]:
        """All attributes as strings; multi-valued ones are space-joined."""
        return {name: cls.attribute(element, name) or "" for name in element.attrs}

    def text(self, element: Optional[Tag] = None) -> str:
        target = element if element is not None else self.root
        return target.get_text(" ", strip=True)

    @staticmethod
    def outer_html(element: Tag) -> str:
        return str(element)

    def inner_html(self) -> str:
        return self.root.decode_contents()

    # --- Document-level lookups ---

    def title(self) -> Optional[str]:
        tag = self.soup.find("title")
        if isinstance(tag, Tag):
            text = tag.get_text(strip=True)
            return text or None
        return None

    def meta_content(self, substring: str, attrs: Sequence[str] = ("name", "property")) -> Optional[str]:
        """Content of the first ``<meta>`` whose name/property contains ``substring``."""
        needle = substring.lower()
        for meta in self.soup.find_all("meta"):
            if not isinstance(meta, Tag):
                continue
            for attr in attrs:
                key = self.attribute(meta, attr)
                if key and needle in key.lower():
                    content = self.attribute(meta, "content")
                    if content and content.strip():
                        return content.strip()
        return None

    # --- Location ---

    @staticmethod
    def xpath(element: Tag) -> str:
        """Positional XPath such as ``/html[1]/body[1]/div[2]/video[1]``."""
        steps: List[str] = []
        current: Optional[Tag] = element
        while isinstance(current, Tag) and not isinstance(current, BeautifulSoup):
            parent = current.parent
            index = 1
            if parent is not None:
                for sibling in parent.find_all(current.name, recursive=False):
                    if sibling is current:
                        break
                    index += 1
            steps.append(f"{current.name}[{index}]")
            current = parent
        return "/" + "/".join(reversed(steps))

    @staticmethod
    def source_position(element: Tag) -> Tuple[int, int]:
        """1-based line and 0-based column of ``element`` in the source markup."""
        return (element.sourceline or 0, element.sourcepos or 0)
