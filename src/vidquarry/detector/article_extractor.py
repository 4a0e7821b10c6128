"""
Article and content extraction.

Article-like containers are found in priority order: ``<article>`` tags,
then ``<div>`` elements whose class mentions "article", "post" or "entry".
A page without any such container is treated as a single article. For every
container the title, byline, dates, permalink and the videos it embeds are
collected, each video with its discovery order and surrounding context.
"""

from __future__ import annotations

import re
from typing import List, Optional

import structlog
from bs4 import Tag

from vidquarry.detector.context import HEADING_TAGS, extract_element_context
from vidquarry.detector.dates import extract_modified_date, extract_publication_date
from vidquarry.detector.models import DetectedArticle, VideoReference
from vidquarry.detector.video_detector import VideoDetector
from vidquarry.parser.document import HTMLDocument
from vidquarry.parser.url_resolver import resolve_url
from vidquarry.protocols import LoggerProtocol

ARTICLE_CLASS_KEYWORDS = ("article", "post", "entry")
UNTITLED = "Untitled"

_byline_prefix = re.compile(r"^(?:written by|posted by|author:|by\b|@)\s*", re.IGNORECASE)
_byline_suffix = re.compile(r"\s*(?:writes|says|reports):?$", re.IGNORECASE)
_whitespace = re.compile(r"\s+")


def clean_byline(raw: str) -> Optional[str]:
    """Strip byline decoration such as "By " or "writes:" from an author name."""
    name = _whitespace.sub(" ", raw).strip()
    name = _byline_prefix.sub("", name, count=1)
    name = _byline_suffix.sub("", name, count=1)
    name = name.strip(" .,;:")
    return name or None


class ArticleExtractor:
    """Locates article containers and the videos embedded in them."""

    def __init__(
        self,
        video_detector: Optional[VideoDetector] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        self.logger = logger or structlog.get_logger(__name__)
        self.video_detector = video_detector or VideoDetector(logger=self.logger)

    def extract_articles(self, html: str, base_url: str) -> List[DetectedArticle]:
        return self.extract_from(HTMLDocument.parse(html, logger=self.logger), base_url)

    def extract_from(self, document: HTMLDocument, base_url: str) -> List[DetectedArticle]:
        containers = self.find_containers(document)
        articles: List[DetectedArticle] = []
        if not containers:
            self.logger.debug("no_article_containers", base_url=base_url)
            articles.append(self._extract(document, base_url, base_url))
        anonymous = 0
        for container in containers:
            scoped = document.scoped(container)
            url = self._permalink(scoped, base_url)
            if url is None:
                # Only the first unlinked container takes the page URL; the rest are keyed by position
                url = base_url if not anonymous else f"{base_url.split('#', 1)[0]}#{document.xpath(container)}"
                anonymous += 1
            articles.append(self._extract(scoped, base_url, url))

        unique: List[DetectedArticle] = []
        seen: set[str] = set()
        for article in articles:
            if article.url in seen:
                continue
            seen.add(article.url)
            unique.append(article)
        self.logger.debug("articles_extracted", count=len(unique), candidates=len(articles), base_url=base_url)
        return unique

    def find_containers(self, document: HTMLDocument) -> List[Tag]:
        """Candidate containers; nested candidates collapse into the first accepted one."""
        candidates: List[Tag] = list(document.find_all("article"))
        for keyword in ARTICLE_CLASS_KEYWORDS:
            candidates.extend(document.find_by_class(keyword, tags=["div"]))

        accepted: List[Tag] = []
        for candidate in candidates:
            if any(self._related(candidate, other) for other in accepted):
                continue
            accepted.append(candidate)
        return accepted

    @staticmethod
    def _related(a: Tag, b: Tag) -> bool:
        return a is b or any(p is b for p in a.parents) or any(p is a for p in b.parents)

    # --- Per-container fields ---

    def _extract(self, scoped: HTMLDocument, base_url: str, url: str) -> DetectedArticle:
        references = [
            VideoReference(
                video_id=video.video_id,
                url=video.url,
                position_index=index,
                context=extract_element_context(element, scoped),
            )
            for index, (video, element) in enumerate(self.video_detector.locate(scoped, base_url))
        ]
        return DetectedArticle(
            url=url,
            title=self._title(scoped),
            author=self._author(scoped),
            publication_date=extract_publication_date(scoped),
            modified_date=extract_modified_date(scoped),
            description=self._description(scoped),
            main_content=scoped.text() or None,
            video_references=tuple(references),
        )

    @staticmethod
    def _title(document: HTMLDocument) -> str:
        for heading in document.find_all(HEADING_TAGS):
            text = document.text(heading)
            if text:
                return text
        return document.title() or UNTITLED

    @staticmethod
    def _author(document: HTMLDocument) -> Optional[str]:
        for element in document.root.find_all(True):
            if not isinstance(element, Tag) or element.name == "meta":
                continue
            marker = f"{document.attribute(element, 'class') or ''} {document.attribute(element, 'rel') or ''}"
            if "author" not in marker.lower():
                continue
            name = clean_byline(document.text(element))
            if name:
                return name
        meta = document.meta_content("author")
        return clean_byline(meta) if meta else None

    @staticmethod
    def _description(document: HTMLDocument) -> Optional[str]:
        meta = document.meta_content("description")
        if meta:
            return meta
        paragraph = document.find_first("p")
        if paragraph is not None:
            return document.text(paragraph) or None
        return None

    @staticmethod
    def _permalink(document: HTMLDocument, base_url: str) -> Optional[str]:
        """Bookmark link, heading link or element id of a container, if it has one."""
        for link in document.find_by_attribute("rel", "bookmark", tags=["a"]):
            href = document.attribute(link, "href")
            if href and href.strip():
                return resolve_url(href, base_url)
        for heading in document.find_all(HEADING_TAGS):
            link = heading.find("a", href=True)
            if isinstance(link, Tag):
                href = document.attribute(link, "href")
                if href and href.strip() and not href.startswith("#"):
                    return resolve_url(href, base_url)
        element_id = document.attribute(document.root, "id")
        if element_id:
            return f"{base_url.split('#', 1)[0]}#{element_id}"
        return None
