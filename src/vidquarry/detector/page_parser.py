"""
Single-pass page parser combining video detection and article extraction.
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from vidquarry.detector.article_extractor import ArticleExtractor
from vidquarry.detector.models import ParsedPage
from vidquarry.detector.video_detector import VideoDetector
from vidquarry.parser.document import HTMLDocument
from vidquarry.protocols import LoggerProtocol


class PageParser:
    """Parses a page once and runs both detectors over the same document."""

    def __init__(
        self,
        video_hosts: Optional[Sequence[str]] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        self.logger = logger or structlog.get_logger(__name__)
        self.video_detector = VideoDetector(video_hosts=video_hosts, logger=self.logger)
        self.article_extractor = ArticleExtractor(video_detector=self.video_detector, logger=self.logger)

    def parse(self, html: str, base_url: str) -> ParsedPage:
        document = HTMLDocument.parse(html, logger=self.logger)
        videos = self.video_detector.detect_in(document, base_url)
        articles = self.article_extractor.extract_from(document, base_url)
        return ParsedPage(videos=tuple(videos), articles=tuple(articles), title=document.title())
