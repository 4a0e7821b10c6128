"""Video and article detection over parsed HTML."""

from __future__ import annotations

from .article_extractor import ArticleExtractor
from .page_parser import PageParser
from .video_detector import VideoDetector

__all__ = ["ArticleExtractor", "PageParser", "VideoDetector"]
