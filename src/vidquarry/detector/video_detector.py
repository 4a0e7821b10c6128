"""
Video detection over a parsed HTML document.

Four independent strategies are run in a fixed order and merged:

1. ``detect_html5``: ``<video>`` tags and their ``<source>`` children
2. ``detect_iframes``: ``<iframe>`` players from known video hosts
3. ``detect_embeds``: ``<embed>`` and ``<object>`` plugin players
4. ``detect_javascript``: video URLs assigned in inline ``<script>`` text

Every URL is resolved against the page URL and the merged list keeps only
the first record for each resolved URL.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog
from bs4 import Tag

from vidquarry.config.config import DEFAULT_VIDEO_HOSTS
from vidquarry.detector.models import DetectedVideo, ElementPosition
from vidquarry.parser.document import HTMLDocument
from vidquarry.parser.url_resolver import resolve_url
from vidquarry.protocols import EmbedType, LoggerProtocol

EMBED_KEYWORDS = ("video", "youtube", "vimeo")

JAVASCRIPT_PATTERNS = [
    re.compile(r"""src\s*:\s*["']([^"']*\.mp4[^"']*)["']""", re.IGNORECASE),
    re.compile(r"""src\s*:\s*["']([^"']*\.webm[^"']*)["']""", re.IGNORECASE),
    re.compile(r"""src\s*:\s*["']([^"']*video[^"']*)["']""", re.IGNORECASE),
    re.compile(r"""videoUrl\s*=\s*["']([^"']*)["']""", re.IGNORECASE),
    re.compile(r"""video_source\s*=\s*["']([^"']*)["']""", re.IGNORECASE),
]

JAVASCRIPT_CONTEXT = "JavaScript-rendered"
IFRAME_CONTEXT = "embedded iframe"

# A detection paired with the element it was found on
Located = Tuple[DetectedVideo, Tag]


class VideoDetector:
    """Finds embedded videos in HTML."""

    def __init__(
        self,
        video_hosts: Optional[Sequence[str]] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        hosts = video_hosts if video_hosts is not None else DEFAULT_VIDEO_HOSTS
        self.video_hosts = tuple(host.lower() for host in hosts)
        self.logger = logger or structlog.get_logger(__name__)

    # --- Public entry points ---

    def detect_videos(self, html: str, base_url: str) -> List[DetectedVideo]:
        """Parse ``html`` and return every unique video found on the page."""
        return self.detect_in(HTMLDocument.parse(html, logger=self.logger), base_url)

    def detect_in(self, document: HTMLDocument, base_url: str) -> List[DetectedVideo]:
        return [video for video, _ in self.locate(document, base_url)]

    def locate(self, document: HTMLDocument, base_url: str) -> List[Located]:
        """Merged, deduplicated detections together with their source elements."""
        merged = self._dedupe(
            [
                *self._html5(document, base_url),
                *self._iframes(document, base_url),
                *self._embeds(document, base_url),
                *self._javascript(document, base_url),
            ]
        )
        self.logger.debug("videos_detected", count=len(merged), base_url=base_url)
        return merged

    # --- Individual strategies ---

    def detect_html5(self, document: HTMLDocument, base_url: str) -> List[DetectedVideo]:
        return [video for video, _ in self._html5(document, base_url)]

    def detect_iframes(self, document: HTMLDocument, base_url: str) -> List[DetectedVideo]:
        return [video for video, _ in self._iframes(document, base_url)]

    def detect_embeds(self, document: HTMLDocument, base_url: str) -> List[DetectedVideo]:
        return [video for video, _ in self._embeds(document, base_url)]

    def detect_javascript(self, document: HTMLDocument, base_url: str) -> List[DetectedVideo]:
        return [video for video, _ in self._javascript(document, base_url)]

    # --- Strategy implementations ---

    def _html5(self, document: HTMLDocument, base_url: str) -> List[Located]:
        found: List[Located] = []
        for video_tag in document.find_all("video"):
            video_attributes = document.attributes(video_tag)
            poster = video_attributes.get("poster") or None
            for source in video_tag.find_all("source"):
                src = document.attribute(source, "src")
                if not src or not src.strip():
                    continue
                attributes = {**video_attributes, **document.attributes(source)}
                found.append(
                    self._record(document, video_tag, src, base_url, EmbedType.HTML5, attributes, poster, len(found))
                )
            direct_src = video_attributes.get("src")
            if direct_src and direct_src.strip():
                found.append(
                    self._record(
                        document, video_tag, direct_src, base_url, EmbedType.HTML5, video_attributes, poster, len(found)
                    )
                )
        return found

    def _iframes(self, document: HTMLDocument, base_url: str) -> List[Located]:
        found: List[Located] = []
        for iframe in document.find_all("iframe"):
            src = document.attribute(iframe, "src")
            if not src or not src.strip() or not self.is_video_host(src):
                continue
            attributes = document.attributes(iframe)
            context = IFRAME_CONTEXT if "width" in attributes else None
            found.append(self._record(document, iframe, src, base_url, EmbedType.IFRAME, attributes, context, len(found)))
        return found

    def _embeds(self, document: HTMLDocument, base_url: str) -> List[Located]:
        found: List[Located] = []
        for element in document.find_all(["embed", "object"]):
            url_attr = "src" if element.name == "embed" else "data"
            src = document.attribute(element, url_attr)
            if not src or not src.strip() or not self.is_video_embed(src):
                continue
            attributes = document.attributes(element)
            embed_type = EmbedType.EMBED if element.name == "embed" else EmbedType.OBJECT
            context = attributes.get("type") or None
            found.append(self._record(document, element, src, base_url, embed_type, attributes, context, len(found)))
        return found

    def _javascript(self, document: HTMLDocument, base_url: str) -> List[Located]:
        found: List[Located] = []
        for script in document.find_all("script"):
            if document.attribute(script, "src"):
                continue
            body = script.string if script.string is not None else script.get_text()
            if not body:
                continue
            for pattern in JAVASCRIPT_PATTERNS:
                for match in pattern.finditer(body):
                    src = match.group(1)
                    if not src.strip():
                        continue
                    found.append(
                        self._record(
                            document, script, src, base_url, EmbedType.JAVASCRIPT, {}, JAVASCRIPT_CONTEXT, len(found)
                        )
                    )
        return found

    # --- Helpers ---

    def is_video_host(self, src: str) -> bool:
        lowered = src.lower()
        return any(host in lowered for host in self.video_hosts)

    @staticmethod
    def is_video_embed(src: str) -> bool:
        lowered = src.lower()
        return any(keyword in lowered for keyword in EMBED_KEYWORDS)

    def _record(
        self,
        document: HTMLDocument,
        element: Tag,
        src: str,
        base_url: str,
        embed_type: EmbedType,
        attributes: Dict[str, str],
        context: Optional[str],
        index: int,
    ) -> Located:
        line, column = document.source_position(element)
        parent = element.parent
        parent_path = document.xpath(parent) if isinstance(parent, Tag) and parent.name != "[document]" else None
        video = DetectedVideo(
            url=resolve_url(src.strip(), base_url),
            embed_type=embed_type,
            attributes=dict(attributes),
            context=context,
            position=ElementPosition(line, column),
            element_index=index,
            parent_path=parent_path,
            xpath=document.xpath(element),
        )
        return video, element

    def _dedupe(self, located: Iterable[Located]) -> List[Located]:
        seen: set[str] = set()
        unique: List[Located] = []
        for video, element in located:
            if video.url in seen:
                self.logger.debug("duplicate_video_skipped", url=video.url, embed_type=video.embed_type.value)
                continue
            seen.add(video.url)
            unique.append((replace(video, element_index=len(unique)), element))
        return unique
