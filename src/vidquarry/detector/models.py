"""
Data models for detection results.

These records are produced by the detectors before normalization into the
public :mod:`vidquarry.protocols` models and are not part of the wire format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple
from uuid import UUID

from vidquarry.protocols import EmbedType, video_id_for


@dataclass(slots=True, frozen=True)
class ElementPosition:
    """Source location of an element (1-based line, 0-based column)."""

    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(slots=True, frozen=True)
class DetectedVideo:
    """A video URL found by one of the detection strategies."""

    url: str
    embed_type: EmbedType
    attributes: Dict[str, str] = field(default_factory=dict)
    context: Optional[str] = None
    position: ElementPosition = field(default_factory=ElementPosition)
    element_index: int = 0
    parent_path: Optional[str] = None
    xpath: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise ValueError("Detected video URL must not be blank")

    @property
    def video_id(self) -> UUID:
        return video_id_for(self.url)


@dataclass(slots=True, frozen=True)
class ElementContext:
    """Where a video sits inside its article and what text surrounds it."""

    xpath: Optional[str] = None
    parent_tag: Optional[str] = None
    caption: Optional[str] = None
    description: Optional[str] = None
    parent_heading: Optional[str] = None
    parent_heading_level: Optional[int] = None
    preceding_text: Optional[str] = None
    following_text: Optional[str] = None
    surrounding_text: Optional[str] = None
    associated_paragraphs: Tuple[str, ...] = ()
    context_section: Optional[str] = None
    document_section: Optional[str] = None


@dataclass(slots=True, frozen=True)
class VideoReference:
    """A by-id pointer from an article to one of its videos."""

    video_id: UUID
    url: str
    position_index: int
    context: ElementContext = field(default_factory=ElementContext)


@dataclass(slots=True, frozen=True)
class DetectedArticle:
    """An article-like container and the videos discovered inside it."""

    url: str
    title: str
    author: Optional[str] = None
    publication_date: Optional[datetime] = None
    modified_date: Optional[datetime] = None
    description: Optional[str] = None
    main_content: Optional[str] = None
    video_references: Tuple[VideoReference, ...] = ()


@dataclass(slots=True, frozen=True)
class ParsedPage:
    """Everything detected on a single page."""

    videos: Tuple[DetectedVideo, ...] = ()
    articles: Tuple[DetectedArticle, ...] = ()
    title: Optional[str] = None
