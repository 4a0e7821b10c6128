"""
Core contracts and data structures for VidQuarry.

This module defines the public result model produced by an analysis and the
interfaces that the orchestrator depends on:

- Result models (Video, Article, VideoPosition, SiteAnalysis, VideoUrlDetail)
  are frozen pydantic models. Their JSON field names are camelCase and form a
  versioned wire format (see ``SCHEMA_VERSION``).
- Collaborators (HTTP client, logger, HTML parser, duplicate detector) are
  ``typing.Protocol`` classes so that production and in-memory
  implementations can be injected interchangeably.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable
from urllib.parse import urlparse
from uuid import NAMESPACE_URL, UUID, uuid4, uuid5

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from vidquarry.detector.models import ParsedPage

SCHEMA_VERSION = "1.0"


# ============================================================================
# Enums and Constants
# ============================================================================


class VideoFormat(Enum):
    """Container format of a video, derived from its URL extension."""

    MP4 = "mp4"
    WEBM = "webm"
    OGG = "ogg"
    AVI = "avi"
    MOV = "mov"
    FLV = "flv"
    MKV = "mkv"
    UNKNOWN = "unknown"

    @classmethod
    def from_url(cls, url: str) -> "VideoFormat":
        """Look up the format from the URL path extension (case-insensitive)."""
        try:
            path = urlparse(url).path
        except ValueError:
            path = url
        extension = posixpath.splitext(path)[1].lstrip(".").lower()
        try:
            return cls(extension)
        except ValueError:
            return cls.UNKNOWN


class EmbedType(Enum):
    """Mechanism by which a video is placed on a page."""

    HTML5 = "html5"
    IFRAME = "iframe"
    JAVASCRIPT = "javascript"
    FLASH = "flash"
    EMBED = "embed"
    OBJECT = "object"
    UNKNOWN = "unknown"


class StreamingType(Enum):
    """Delivery protocol of a video stream."""

    PROGRESSIVE = "progressive"
    HLS = "hls"
    DASH = "dash"
    RTMP = "rtmp"
    UNKNOWN = "unknown"


class ExportFormat(Enum):
    """Supported export formats."""

    JSON = "json"
    HTML = "html"


class AnalysisStage(Enum):
    """States of the single-URL analysis state machine."""

    VALIDATING = "validating"
    FETCHING = "fetching"
    PARSING = "parsing"
    DETECTING = "detecting"
    NORMALIZING = "normalizing"
    CROSS_REFERENCING = "cross_referencing"
    DEDUPLICATING = "deduplicating"
    DONE = "done"
    FAILED = "failed"


def video_id_for(url: str) -> UUID:
    """Deterministic identifier for a video located at ``url``."""
    return uuid5(NAMESPACE_URL, url)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Result Models
# ============================================================================


class WireModel(BaseModel):
    """Base for exported models: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=False,
    )


class Video(WireModel):
    """A video found on a web page."""

    id: UUID = Field(default_factory=uuid4)
    url: str
    title: Optional[str] = None
    format: VideoFormat = VideoFormat.UNKNOWN
    resolution: Optional[str] = None
    duration: Optional[float] = None
    hosting_source: str
    embed_type: EmbedType = EmbedType.UNKNOWN
    metadata: Dict[str, str] = Field(default_factory=dict)
    thumbnail_url: Optional[str] = None
    discovered_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="before")
    @classmethod
    def derive_identity_and_format(cls, data: Any) -> Any:
        """Format always follows the URL; the id defaults to the URL-derived token."""
        if isinstance(data, dict):
            url = data.get("url")
            if isinstance(url, str) and url.strip():
                data = dict(data)
                data["format"] = VideoFormat.from_url(url)
                if data.get("id") is None:
                    data["id"] = video_id_for(url)
        return data

    @field_validator("url")
    @classmethod
    def url_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Video URL must not be empty")
        return v


class VideoPosition(WireModel):
    """Position and surrounding context of a video inside an article."""

    id: UUID
    x_path: Optional[str] = None
    parent_tag: Optional[str] = None
    position_index: int = 0
    is_above_the_fold: bool = False
    surrounding_text: Optional[str] = None
    context_section: Optional[str] = None
    preceding_text: Optional[str] = None
    following_text: Optional[str] = None
    parent_heading: Optional[str] = None
    parent_heading_level: Optional[int] = None
    caption: Optional[str] = None
    description: Optional[str] = None
    associated_paragraphs: Tuple[str, ...] = ()
    document_section: Optional[str] = None


class Article(WireModel):
    """An article-like container that may embed videos."""

    id: UUID = Field(default_factory=uuid4)
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    publication_date: Optional[datetime] = None
    modified_date: Optional[datetime] = None
    main_content: Optional[str] = None
    video_positions: Tuple[VideoPosition, ...] = ()


class QualityOption(WireModel):
    resolution: str
    bitrate: int
    codec: str
    url: Optional[str] = None


class SubtitleTrack(WireModel):
    language: str
    label: str
    url: str


class AudioTrack(WireModel):
    language: str
    label: str
    channel_configuration: str


class StreamingInfo(WireModel):
    """Streaming characteristics of a video URL."""

    streaming_type: StreamingType
    quality_options: Tuple[QualityOption, ...] = ()
    subtitle_tracks: Tuple[SubtitleTrack, ...] = ()
    audio_tracks: Tuple[AudioTrack, ...] = ()


class AccessibilityInfo(WireModel):
    """Result of probing a video URL over HTTP."""

    is_accessible: bool = True
    requires_authentication: bool = False
    blocked_regions: Tuple[str, ...] = ()
    supported_formats: Tuple[VideoFormat, ...] = ()
    streaming_info: Optional[StreamingInfo] = None


class VideoUrlDetail(WireModel):
    """Per-video enrichment produced by probing the video URL."""

    id: UUID = Field(default_factory=uuid4)
    video: Video
    original_url: str
    resolved_url: Optional[str] = None
    file_size: Optional[int] = None
    accessibility: AccessibilityInfo = Field(default_factory=AccessibilityInfo)
    related_articles: Tuple[UUID, ...] = ()


class SiteAnalysis(WireModel):
    """Root result of analysing one URL. Always produced, even on failure."""

    schema_version: str = SCHEMA_VERSION
    id: UUID = Field(default_factory=uuid4)
    target_url: str
    site_url: str
    videos: Tuple[Video, ...] = ()
    articles: Tuple[Article, ...] = ()
    video_urls: Tuple[VideoUrlDetail, ...] = ()
    analysis_date: datetime = Field(default_factory=_utcnow)
    processing_time: float = 0.0
    error_log: Tuple[str, ...] = ()

    @property
    def failed(self) -> bool:
        return bool(self.error_log) and not self.videos and not self.articles


class ValidationResult(WireModel):
    is_valid: bool
    error_message: Optional[str] = None


# ============================================================================
# Collaborator Interfaces
# ============================================================================


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of an HTTP accessibility probe."""

    url: str
    status: int
    final_url: str
    content_length: Optional[int] = None
    content_type: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@runtime_checkable
class HttpClientProtocol(Protocol):
    """HTTP operations consumed by the analyzer."""

    async def initialize(self) -> None: ...

    async def close(self) -> None: ...

    async def fetch_html(self, url: str) -> str:
        """Return the page body or raise ``FetchError``."""
        ...

    async def check_accessibility(self, url: str) -> bool: ...

    async def probe(self, url: str) -> ProbeResult: ...


@runtime_checkable
class LoggerProtocol(Protocol):
    """Key/value logger; structlog's BoundLogger satisfies it."""

    def debug(self, event: str, **kw: Any) -> Any: ...

    def info(self, event: str, **kw: Any) -> Any: ...

    def warning(self, event: str, **kw: Any) -> Any: ...

    def error(self, event: str, **kw: Any) -> Any: ...


@runtime_checkable
class HTMLParsing(Protocol):
    """Turns raw HTML into detected videos and articles."""

    def parse(self, html: str, base_url: str) -> "ParsedPage": ...


@runtime_checkable
class DuplicateDetecting(Protocol):
    def remove_duplicate_videos(self, videos: Sequence[Video]) -> List[Video]: ...

    def remove_duplicate_articles(self, articles: Sequence[Article]) -> List[Article]: ...

    def remove_duplicate_video_urls(self, details: Sequence[VideoUrlDetail]) -> List[VideoUrlDetail]: ...
