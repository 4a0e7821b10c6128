"""
Conversion of detected videos into typed :class:`~vidquarry.protocols.Video` records.
"""

from __future__ import annotations

import math
from typing import Dict, Mapping, Optional

from vidquarry.detector.models import DetectedVideo
from vidquarry.parser.url_resolver import host_of
from vidquarry.protocols import Video

# Attributes that map onto typed Video fields instead of the metadata dump
CAPTURED_ATTRIBUTES = frozenset({"src", "width", "height", "resolution", "duration", "poster", "thumbnail", "title"})


def _non_blank(attributes: Mapping[str, str], name: str) -> Optional[str]:
    value = attributes.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_duration(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        seconds = float(raw.strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def resolution_of(attributes: Mapping[str, str]) -> Optional[str]:
    width = _non_blank(attributes, "width")
    height = _non_blank(attributes, "height")
    if width and height:
        return f"{width}x{height}"
    return _non_blank(attributes, "resolution")


class MetadataNormalizer:
    """Maps a DetectedVideo onto a Video.

    The output depends only on the input record, apart from the
    ``discovered_at`` timestamp. Invalid records raise ``ValueError``
    (pydantic's ``ValidationError`` is a subclass).
    """

    def normalize(self, detected: DetectedVideo) -> Video:
        attributes = detected.attributes
        return Video(
            id=detected.video_id,
            url=detected.url,
            title=_non_blank(attributes, "title"),
            resolution=resolution_of(attributes),
            duration=parse_duration(attributes.get("duration")),
            hosting_source=host_of(detected.url) or detected.url,
            embed_type=detected.embed_type,
            metadata=self.build_metadata(detected),
            thumbnail_url=_non_blank(attributes, "poster") or _non_blank(attributes, "thumbnail"),
        )

    @staticmethod
    def build_metadata(detected: DetectedVideo) -> Dict[str, str]:
        metadata: Dict[str, str] = {
            "position": str(detected.position),
            "videoId": str(detected.video_id),
            "elementIndex": str(detected.element_index),
        }
        if detected.context:
            metadata["context"] = detected.context
        if detected.parent_path:
            metadata["parentPath"] = detected.parent_path
        if detected.xpath:
            metadata["xpath"] = detected.xpath
        for name, value in detected.attributes.items():
            if name not in CAPTURED_ATTRIBUTES and name not in metadata:
                metadata[name] = value
        return metadata
