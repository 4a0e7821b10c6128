"""
Linking article video references to normalized videos.

References carry the deterministic id of the video URL they point at, so a
reference resolves by exact id. The ``videoId`` metadata entry is consulted
as a fallback; references matching neither are dropped.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from vidquarry.detector.models import VideoReference
from vidquarry.protocols import Article, Video, VideoPosition

DEFAULT_ABOVE_FOLD_THRESHOLD = 3


def _index(videos: Iterable[Video]) -> tuple[Dict[UUID, Video], Dict[str, Video]]:
    by_id: Dict[UUID, Video] = {}
    by_metadata: Dict[str, Video] = {}
    for video in videos:
        by_id.setdefault(video.id, video)
        meta_id = video.metadata.get("videoId")
        if meta_id:
            by_metadata.setdefault(meta_id, video)
    return by_id, by_metadata


def resolve_reference(
    reference: VideoReference, by_id: Dict[UUID, Video], by_metadata: Dict[str, Video]
) -> Optional[Video]:
    return by_id.get(reference.video_id) or by_metadata.get(str(reference.video_id))


def link_positions(
    references: Sequence[VideoReference],
    videos: Sequence[Video],
    above_fold_threshold: int = DEFAULT_ABOVE_FOLD_THRESHOLD,
) -> List[VideoPosition]:
    """VideoPositions for the references that resolve to one of ``videos``."""
    by_id, by_metadata = _index(videos)
    positions: List[VideoPosition] = []
    for reference in references:
        video = resolve_reference(reference, by_id, by_metadata)
        if video is None:
            continue
        ctx = reference.context
        positions.append(
            VideoPosition(
                id=video.id,
                x_path=ctx.xpath,
                parent_tag=ctx.parent_tag,
                position_index=reference.position_index,
                is_above_the_fold=reference.position_index <= above_fold_threshold,
                surrounding_text=ctx.surrounding_text,
                context_section=ctx.context_section,
                preceding_text=ctx.preceding_text,
                following_text=ctx.following_text,
                parent_heading=ctx.parent_heading,
                parent_heading_level=ctx.parent_heading_level,
                caption=ctx.caption,
                description=ctx.description,
                associated_paragraphs=ctx.associated_paragraphs,
                document_section=ctx.document_section,
            )
        )
    return positions


def related_article_ids(video: Video, articles: Sequence[Article]) -> List[UUID]:
    """Ids of the articles that position ``video``, in article order."""
    return [article.id for article in articles if any(pos.id == video.id for pos in article.video_positions)]
