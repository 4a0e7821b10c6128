"""Normalization and cross-referencing of detection results."""

from __future__ import annotations

from .cross_reference import link_positions, related_article_ids
from .normalizer import MetadataNormalizer

__all__ = ["MetadataNormalizer", "link_positions", "related_article_ids"]
