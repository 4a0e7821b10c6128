"""Duplicate elimination."""

from __future__ import annotations

from .detector import DuplicateDetector, canonical_url, dedupe

__all__ = ["DuplicateDetector", "canonical_url", "dedupe"]
