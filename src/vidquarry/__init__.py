"""
VidQuarry - Finds the videos on a web page and places them in their articles.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config, load_config
from .exceptions import ExportError, FetchError, InvalidInputError, VidQuarryError
from .pipeline import VideoAnalyzer
from .protocols import (
    AccessibilityInfo,
    Article,
    ExportFormat,
    SiteAnalysis,
    ValidationResult,
    Video,
    VideoPosition,
    VideoUrlDetail,
)

__all__ = [
    "__version__",
    "AccessibilityInfo",
    "Article",
    "Config",
    "ExportError",
    "ExportFormat",
    "FetchError",
    "InvalidInputError",
    "SiteAnalysis",
    "ValidationResult",
    "VidQuarryError",
    "Video",
    "VideoAnalyzer",
    "VideoPosition",
    "VideoUrlDetail",
    "load_config",
]
