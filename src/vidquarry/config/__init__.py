"""Configuration models and loaders."""

from __future__ import annotations

from .config import (
    AnalyzerConfig,
    Config,
    CrawlerConfig,
    ExportConfig,
    MonitoringConfig,
    find_config_file,
    load_config,
)

__all__ = [
    "AnalyzerConfig",
    "Config",
    "CrawlerConfig",
    "ExportConfig",
    "MonitoringConfig",
    "find_config_file",
    "load_config",
]
