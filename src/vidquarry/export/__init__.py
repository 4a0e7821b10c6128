"""Report exporters."""

from __future__ import annotations

from .exporter import (
    BaseExporter,
    HtmlExporter,
    JsonExporter,
    export_analysis,
    get_exporter,
    load_analysis,
    report_path,
    write_report,
)

__all__ = [
    "BaseExporter",
    "HtmlExporter",
    "JsonExporter",
    "export_analysis",
    "get_exporter",
    "load_analysis",
    "report_path",
    "write_report",
]
