"""
Handles exporting a site analysis to JSON or a standalone HTML report.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from html import escape
from pathlib import Path
from typing import Iterable, List, Optional, Union

import structlog
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from vidquarry.exceptions import ExportError, InvalidInputError
from vidquarry.protocols import Article, ExportFormat, SiteAnalysis, Video, VideoPosition, VideoUrlDetail
from vidquarry.utils.atomic import atomic_write_bytes

logger = structlog.get_logger(__name__)

REPORT_PREFIX = "video_analysis_"


class BaseExporter(ABC):
    """Abstract base class for all analysis exporters."""

    format: ExportFormat
    extension: str

    @abstractmethod
    def render(self, analysis: SiteAnalysis) -> bytes:
        """Serialize ``analysis``; failures raise ``ExportError``."""
        pass

    def export(self, analysis: SiteAnalysis, output_path: Path) -> Path:
        """Render and atomically write the report to ``output_path``."""
        content = self.render(analysis)
        try:
            atomic_write_bytes(output_path, content)
        except OSError as e:
            logger.error("Report write failed", path=str(output_path), error=str(e))
            raise ExportError(f"Cannot write report to {output_path}: {e}") from e
        logger.info("Report written", path=str(output_path), format=self.format.value, size=len(content))
        return output_path


class JsonExporter(BaseExporter):
    """Lossless camelCase JSON, loadable again with :func:`load_analysis`."""

    format = ExportFormat.JSON
    extension = "json"

    def render(self, analysis: SiteAnalysis) -> bytes:
        try:
            return analysis.model_dump_json(by_alias=True, indent=2).encode("utf-8")
        except (PydanticSerializationError, ValueError, TypeError) as e:
            raise ExportError(f"Cannot serialize analysis {analysis.id} to JSON: {e}") from e


class HtmlExporter(BaseExporter):
    """Human-readable report. Every scraped string is HTML-escaped."""

    format = ExportFormat.HTML
    extension = "html"

    STYLE = """
    body { font-family: -apple-system, Helvetica, Arial, sans-serif; margin: 2em; color: #222; }
    h1 { border-bottom: 2px solid #444; padding-bottom: .3em; }
    .summary { display: flex; gap: 2em; }
    .summary div { background: #f2f2f2; padding: 1em; border-radius: 4px; }
    .video, .article { border: 1px solid #ddd; border-radius: 4px; padding: 1em; margin: 1em 0; }
    .position { margin-left: 1.5em; padding-left: 1em; border-left: 3px solid #ccc; }
    .context-text { font-style: italic; color: #555; }
    table { border-collapse: collapse; width: 100%; }
    th, td { border: 1px solid #ddd; padding: .4em; text-align: left; }
    .errors li { color: #a00; }
    """

    def render(self, analysis: SiteAnalysis) -> bytes:
        try:
            parts = [
                "<!DOCTYPE html>",
                '<html lang="en">',
                "<head>",
                '<meta charset="utf-8">',
                f"<title>Video Analysis: {escape(analysis.target_url)}</title>",
                f"<style>{self.STYLE}</style>",
                "</head>",
                "<body>",
                self._header(analysis),
                self._summary(analysis),
                self._videos(analysis.videos),
                self._articles(analysis.articles),
                self._details(analysis.video_urls),
                self._errors(analysis.error_log),
                "</body>",
                "</html>",
            ]
            return "\n".join(parts).encode("utf-8")
        except (TypeError, ValueError, AttributeError) as e:
            raise ExportError(f"Cannot render HTML report for analysis {analysis.id}: {e}") from e

    # --- Sections ---

    @staticmethod
    def _field(label: str, value: Optional[object]) -> str:
        if value is None or value == "":
            return ""
        return f"<p><strong>{escape(label)}:</strong> {escape(str(value))}</p>"

    def _header(self, analysis: SiteAnalysis) -> str:
        return "\n".join(
            [
                '<header id="header">',
                "<h1>Video Analysis Report</h1>",
                self._field("Target URL", analysis.target_url),
                self._field("Site URL", analysis.site_url),
                self._field("Analyzed at", analysis.analysis_date.isoformat()),
                self._field("Processing time", f"{analysis.processing_time:.2f}s"),
                "</header>",
            ]
        )

    @staticmethod
    def _summary(analysis: SiteAnalysis) -> str:
        counts = [
            ("Videos", len(analysis.videos)),
            ("Articles", len(analysis.articles)),
            ("Video details", len(analysis.video_urls)),
            ("Errors", len(analysis.error_log)),
        ]
        cells = "".join(f"<div><strong>{label}</strong><br>{count}</div>" for label, count in counts)
        return f'<section id="summary"><h2>Summary</h2><div class="summary">{cells}</div></section>'

    def _videos(self, videos: Iterable[Video]) -> str:
        blocks: List[str] = ['<section id="videos">', "<h2>Videos</h2>"]
        for video in videos:
            metadata = "".join(
                f"<li><code>{escape(key)}</code>: {escape(value)}</li>" for key, value in sorted(video.metadata.items())
            )
            blocks.append(
                "\n".join(
                    [
                        '<div class="video">',
                        f"<h3>{escape(video.title or 'Untitled video')}</h3>",
                        self._field("URL", video.url),
                        self._field("Format", video.format.value),
                        self._field("Resolution", video.resolution),
                        self._field("Embed type", video.embed_type.value),
                        self._field("Hosting source", video.hosting_source),
                        self._field("Duration", f"{video.duration:g}s" if video.duration is not None else None),
                        f"<details><summary>Metadata</summary><ul>{metadata}</ul></details>" if metadata else "",
                        "</div>",
                    ]
                )
            )
        blocks.append("</section>")
        return "\n".join(blocks)

    def _position(self, position: VideoPosition) -> str:
        lines = [
            '<div class="position">',
            f"<h4>Video position {position.position_index}"
            f"{' (above the fold)' if position.is_above_the_fold else ''}</h4>",
            self._field("Video id", position.id),
            self._field("Parent heading", position.parent_heading),
            self._field("Caption", position.caption),
            self._field("Description", position.description),
            self._field("Context section", position.context_section),
        ]
        if position.surrounding_text:
            lines.append(f'<div class="context-text">{escape(position.surrounding_text)}</div>')
        lines.append("</div>")
        return "\n".join(lines)

    def _articles(self, articles: Iterable[Article]) -> str:
        blocks: List[str] = ['<section id="articles">', "<h2>Articles</h2>"]
        for article in articles:
            blocks.append(
                "\n".join(
                    [
                        '<div class="article">',
                        f"<h3>{escape(article.title or 'Untitled')}</h3>",
                        self._field("URL", article.url),
                        self._field("Author", article.author),
                        self._field(
                            "Published", article.publication_date.isoformat() if article.publication_date else None
                        ),
                        self._field("Videos", len(article.video_positions)),
                        *(self._position(position) for position in article.video_positions),
                        "</div>",
                    ]
                )
            )
        blocks.append("</section>")
        return "\n".join(blocks)

    @staticmethod
    def _details(details: Iterable[VideoUrlDetail]) -> str:
        rows = []
        for detail in details:
            accessible = "yes" if detail.accessibility.is_accessible else "no"
            if detail.accessibility.requires_authentication:
                accessible += " (auth)"
            rows.append(
                "<tr>"
                f"<td>{escape(detail.original_url)}</td>"
                f"<td>{escape(detail.video.format.value)}</td>"
                f"<td>{escape(detail.video.resolution or '-')}</td>"
                f"<td>{detail.file_size if detail.file_size is not None else '-'}</td>"
                f"<td>{accessible}</td>"
                f"<td>{len(detail.related_articles)}</td>"
                "</tr>"
            )
        header = (
            "<tr><th>URL</th><th>Format</th><th>Resolution</th><th>File size</th>"
            "<th>Accessible</th><th>Related articles</th></tr>"
        )
        return f'<section id="video-details"><h2>Video Details</h2><table>{header}{"".join(rows)}</table></section>'

    @staticmethod
    def _errors(errors: Iterable[str]) -> str:
        items = "".join(f"<li>{escape(error)}</li>" for error in errors)
        body = f'<ul class="errors">{items}</ul>' if items else "<p>No errors.</p>"
        return f'<section id="errors"><h2>Errors</h2>{body}</section>'


def get_exporter(format_name: Union[ExportFormat, str]) -> BaseExporter:
    """Factory function to get the appropriate exporter."""
    try:
        fmt = format_name if isinstance(format_name, ExportFormat) else ExportFormat(str(format_name).lower())
    except ValueError:
        raise InvalidInputError(f"Unknown export format: {format_name}") from None
    if fmt is ExportFormat.JSON:
        return JsonExporter()
    return HtmlExporter()


def export_analysis(analysis: SiteAnalysis, format_name: Union[ExportFormat, str]) -> bytes:
    return get_exporter(format_name).render(analysis)


def load_analysis(data: Union[bytes, str]) -> SiteAnalysis:
    """Rebuild a SiteAnalysis from JSON produced by :class:`JsonExporter`."""
    try:
        return SiteAnalysis.model_validate_json(data)
    except ValidationError as e:
        raise ExportError(f"Cannot load analysis: {e.error_count()} validation error(s)") from e


def report_path(output_dir: Path, format_name: Union[ExportFormat, str], timestamp: Optional[int] = None) -> Path:
    """``<output_dir>/video_analysis_<unix timestamp>.<ext>``."""
    exporter = get_exporter(format_name)
    stamp = int(time.time()) if timestamp is None else timestamp
    return Path(output_dir) / f"{REPORT_PREFIX}{stamp}.{exporter.extension}"


def write_report(
    analysis: SiteAnalysis,
    format_name: Union[ExportFormat, str],
    output_dir: Path,
    timestamp: Optional[int] = None,
) -> Path:
    path = report_path(output_dir, format_name, timestamp)
    return get_exporter(format_name).export(analysis, path)
