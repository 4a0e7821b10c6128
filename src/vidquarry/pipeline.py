"""
Analysis orchestration for VidQuarry.

A single analysis walks the stages

    VALIDATING -> FETCHING -> PARSING -> DETECTING -> NORMALIZING
        -> CROSS_REFERENCING -> DEDUPLICATING -> DONE

and may drop to FAILED from any of them. Invalid URLs, network failures,
timeouts and parse failures never escape :meth:`VideoAnalyzer.analyze`: they
produce a SiteAnalysis with empty lists and an ``error_log`` entry.
Cancellation is the exception and always propagates.

Batches run through :meth:`VideoAnalyzer.analyze_many`, which builds a fresh
analyzer (own HTTP client, parser and detectors) for every URL so that
concurrent analyses share no mutable state.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union
from urllib.parse import urlparse

import structlog
from structlog.contextvars import bound_contextvars

from vidquarry.analyzer.cross_reference import link_positions, related_article_ids
from vidquarry.analyzer.normalizer import MetadataNormalizer
from vidquarry.config.config import Config
from vidquarry.crawler.http_client import HttpClient
from vidquarry.dedup.detector import DuplicateDetector
from vidquarry.detector.models import DetectedArticle, DetectedVideo, ParsedPage
from vidquarry.detector.page_parser import PageParser
from vidquarry.exceptions import FetchError, InvalidInputError
from vidquarry.export.exporter import export_analysis
from vidquarry.parser.url_resolver import site_url
from vidquarry.protocols import (
    AccessibilityInfo,
    AnalysisStage,
    Article,
    DuplicateDetecting,
    EmbedType,
    ExportFormat,
    HTMLParsing,
    HttpClientProtocol,
    LoggerProtocol,
    ProbeResult,
    QualityOption,
    SiteAnalysis,
    StreamingInfo,
    StreamingType,
    ValidationResult,
    Video,
    VideoFormat,
    VideoUrlDetail,
)

AUTH_MARKERS = ("auth", "login")
AUTH_STATUSES = frozenset({401, 407})

HLS_CONTENT_TYPES = ("application/vnd.apple.mpegurl", "application/x-mpegurl", "audio/mpegurl")
DASH_CONTENT_TYPES = ("application/dash+xml",)


class AnalysisFailed(Exception):
    """Internal signal that moves an analysis to the FAILED stage."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def streaming_info_for(video: Video, probe: Optional[ProbeResult]) -> StreamingInfo:
    """Delivery protocol from the URL and, when available, the probed content type."""
    url = video.url.lower()
    path = urlparse(url).path if "://" in url else url
    content_type = (probe.content_type or "").lower() if probe else ""

    if url.startswith(("rtmp://", "rtmps://")):
        streaming_type = StreamingType.RTMP
    elif path.endswith(".m3u8") or content_type.startswith(HLS_CONTENT_TYPES):
        streaming_type = StreamingType.HLS
    elif path.endswith(".mpd") or content_type.startswith(DASH_CONTENT_TYPES):
        streaming_type = StreamingType.DASH
    elif video.format is not VideoFormat.UNKNOWN or content_type.startswith("video/"):
        streaming_type = StreamingType.PROGRESSIVE
    else:
        streaming_type = StreamingType.UNKNOWN

    quality_options = ()
    if video.resolution:
        codec = video.metadata.get("type") or (probe.content_type if probe and probe.content_type else None)
        quality_options = (
            QualityOption(
                resolution=video.resolution,
                bitrate=0,
                codec=codec or video.format.value,
                url=video.url,
            ),
        )
    return StreamingInfo(streaming_type=streaming_type, quality_options=quality_options)


def check_url_format(url: str) -> Optional[str]:
    """Reason why ``url`` is not a well-formed absolute http(s) URL, or ``None``."""
    if not isinstance(url, str) or not url.strip():
        return "URL must not be empty"
    try:
        parsed = urlparse(url.strip())
    except ValueError as e:
        return f"Invalid URL format: {e}"
    if parsed.scheme not in ("http", "https"):
        return "Invalid URL format: scheme must be http or https"
    if not parsed.hostname:
        return "Invalid URL format: missing host"
    return None


class VideoAnalyzer:
    """Runs the extraction pipeline for one URL or a batch of URLs."""

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        http_client: Optional[HttpClientProtocol] = None,
        parser: Optional[HTMLParsing] = None,
        normalizer: Optional[MetadataNormalizer] = None,
        duplicate_detector: Optional[DuplicateDetecting] = None,
        logger: Optional[LoggerProtocol] = None,
        analyzer_factory: Optional[Callable[[], "VideoAnalyzer"]] = None,
    ) -> None:
        self.config = config or Config()
        self.logger = logger or structlog.get_logger(__name__)
        self.http_client: HttpClientProtocol = http_client or HttpClient(self.config)
        self.parser: HTMLParsing = parser or PageParser(video_hosts=self.config.analyzer.video_hosts)
        self.normalizer = normalizer or MetadataNormalizer()
        self.duplicate_detector: DuplicateDetecting = duplicate_detector or DuplicateDetector()
        self.analyzer_factory = analyzer_factory or self._fresh_analyzer
        self._session_depth = 0
        self.stage_timings: Dict[str, float] = {}

    def _fresh_analyzer(self) -> "VideoAnalyzer":
        return VideoAnalyzer(self.config, logger=self.logger)

    # --- Client lifecycle ---

    async def __aenter__(self) -> "VideoAnalyzer":
        # Every caller holds the client; the last one out closes it
        self._session_depth += 1
        try:
            await self.http_client.initialize()
        except BaseException:
            self._session_depth -= 1
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self._session_depth -= 1
        if self._session_depth == 0:
            await self.http_client.close()

    # --- Public API ---

    async def analyze(self, url: str) -> SiteAnalysis:
        """Analyse one page. Only cancellation propagates."""
        start = time.perf_counter()
        self.stage_timings = {}
        target = url.strip() if isinstance(url, str) else str(url)
        stage = AnalysisStage.VALIDATING
        stage_start = start

        def enter(next_stage: AnalysisStage) -> None:
            nonlocal stage, stage_start
            now = time.perf_counter()
            self.stage_timings[stage.value] = now - stage_start
            stage, stage_start = next_stage, now
            self.logger.debug("analysis_stage", stage=stage.value, url=target)

        with bound_contextvars(analysis_id=str(uuid.uuid4()), target_url=target):
            self.logger.info("analysis_started", url=target)
            try:
                async with self:
                    validation = await self.validate(target)
                    if not validation.is_valid:
                        raise AnalysisFailed(f"Validation failed: {validation.error_message}")

                    enter(AnalysisStage.FETCHING)
                    html = await self._fetch(target)

                    enter(AnalysisStage.PARSING)
                    page = self._parse(html, target)

                    enter(AnalysisStage.DETECTING)
                    self.logger.debug(
                        "detection_complete", url=target, videos=len(page.videos), articles=len(page.articles)
                    )

                    enter(AnalysisStage.NORMALIZING)
                    videos = self._normalize(page.videos)

                    enter(AnalysisStage.CROSS_REFERENCING)
                    articles = self._build_articles(page.articles, videos)
                    details = await self._build_details(videos, articles)

                    enter(AnalysisStage.DEDUPLICATING)
                    videos = self.duplicate_detector.remove_duplicate_videos(videos)
                    articles = self.duplicate_detector.remove_duplicate_articles(articles)
                    details = self.duplicate_detector.remove_duplicate_video_urls(details)

                    enter(AnalysisStage.DONE)
            except AnalysisFailed as failure:
                return self._failed(target, start, stage, failure.message)
            except Exception as e:
                # Collaborator bugs end up in the error log like any other failure
                self.logger.error("analysis_crashed", url=target, stage=stage.value, error=repr(e))
                return self._failed(target, start, stage, f"Unexpected error during {stage.value}: {e}")

            analysis = SiteAnalysis(
                target_url=target,
                site_url=site_url(target),
                videos=tuple(videos),
                articles=tuple(articles),
                video_urls=tuple(details),
                processing_time=time.perf_counter() - start,
            )
            self.logger.info(
                "analysis_completed",
                url=target,
                videos=len(analysis.videos),
                articles=len(analysis.articles),
                video_urls=len(analysis.video_urls),
                processing_time=round(analysis.processing_time, 3),
                stages={name: round(seconds, 4) for name, seconds in self.stage_timings.items()},
            )
            return analysis

    async def analyze_many(self, urls: Iterable[str]) -> List[SiteAnalysis]:
        """Analyse ``urls`` in sequential batches; results follow input order."""
        url_list = list(urls)
        if not url_list:
            raise InvalidInputError("URL batch must not be empty")

        batch_size = self.config.analyzer.batch_size
        semaphore = asyncio.Semaphore(self.config.analyzer.max_concurrency)
        results: List[Optional[SiteAnalysis]] = [None] * len(url_list)

        async def run(index: int, url: str) -> None:
            async with semaphore:
                async with self.analyzer_factory() as analyzer:
                    results[index] = await analyzer.analyze(url)

        self.logger.info("batch_started", urls=len(url_list), batch_size=batch_size)
        for offset in range(0, len(url_list), batch_size):
            batch = url_list[offset : offset + batch_size]
            self.logger.debug("batch_running", offset=offset, size=len(batch))
            await asyncio.gather(*(run(offset + i, url) for i, url in enumerate(batch)))

        completed = [result for result in results if result is not None]
        self.logger.info(
            "batch_completed", urls=len(completed), failed=sum(1 for r in completed if r.error_log)
        )
        return completed

    async def validate(self, url: str) -> ValidationResult:
        """Check the URL is well formed and answers a reachability probe."""
        problem = check_url_format(url)
        if problem is not None:
            return ValidationResult(is_valid=False, error_message=problem)
        async with self:
            try:
                probe = await self.http_client.probe(url.strip())
            except (FetchError, asyncio.TimeoutError) as e:
                return ValidationResult(is_valid=False, error_message=str(e) or "Accessibility check timed out")
        if probe.status == 0:
            return ValidationResult(is_valid=False, error_message="URL is not reachable")
        if not probe.ok:
            return ValidationResult(is_valid=False, error_message=f"URL is not accessible (HTTP {probe.status})")
        return ValidationResult(is_valid=True)

    async def get_video_details(self, url: str) -> VideoUrlDetail:
        """Probe a single video URL. Network problems mark it inaccessible."""
        if not isinstance(url, str) or not url.strip():
            raise InvalidInputError("Video URL must not be empty")
        video_url = url.strip()
        detected = DetectedVideo(url=video_url, embed_type=self._guess_embed_type(video_url))
        video = self.normalizer.normalize(detected)
        async with self:
            return await self._detail_for(video, ())

    def export(self, analysis: SiteAnalysis, format: Union[ExportFormat, str] = ExportFormat.JSON) -> bytes:
        return export_analysis(analysis, format)

    # --- Stages ---

    async def _fetch(self, url: str) -> str:
        try:
            return await self.http_client.fetch_html(url)
        except FetchError as e:
            raise AnalysisFailed(str(e)) from e
        except asyncio.TimeoutError as e:
            raise AnalysisFailed(f"Timed out fetching {url}") from e

    def _parse(self, html: str, url: str) -> ParsedPage:
        try:
            return self.parser.parse(html, url)
        except (RecursionError, ValueError, AssertionError) as e:
            raise AnalysisFailed(f"Failed to parse HTML from {url}: {e}") from e

    def _normalize(self, detected: Sequence[DetectedVideo]) -> List[Video]:
        videos: List[Video] = []
        for item in detected:
            try:
                videos.append(self.normalizer.normalize(item))
            except ValueError as e:
                self.logger.warning("video_normalization_skipped", url=item.url, error=str(e))
        return videos

    def _build_articles(self, detected: Sequence[DetectedArticle], videos: Sequence[Video]) -> List[Article]:
        threshold = self.config.analyzer.above_fold_threshold
        articles: List[Article] = []
        for item in detected:
            try:
                articles.append(
                    Article(
                        url=item.url,
                        title=item.title,
                        description=item.description,
                        author=item.author,
                        publication_date=item.publication_date,
                        modified_date=item.modified_date,
                        main_content=item.main_content,
                        video_positions=tuple(link_positions(item.video_references, videos, threshold)),
                    )
                )
            except ValueError as e:
                self.logger.warning("article_skipped", url=item.url, error=str(e))
        return articles

    async def _build_details(self, videos: Sequence[Video], articles: Sequence[Article]) -> List[VideoUrlDetail]:
        if not self.config.analyzer.probe_videos or not videos:
            return []
        semaphore = asyncio.Semaphore(self.config.analyzer.max_probe_concurrency)

        async def bounded(video: Video) -> VideoUrlDetail:
            async with semaphore:
                return await self._detail_for(video, articles)

        return list(await asyncio.gather(*(bounded(video) for video in videos)))

    async def _detail_for(self, video: Video, articles: Sequence[Article]) -> VideoUrlDetail:
        probe: Optional[ProbeResult]
        try:
            probe = await self.http_client.probe(video.url)
        except (FetchError, asyncio.TimeoutError) as e:
            self.logger.warning("video_probe_failed", url=video.url, error=str(e))
            probe = None

        lowered = video.url.lower()
        requires_auth = any(marker in lowered for marker in AUTH_MARKERS) or (
            probe is not None and probe.status in AUTH_STATUSES
        )
        accessibility = AccessibilityInfo(
            is_accessible=bool(probe and probe.ok),
            requires_authentication=requires_auth,
            supported_formats=(video.format,) if video.format is not VideoFormat.UNKNOWN else (),
            streaming_info=streaming_info_for(video, probe),
        )
        resolved = probe.final_url if probe is not None and probe.status else None
        return VideoUrlDetail(
            video=video,
            original_url=video.url,
            resolved_url=resolved,
            file_size=probe.content_length if probe is not None else None,
            accessibility=accessibility,
            related_articles=tuple(related_article_ids(video, articles)),
        )

    # --- Helpers ---

    def _guess_embed_type(self, url: str) -> EmbedType:
        lowered = url.lower()
        if "youtu.be" in lowered or any(host in lowered for host in self.config.analyzer.video_hosts):
            return EmbedType.IFRAME
        if VideoFormat.from_url(url) is not VideoFormat.UNKNOWN:
            return EmbedType.HTML5
        return EmbedType.UNKNOWN

    def _failed(self, url: str, start: float, stage: AnalysisStage, message: str) -> SiteAnalysis:
        self.logger.warning("analysis_failed", url=url, stage=stage.value, error=message)
        return SiteAnalysis(
            target_url=url,
            site_url=site_url(url),
            error_log=(message,),
            processing_time=time.perf_counter() - start,
        )
