"""
In-memory collaborators for exercising the analyzer without a network.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from vidquarry.detector.models import ParsedPage
from vidquarry.exceptions import FetchError
from vidquarry.protocols import ProbeResult

PageResponse = Union[str, BaseException]


@dataclass
class ConcurrencyTracker:
    """Counts overlapping requests, possibly across several client instances."""

    in_flight: int = 0
    max_in_flight: int = 0
    started: List[str] = field(default_factory=list)
    finished: List[str] = field(default_factory=list)

    def enter(self, url: str) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.append(url)

    def leave(self, url: str) -> None:
        self.in_flight -= 1
        self.finished.append(url)


class StaticHttpClient:
    """Serves canned pages and probe results.

    ``pages`` maps a URL to its HTML or to an exception raised by
    ``fetch_html``. Unknown URLs raise ``FetchError`` with status 404.
    ``delay`` (seconds, or a per-URL mapping) holds each fetch open so that
    concurrency can be observed through ``tracker``. ``probe_delay`` and
    ``probe_tracker`` do the same for accessibility probes.
    """

    def __init__(
        self,
        pages: Optional[Mapping[str, PageResponse]] = None,
        *,
        probes: Optional[Mapping[str, Union[int, ProbeResult]]] = None,
        default_probe_status: int = 200,
        delay: Union[float, Mapping[str, float]] = 0.0,
        tracker: Optional[ConcurrencyTracker] = None,
        probe_delay: float = 0.0,
        probe_tracker: Optional[ConcurrencyTracker] = None,
    ) -> None:
        self.pages: Dict[str, PageResponse] = dict(pages or {})
        self.probes: Dict[str, Union[int, ProbeResult]] = dict(probes or {})
        self.default_probe_status = default_probe_status
        self.delay = delay
        self.tracker = tracker or ConcurrencyTracker()
        self.probe_delay = probe_delay
        self.probe_tracker = probe_tracker or ConcurrencyTracker()
        self.fetched: List[str] = []
        self.probed: List[str] = []
        self.initialized = False
        self.closed = False

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self) -> "StaticHttpClient":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _delay_for(self, url: str) -> float:
        if isinstance(self.delay, Mapping):
            return float(self.delay.get(url, 0.0))
        return float(self.delay)

    async def fetch_html(self, url: str) -> str:
        self.fetched.append(url)
        self.tracker.enter(url)
        try:
            delay = self._delay_for(url)
            if delay:
                await asyncio.sleep(delay)
            response = self.pages.get(url)
            if response is None:
                raise FetchError(url, "Not Found", status=404)
            if isinstance(response, BaseException):
                raise response
            return response
        finally:
            self.tracker.leave(url)

    async def probe(self, url: str) -> ProbeResult:
        self.probed.append(url)
        self.probe_tracker.enter(url)
        try:
            if self.probe_delay:
                await asyncio.sleep(self.probe_delay)
        finally:
            self.probe_tracker.leave(url)
        canned = self.probes.get(url, self.default_probe_status)
        if isinstance(canned, ProbeResult):
            return canned
        return ProbeResult(url=url, status=canned, final_url=url)

    async def check_accessibility(self, url: str) -> bool:
        return (await self.probe(url)).ok


class StaticPageParser:
    """HTMLParsing double that returns a fixed ParsedPage."""

    def __init__(self, page: ParsedPage) -> None:
        self.page = page
        self.calls: List[Tuple[str, str]] = []

    def parse(self, html: str, base_url: str) -> ParsedPage:
        self.calls.append((html, base_url))
        return self.page


class RecordingLogger:
    """Logger double keeping every event as ``(level, event, fields)``."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, str, Dict[str, Any]]] = []

    def _record(self, level: str, event: str, **kw: Any) -> None:
        self.records.append((level, event, kw))

    def debug(self, event: str, **kw: Any) -> None:
        self._record("debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._record("info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._record("warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._record("error", event, **kw)

    def bind(self, **kw: Any) -> "RecordingLogger":
        return self

    def events(self, level: Optional[str] = None) -> List[str]:
        return [event for lvl, event, _ in self.records if level is None or lvl == level]


__all__ = [
    "ConcurrencyTracker",
    "RecordingLogger",
    "StaticHttpClient",
    "StaticPageParser",
]
