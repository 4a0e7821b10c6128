"""
Shared test configuration for VidQuarry.

Fixtures provide a fast configuration, a real HTTP client for use with
aioresponses, in-memory collaborators from :mod:`vidquarry.testing` and a
handful of representative pages.
"""

import asyncio
from typing import AsyncGenerator
from unittest.mock import patch

import pytest
import pytest_asyncio

from vidquarry.config.config import Config
from vidquarry.crawler.http_client import HttpClient
from vidquarry.testing import RecordingLogger

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


# ============================================================================
# Core Test Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def cleanup_tasks() -> AsyncGenerator[None, None]:
    """Cancel any task a test leaves behind so that one test cannot hang the next."""
    tasks_before = asyncio.all_tasks()
    yield
    new_tasks = asyncio.all_tasks() - tasks_before

    for task in new_tasks:
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


@pytest.fixture
def test_config(tmp_path) -> Config:
    """Configuration with short timeouts and backoff for fast tests."""
    config = Config()
    config.crawler.max_retries = 2
    config.crawler.backoff_base_seconds = 0.01
    config.crawler.timeout = 5.0
    config.crawler.probe_timeout = 2.0
    config.crawler.user_agent = "TestBot/1.0"
    config.export.output_dir = tmp_path / "reports"
    return config


@pytest_asyncio.fixture
async def http_client(test_config) -> AsyncGenerator[HttpClient, None]:
    """Initialized HTTP client; pair with ``aioresponses`` to stub the network."""
    async with HttpClient(test_config) as client:
        yield client


@pytest.fixture
def deterministic_jitter():
    """Make backoff jitter deterministic for testing."""
    jitter_values = [1.0, 1.1, 0.9, 1.05, 0.95]
    jitter_index = 0

    def mock_uniform(a, b):
        nonlocal jitter_index
        value = jitter_values[jitter_index % len(jitter_values)]
        jitter_index += 1
        return value

    with patch("random.uniform", side_effect=mock_uniform):
        yield


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


# ============================================================================
# Sample Pages
# ============================================================================


@pytest.fixture
def article_page_html() -> str:
    """Blog page with two articles, each embedding videos in different ways."""
    return """<!DOCTYPE html>
<html>
<head>
    <title>Video Blog</title>
    <meta name="description" content="Videos about cooking">
    <meta name="author" content="Site Editors">
</head>
<body>
    <article id="pasta">
        <h2><a href="/posts/pasta">Making Pasta</a></h2>
        <span class="author">By Jane Cook</span>
        <time datetime="2024-03-05T10:00:00Z">March 5</time>
        <p>First you need flour.</p>
        <figure>
            <video poster="/img/pasta.jpg" width="1280" height="720" data-track="abc">
                <source src="/media/pasta.mp4" type="video/mp4">
            </video>
            <figcaption>Rolling the dough</figcaption>
        </figure>
        <p>Then you boil water.</p>
    </article>
    <article id="soup">
        <h2>Tomato Soup</h2>
        <p>Posted on 04/15/2024</p>
        <iframe src="https://www.youtube.com/embed/abc123" width="560" height="315"></iframe>
        <p>Serve hot.</p>
    </article>
</body>
</html>"""


@pytest.fixture
def plain_page_html() -> str:
    """Page without any article-like container."""
    return """<html>
<head><title>Plain Page</title></head>
<body>
    <h1>Welcome</h1>
    <p>Intro text.</p>
    <video src="clip.webm"></video>
</body>
</html>"""
