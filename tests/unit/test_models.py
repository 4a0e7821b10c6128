"""Tests for the public data model and exception types."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from vidquarry.exceptions import FetchError, InvalidInputError, VidQuarryError
from vidquarry.protocols import (
    SCHEMA_VERSION,
    ProbeResult,
    SiteAnalysis,
    Video,
    VideoFormat,
    video_id_for,
)


@pytest.mark.unit
class TestVideo:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://x.com/a.mp4", VideoFormat.MP4),
            ("https://x.com/A.WEBM?token=1", VideoFormat.WEBM),
            ("https://x.com/movie.mkv#t=10", VideoFormat.MKV),
            ("https://x.com/player.php", VideoFormat.UNKNOWN),
            ("https://youtube.com/embed/abc", VideoFormat.UNKNOWN),
            ("clip.mov", VideoFormat.MOV),
        ],
    )
    def test_format_from_extension(self, url, expected):
        assert Video(url=url, hosting_source="x").format is expected

    def test_format_cannot_be_overridden(self):
        video = Video(url="https://x.com/a.webm", format=VideoFormat.MP4, hosting_source="x.com")
        assert video.format is VideoFormat.WEBM

    def test_deterministic_id(self):
        first = Video(url="https://x.com/a.mp4", hosting_source="x.com")
        second = Video(url="https://x.com/a.mp4", hosting_source="x.com")
        assert first.id == second.id == video_id_for("https://x.com/a.mp4")

    def test_explicit_id_kept(self):
        explicit = uuid4()
        assert Video(id=explicit, url="https://x.com/a.mp4", hosting_source="x.com").id == explicit

    def test_empty_url_rejected(self):
        with pytest.raises(ValidationError):
            Video(url="", hosting_source="x.com")

    def test_frozen(self):
        video = Video(url="https://x.com/a.mp4", hosting_source="x.com")
        with pytest.raises(ValidationError):
            video.url = "https://x.com/b.mp4"


@pytest.mark.unit
class TestSiteAnalysis:
    def test_defaults(self):
        analysis = SiteAnalysis(target_url="https://x.com/a", site_url="https://x.com")
        assert analysis.schema_version == SCHEMA_VERSION
        assert analysis.videos == ()
        assert not analysis.failed

    def test_failed(self):
        analysis = SiteAnalysis(target_url="bad", site_url="bad", error_log=("Validation failed",))
        assert analysis.failed


@pytest.mark.unit
def test_probe_result_ok():
    assert ProbeResult(url="u", status=204, final_url="u").ok
    assert not ProbeResult(url="u", status=0, final_url="u").ok
    assert not ProbeResult(url="u", status=301, final_url="u").ok


@pytest.mark.unit
class TestExceptions:
    def test_hierarchy(self):
        assert issubclass(InvalidInputError, VidQuarryError)
        assert issubclass(InvalidInputError, ValueError)
        assert issubclass(FetchError, VidQuarryError)

    def test_fetch_error_messages(self):
        http = FetchError("https://x.com", "Not Found", status=404)
        network = FetchError("https://x.com", "connection refused")
        assert str(http) == "HTTP error with status code 404 for https://x.com: Not Found"
        assert str(network) == "Network error for https://x.com: connection refused"
        assert http.status == 404
        assert network.status is None
