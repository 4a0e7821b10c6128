"""Tests for DetectedVideo to Video normalization."""

import pytest

from vidquarry.analyzer.normalizer import MetadataNormalizer, parse_duration, resolution_of
from vidquarry.detector.models import DetectedVideo, ElementPosition
from vidquarry.protocols import EmbedType, VideoFormat, video_id_for


@pytest.fixture
def normalizer():
    return MetadataNormalizer()


@pytest.fixture
def detected():
    return DetectedVideo(
        url="https://x.com/media/a.MP4",
        embed_type=EmbedType.HTML5,
        attributes={
            "src": "a.MP4",
            "width": "640",
            "height": "360",
            "duration": "12.5",
            "poster": "p.jpg",
            "title": "Clip",
            "data-id": "7",
        },
        context="p.jpg",
        position=ElementPosition(3, 4),
        element_index=1,
        parent_path="/html[1]/body[1]",
        xpath="/html[1]/body[1]/video[1]",
    )


@pytest.mark.unit
class TestMetadataNormalizer:
    def test_typed_fields(self, normalizer, detected):
        video = normalizer.normalize(detected)
        assert video.id == video_id_for("https://x.com/media/a.MP4")
        assert video.format is VideoFormat.MP4
        assert video.resolution == "640x360"
        assert video.duration == 12.5
        assert video.thumbnail_url == "p.jpg"
        assert video.title == "Clip"
        assert video.hosting_source == "x.com"
        assert video.embed_type is EmbedType.HTML5

    def test_metadata(self, normalizer, detected):
        metadata = normalizer.normalize(detected).metadata
        assert metadata == {
            "position": "3:4",
            "videoId": str(detected.video_id),
            "elementIndex": "1",
            "context": "p.jpg",
            "parentPath": "/html[1]/body[1]",
            "xpath": "/html[1]/body[1]/video[1]",
            "data-id": "7",
        }

    def test_deterministic_apart_from_timestamp(self, normalizer, detected):
        first = normalizer.normalize(detected).model_dump(exclude={"discovered_at"})
        second = normalizer.normalize(detected).model_dump(exclude={"discovered_at"})
        assert first == second

    def test_scheme_less_url_keeps_raw_host(self, normalizer):
        video = normalizer.normalize(DetectedVideo(url="video.mp4", embed_type=EmbedType.JAVASCRIPT))
        assert video.hosting_source == "video.mp4"
        assert video.format is VideoFormat.MP4

    def test_unknown_format(self, normalizer):
        video = normalizer.normalize(DetectedVideo(url="https://youtube.com/embed/x", embed_type=EmbedType.IFRAME))
        assert video.format is VideoFormat.UNKNOWN
        assert video.resolution is None
        assert video.thumbnail_url is None

    def test_thumbnail_attribute_fallback(self, normalizer):
        detected = DetectedVideo(url="https://x.com/a.mp4", embed_type=EmbedType.HTML5, attributes={"thumbnail": "t.png"})
        assert normalizer.normalize(detected).thumbnail_url == "t.png"


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw, expected",
    [("10", 10.0), (" 2.5 ", 2.5), ("abc", None), ("inf", None), ("nan", None), ("-1", None), (None, None)],
)
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


@pytest.mark.unit
def test_resolution_of():
    assert resolution_of({"width": "1920", "height": "1080"}) == "1920x1080"
    assert resolution_of({"width": "1920", "resolution": "720p"}) == "720p"
    assert resolution_of({}) is None


@pytest.mark.unit
def test_blank_detected_url_rejected():
    with pytest.raises(ValueError):
        DetectedVideo(url="  ", embed_type=EmbedType.HTML5)
