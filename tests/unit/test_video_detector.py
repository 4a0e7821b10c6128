"""Tests for the four video detection strategies and their merge."""

import pytest

from vidquarry.detector.models import ElementPosition
from vidquarry.detector.video_detector import IFRAME_CONTEXT, JAVASCRIPT_CONTEXT, VideoDetector
from vidquarry.parser.document import HTMLDocument
from vidquarry.protocols import EmbedType, video_id_for

PAGE = "https://x.com/page"


@pytest.fixture
def detector(recording_logger):
    return VideoDetector(logger=recording_logger)


@pytest.mark.unit
class TestHtml5Detection:
    def test_single_source_child(self, detector):
        videos = detector.detect_videos('<video><source src="a.mp4"></video>', PAGE)
        assert len(videos) == 1
        assert videos[0].url == "https://x.com/a.mp4"
        assert videos[0].embed_type is EmbedType.HTML5
        assert videos[0].video_id == video_id_for("https://x.com/a.mp4")

    def test_every_source_and_direct_src(self, detector):
        html = """<video src="/direct.mp4" poster="p.jpg" width="640" height="360">
            <source src="/one.webm" type="video/webm">
            <source src="  ">
            <source src="/two.mp4" type="video/mp4">
        </video>"""
        videos = detector.detect_videos(html, PAGE)
        assert [v.url for v in videos] == [
            "https://x.com/one.webm",
            "https://x.com/two.mp4",
            "https://x.com/direct.mp4",
        ]
        assert all(v.context == "p.jpg" for v in videos)
        # Source attributes are merged over the video attributes
        assert videos[0].attributes["type"] == "video/webm"
        assert videos[0].attributes["width"] == "640"
        assert "type" not in videos[2].attributes

    def test_duplicate_video_tags_collapse(self, detector):
        html = '<video src="a.mp4"></video><video src="a.mp4"></video>'
        videos = detector.detect_videos(html, PAGE)
        assert len(videos) == 1
        assert "duplicate_video_skipped" in detector.logger.events("debug")

    def test_position_and_paths(self, detector):
        html = '<html><body>\n<div>\n  <video src="a.mp4"></video></div></body></html>'
        (video,) = detector.detect_videos(html, PAGE)
        assert video.position == ElementPosition(3, 2)
        assert video.xpath == "/html[1]/body[1]/div[1]/video[1]"
        assert video.parent_path == "/html[1]/body[1]/div[1]"


@pytest.mark.unit
class TestIframeDetection:
    def test_youtube_iframe_url_unchanged(self, detector):
        videos = detector.detect_videos('<iframe src="https://www.youtube.com/embed/abc"></iframe>', PAGE)
        assert len(videos) == 1
        assert videos[0].url == "https://www.youtube.com/embed/abc"
        assert videos[0].embed_type is EmbedType.IFRAME
        assert videos[0].context is None

    def test_width_sets_context(self, detector):
        (video,) = detector.detect_videos('<iframe src="//player.VIMEO.com/video/1" width="640"></iframe>', PAGE)
        assert video.url == "https://player.VIMEO.com/video/1"
        assert video.context == IFRAME_CONTEXT

    def test_non_video_hosts_ignored(self, detector):
        assert detector.detect_videos('<iframe src="https://maps.example.com/embed"></iframe><iframe></iframe>', PAGE) == []

    def test_configurable_hosts(self, recording_logger):
        detector = VideoDetector(video_hosts=["Players.Example"], logger=recording_logger)
        html = '<iframe src="https://players.example/v/1"></iframe><iframe src="https://youtube.com/embed/x"></iframe>'
        assert [v.url for v in detector.detect_videos(html, PAGE)] == ["https://players.example/v/1"]


@pytest.mark.unit
class TestEmbedDetection:
    def test_embed_with_keyword(self, detector):
        html = """<embed src="/flash/video.swf" type="application/x-shockwave-flash">
                  <embed src="/flash/game.swf">"""
        (video,) = detector.detect_videos(html, PAGE)
        assert video.url == "https://x.com/flash/video.swf"
        assert video.embed_type is EmbedType.EMBED
        assert video.context == "application/x-shockwave-flash"

    def test_object_data(self, detector):
        (video,) = detector.detect_videos('<object data="https://vimeo.com/moogaloop.swf?clip_id=1"></object>', PAGE)
        assert video.embed_type is EmbedType.OBJECT
        assert video.context is None


@pytest.mark.unit
class TestJavascriptDetection:
    def test_inline_script_patterns(self, detector):
        html = """<script>
            player.setup({src: "/v/clip.mp4"});
            var VIDEOURL = 'https://cdn.example.com/stream.webm';
        </script>"""
        videos = detector.detect_videos(html, PAGE)
        assert {v.url for v in videos} == {"https://x.com/v/clip.mp4", "https://cdn.example.com/stream.webm"}
        assert all(v.embed_type is EmbedType.JAVASCRIPT for v in videos)
        assert all(v.context == JAVASCRIPT_CONTEXT for v in videos)

    def test_video_source_assignment(self, detector):
        (video,) = detector.detect_videos("<script>video_source = \"/media/intro\";</script>", PAGE)
        assert video.url == "https://x.com/media/intro"

    def test_external_scripts_skipped(self, detector):
        assert detector.detect_videos('<script src="/app.js">videoUrl = "a.mp4"</script>', PAGE) == []

    def test_empty_assignment_skipped(self, detector):
        assert detector.detect_videos('<script>videoUrl = "";</script>', PAGE) == []


@pytest.mark.unit
class TestMerge:
    def test_strategy_order_and_reindexing(self, detector):
        html = """
            <script>videoUrl = "/js.mp4";</script>
            <embed src="/video.swf">
            <iframe src="https://youtube.com/embed/1"></iframe>
            <video src="/native.mp4"></video>
        """
        videos = detector.detect_videos(html, PAGE)
        assert [v.embed_type for v in videos] == [
            EmbedType.HTML5,
            EmbedType.IFRAME,
            EmbedType.EMBED,
            EmbedType.JAVASCRIPT,
        ]
        assert [v.element_index for v in videos] == [0, 1, 2, 3]

    def test_first_strategy_wins_on_duplicates(self, detector):
        html = '<video src="/a.mp4"></video><script>videoUrl = "https://x.com/a.mp4";</script>'
        (video,) = detector.detect_videos(html, PAGE)
        assert video.embed_type is EmbedType.HTML5

    def test_individual_strategies_are_callable(self, detector):
        document = HTMLDocument.parse('<video src="a.mp4"></video><iframe src="https://youtube.com/embed/1"></iframe>')
        assert len(detector.detect_html5(document, PAGE)) == 1
        assert len(detector.detect_iframes(document, PAGE)) == 1
        assert detector.detect_embeds(document, PAGE) == []
        assert detector.detect_javascript(document, PAGE) == []

    def test_no_videos(self, detector):
        assert detector.detect_videos("<p>Nothing here</p>", PAGE) == []
        assert detector.detect_videos("", PAGE) == []
