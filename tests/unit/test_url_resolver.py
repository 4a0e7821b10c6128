"""Tests for URL resolution helpers."""

import pytest

from vidquarry.parser.url_resolver import host_of, resolve_url, site_url

BASE = "https://x.com/blog/page"


@pytest.mark.unit
class TestResolveUrl:
    @pytest.mark.parametrize(
        "url",
        ["https://cdn.example.com/a.mp4", "http://cdn.example.com/a.mp4", "HTTPS://CDN.example.com/a.mp4"],
    )
    def test_absolute_urls_pass_through(self, url):
        assert resolve_url(url, BASE) == url

    def test_protocol_relative_gets_https(self):
        assert resolve_url("//cdn.example.com/a.mp4", BASE) == "https://cdn.example.com/a.mp4"

    def test_root_relative_joins_origin(self):
        assert resolve_url("/media/a.mp4", BASE) == "https://x.com/media/a.mp4"

    def test_path_relative_resolves_against_base_path(self):
        assert resolve_url("a.mp4", BASE) == "https://x.com/blog/a.mp4"
        assert resolve_url("../a.mp4", "https://x.com/blog/posts/1") == "https://x.com/blog/a.mp4"

    def test_unparseable_base_returns_input(self):
        assert resolve_url("a.mp4", "not a url") == "a.mp4"
        assert resolve_url("/a.mp4", "") == "/a.mp4"

    def test_blank_input_is_returned(self):
        assert resolve_url("", BASE) == ""

    def test_whitespace_is_trimmed(self):
        assert resolve_url("  /a.mp4 ", BASE) == "https://x.com/a.mp4"

    @pytest.mark.parametrize("url", ["https://a.com/v.mp4", "//a.com/v.mp4", "/v.mp4", "v.mp4"])
    def test_resolution_is_idempotent(self, url):
        once = resolve_url(url, BASE)
        assert resolve_url(once, BASE) == once


@pytest.mark.unit
class TestSiteUrl:
    def test_scheme_and_host(self):
        assert site_url("https://x.com/page?q=1#frag") == "https://x.com"

    def test_port_is_kept(self):
        assert site_url("http://localhost:8080/a") == "http://localhost:8080"

    def test_raw_string_without_host(self):
        assert site_url("not-a-url") == "not-a-url"


@pytest.mark.unit
def test_host_of():
    assert host_of("https://WWW.Example.com/a") == "www.example.com"
    assert host_of("video.mp4") is None
