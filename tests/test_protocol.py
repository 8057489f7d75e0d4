"""
Tests for Gemini protocol primitives.
"""

import pytest

from src.gemclient.exceptions import NavigationError, ProtocolError
from src.gemclient.protocol import (
    DEFAULT_PORT, MediaType, Resource, StatusClass, TextPage, classify_status, status_meta,
)


pytestmark = pytest.mark.unit


class TestStatusClassification:
    """Test cases for status line classification."""

    @pytest.mark.parametrize("status_line,expected", [
        ("10 Enter search term", StatusClass.INPUT),
        ("11 Password", StatusClass.INPUT),
        ("20 text/gemini", StatusClass.SUCCESS),
        ("30 gemini://dest.example/", StatusClass.REDIRECT),
        ("31 gemini://dest.example/", StatusClass.REDIRECT),
        ("44 Slow down", StatusClass.TEMPORARY_FAILURE),
        ("51 Not found", StatusClass.PERMANENT_FAILURE),
        ("60 Certificate required", StatusClass.CERTIFICATE_REQUIRED),
        ("70 Unknown", StatusClass.OTHER),
        ("hello", StatusClass.OTHER),
        ("2 text/gemini", StatusClass.OTHER),
        ("", StatusClass.OTHER),
    ])
    def test_classify_status(self, status_line, expected):
        """Test classification by the first digit of the status code."""
        assert classify_status(status_line) is expected

    def test_status_meta(self):
        """Test extraction of the metadata part."""
        assert status_meta("10 Enter search term") == "Enter search term"
        assert status_meta("20 text/gemini; lang=en") == "text/gemini; lang=en"
        assert status_meta("20") == ""


class TestMediaType:
    """Test cases for media type parsing."""

    def test_parse_simple(self):
        """Test parsing type/subtype."""
        media_type = MediaType.parse("text/gemini")
        assert media_type.type == "text"
        assert media_type.subtype == "gemini"
        assert media_type.is_gemtext

    def test_parse_discards_params(self):
        """Test that parameters are ignored."""
        assert MediaType.parse("text/gemini; charset=utf-8; lang=en") == MediaType("text", "gemini")

    def test_parse_lowercases(self):
        """Test case-insensitive types."""
        assert MediaType.parse("Image/PNG") == MediaType("image", "png")

    def test_text_but_not_gemtext(self):
        """Test text/plain."""
        media_type = MediaType.parse("text/plain")
        assert media_type.is_text
        assert not media_type.is_gemtext

    @pytest.mark.parametrize("meta", ["", "text", "text/", "/gemini", "a/b/c", "text gemini"])
    def test_parse_malformed(self, meta):
        """Test malformed media types."""
        with pytest.raises(ProtocolError):
            MediaType.parse(meta)


class TestResource:
    """Test cases for resource references."""

    def test_parse_absolute(self):
        """Test parsing a full URL."""
        resource = Resource.parse("gemini://Example.org:1966/path/page.gmi?q=1")
        assert resource.scheme == "gemini"
        assert resource.host == "example.org"
        assert resource.port == 1966
        assert resource.path == "/path/page.gmi"
        assert resource.query == "q=1"
        assert resource.is_absolute

    def test_default_port(self):
        """Test the well-known port fallback."""
        resource = Resource.parse("gemini://example.org/")
        assert resource.port is None
        assert resource.address == ("example.org", DEFAULT_PORT)

    def test_non_positive_port_falls_back(self):
        """Test that a zero port uses the well-known port."""
        resource = Resource(scheme="gemini", host="example.org", port=0, path="/")
        assert resource.effective_port == DEFAULT_PORT

    def test_relative_reference(self):
        """Test that a reference without host is relative."""
        resource = Resource.parse("docs/index.gmi")
        assert not resource.is_absolute
        assert resource.scheme == ""

    def test_invalid_port(self):
        """Test a non-numeric port."""
        with pytest.raises(NavigationError):
            Resource.parse("gemini://example.org:abc/")

    def test_url_omits_default_port(self):
        """Test absolute string form."""
        assert Resource.parse("gemini://example.org:1965/a").url == "gemini://example.org/a"
        assert Resource.parse("gemini://example.org:1966/a").url == "gemini://example.org:1966/a"

    def test_url_adds_root_path(self):
        """Test that an empty path becomes '/'."""
        assert Resource.parse("gemini://example.org").url == "gemini://example.org/"

    def test_join_relative(self):
        """Test relative reference resolution."""
        base = Resource.parse("gemini://example.org/docs/index.gmi")
        assert base.join("faq.gmi").url == "gemini://example.org/docs/faq.gmi"
        assert base.join("/top.gmi").url == "gemini://example.org/top.gmi"
        assert base.join("../up.gmi").url == "gemini://example.org/up.gmi"
        assert base.join("?search").url == "gemini://example.org/docs/index.gmi?search"

    def test_join_keeps_port(self):
        """Test that relative resolution keeps a non-default port."""
        base = Resource.parse("gemini://example.org:1966/a/b.gmi")
        assert base.join("c.gmi").address == ("example.org", 1966)

    def test_join_from_foreign_base_rejected(self):
        """Test that only gemini resources can be a base."""
        base = Resource(scheme="file", path="/tmp/page.gmi")
        with pytest.raises(NavigationError):
            base.join("other.gmi")

    def test_with_query_encodes(self):
        """Test query replacement."""
        base = Resource.parse("gemini://example.org/search?old")
        resource = base.with_query("hello world/?")
        assert resource.query == "hello%20world/%3F"
        assert resource.url == "gemini://example.org/search?hello%20world/%3F"
        assert base.query == "old"

    def test_equality(self):
        """Test resource equality through the normalised URL."""
        assert Resource.parse("gemini://example.org") == Resource.parse("gemini://example.org:1965/")
        assert Resource.parse("gemini://a.org/") != Resource.parse("gemini://b.org/")

    def test_file_url(self):
        """Test the form of a local file resource."""
        assert Resource(scheme="file", path="/tmp/x.gmi").url == "file:///tmp/x.gmi"


class TestTextPage:
    """Test cases for TextPage."""

    def test_status_and_body(self):
        """Test splitting into status line and body."""
        page = TextPage(["20 text/gemini", "# Title", "body"])
        assert page.status_line == "20 text/gemini"
        assert page.body == ["# Title", "body"]
        assert page.status_class is StatusClass.SUCCESS

    def test_empty_page(self):
        """Test a page with no lines at all."""
        page = TextPage()
        assert page.lines == []
        assert page.status_line == ""
        assert page.body == []
        assert page.status_class is StatusClass.OTHER
