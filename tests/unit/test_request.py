"""
Unit tests for HTTP request serialization.
"""

from retrieve.http.headers import Headers
from retrieve.http.request import build_headers, build_request, encode_headers, escape
from retrieve.uri import URI


def head_lines(request: bytes) -> list:
    return request.split(b"\r\n\r\n", 1)[0].split(b"\r\n")


class TestEscape:
    """Tests for cookie escaping."""

    def test_plain_value_unchanged(self):
        """Test that letters, digits and _.-~ are left alone."""
        assert escape("abc_1.2-3~") == "abc_1.2-3~"

    def test_space_becomes_plus(self):
        """Test that spaces are written as '+'."""
        assert escape("a b") == "a+b"

    def test_reserved_characters_escaped(self):
        """Test that separators are percent-escaped in uppercase hex."""
        assert escape("a/b=c;d") == "a%2Fb%3Dc%3Bd"

    def test_non_string_values(self):
        """Test that numbers are converted before escaping."""
        assert escape(42) == "42"


class TestBuildRequest:
    """Tests for build_request()."""

    def test_default_get(self):
        """Test the request line and default header order."""
        uri = URI.parse("http://Example.com/")
        request = build_request("get", uri, user_agent="retrieve-test")

        assert head_lines(request) == [
            b"GET / HTTP/1.1",
            b"Host: example.com",
            b"Content-Length: 0",
            b"User-Agent: retrieve-test",
            b"Connection: close",
        ]
        assert request.endswith(b"\r\n\r\n")

    def test_request_target_keeps_query_drops_fragment(self):
        """Test that the fragment never goes on the wire."""
        uri = URI.parse("http://example.com/search?q=python#results")
        request = build_request("GET", uri)

        assert head_lines(request)[0] == b"GET /search?q=python HTTP/1.1"

    def test_keep_alive(self):
        """Test the Connection header for persistent connections."""
        uri = URI.parse("http://example.com/")
        request = build_request("GET", uri, keep_alive=True)

        assert b"Connection: Keep-Alive" in head_lines(request)

    def test_non_default_port_in_host(self):
        """Test that Host carries the port only when it isn't 80."""
        request = build_request("GET", URI.parse("http://example.com:8080/"))
        assert b"Host: example.com:8080" in head_lines(request)

        request = build_request("GET", URI.parse("http://example.com:80/"))
        assert b"Host: example.com" in head_lines(request)

    def test_body_sets_content_length(self):
        """Test that the body is appended and measured."""
        uri = URI.parse("http://example.com/submit")
        request = build_request("POST", uri, body=b"name=value")

        assert b"Content-Length: 10" in head_lines(request)
        assert request.endswith(b"\r\n\r\nname=value")

    def test_caller_headers_follow_defaults(self):
        """Test that caller headers come after defaults and may override them."""
        uri = URI.parse("http://example.com/")
        request = build_request(
            "GET",
            uri,
            headers={"Accept": "text/html", "connection": "upgrade"},
            user_agent="retrieve-test",
        )
        lines = head_lines(request)

        assert lines[-1] == b"Accept: text/html"
        assert b"connection: upgrade" in lines
        assert b"Connection: close" not in lines

    def test_caller_cannot_override_host_or_length(self):
        """Test that Host and Content-Length are always computed."""
        uri = URI.parse("http://example.com/")
        request = build_request(
            "POST", uri, headers={"Host": "evil.test", "Content-Length": "99"}, body=b"abc"
        )
        lines = head_lines(request)

        assert b"Host: example.com" in lines
        assert b"Content-Length: 3" in lines
        assert b"Host: evil.test" not in lines


class TestCookies:
    """Tests for Cookie lines."""

    def test_cookie_line_per_pair(self):
        """Test one Cookie line per name/value pair, escaped."""
        uri = URI.parse("http://example.com/")
        request = build_request(
            "GET", uri, cookies={"foo": ["bar", "baz"], "one": "two", "path": "a/b c"}
        )
        cookie_lines = [line for line in head_lines(request) if line.startswith(b"Cookie:")]

        assert cookie_lines == [
            b"Cookie: foo=bar",
            b"Cookie: foo=baz",
            b"Cookie: one=two",
            b"Cookie: path=a%2Fb+c",
        ]

    def test_cookie_header_and_cookies_combined(self):
        """Test that an explicit Cookie header comes before the cookies option."""
        uri = URI.parse("http://example.com/")
        headers = build_headers(uri, headers={"Cookie": "raw=1"}, cookies={"a": "b"})

        assert headers.get_all("Cookie") == ["raw=1", "a=b"]


class TestEncodeHeaders:
    """Tests for encode_headers()."""

    def test_multiple_values_and_none(self):
        """Test that lists expand and None values are skipped."""
        headers = Headers()
        headers["Accept"] = ["text/html", "text/plain"]
        headers["X-Skip"] = None
        headers.add("Via", "a")
        headers.add("Via", "b")

        assert encode_headers(headers) == (
            b"Accept: text/html\r\n"
            b"Accept: text/plain\r\n"
            b"Via: a\r\n"
            b"Via: b\r\n"
        )
