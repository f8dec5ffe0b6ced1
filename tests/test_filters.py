"""
Tests for HTTP header filtering utilities.
"""

from ipfs_vhosts.filters import (
    HOP_BY_HOP_HEADERS,
    REQUEST_EXCLUDED_HEADERS,
    RESPONSE_EXCLUDED_HEADERS,
    filter_headers,
    filter_request_headers,
    filter_response_headers,
)


class TestHeaderSets:
    """Tests for the excluded header sets."""

    def test_hop_by_hop_headers_defined(self):
        assert "connection" in HOP_BY_HOP_HEADERS
        assert "transfer-encoding" in HOP_BY_HOP_HEADERS
        assert "content-length" in HOP_BY_HOP_HEADERS

    def test_request_exclusions(self):
        assert HOP_BY_HOP_HEADERS.issubset(REQUEST_EXCLUDED_HEADERS)
        assert "host" in REQUEST_EXCLUDED_HEADERS

    def test_response_exclusions(self):
        assert HOP_BY_HOP_HEADERS.issubset(RESPONSE_EXCLUDED_HEADERS)
        assert "content-encoding" in RESPONSE_EXCLUDED_HEADERS
        assert "host" not in RESPONSE_EXCLUDED_HEADERS


class TestFilterHeaders:
    """Tests for the filter functions."""

    def test_filter_case_insensitive(self):
        headers = {
            "Connection": "keep-alive",
            "TRANSFER-ENCODING": "chunked",
            "Content-Type": "application/json",
        }
        assert filter_headers(headers, HOP_BY_HOP_HEADERS) == {"Content-Type": "application/json"}

    def test_request_headers_drop_host(self):
        headers = {"host": "hello.example.com", "accept": "text/html", "keep-alive": "timeout=5"}
        assert filter_request_headers(headers) == {"accept": "text/html"}

    def test_response_headers_drop_encoding(self):
        headers = {
            "content-type": "text/html",
            "content-encoding": "gzip",
            "content-length": "120",
            "etag": '"bafy"',
        }
        assert filter_response_headers(headers) == {"content-type": "text/html", "etag": '"bafy"'}

    def test_empty(self):
        assert filter_request_headers({}) == {}
