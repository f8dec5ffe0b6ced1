"""
Tests for host- and path-based vhost resolution.
"""

import pytest

from conftest import ALEXA_CID, HELLO_CID
from ipfs_vhosts.resolver import is_ip_address, resolve_from_host, resolve_from_path, split_host

SNAPSHOT = {"hello": HELLO_CID, "alexa": ALEXA_CID}


class TestSplitHost:
    """Tests for stripping ports from Host headers."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("hello.example.com", "hello.example.com"),
            ("hello.example.com:8080", "hello.example.com"),
            ("127.0.0.1:8080", "127.0.0.1"),
            ("[::1]:8080", "::1"),
            ("[::1]", "::1"),
            ("::1", "::1"),
        ],
    )
    def test_split_host(self, header, expected):
        assert split_host(header) == expected

    def test_is_ip_address(self):
        assert is_ip_address("127.0.0.1")
        assert is_ip_address("::1")
        assert not is_ip_address("localhost")
        assert not is_ip_address("hello.example.com")


class TestResolveFromHost:
    """Tests for resolve_from_host."""

    def test_leftmost_label_matches(self):
        assert resolve_from_host("hello.example.com", SNAPSHOT) == "hello"

    def test_port_is_ignored(self):
        assert resolve_from_host("alexa.example.com:8000", SNAPSHOT) == "alexa"

    def test_bare_name_matches(self):
        assert resolve_from_host("hello", SNAPSHOT) == "hello"

    def test_unknown_subdomain(self):
        assert resolve_from_host("www.example.com", SNAPSHOT) is None

    def test_only_leftmost_label_is_used(self):
        assert resolve_from_host("www.hello.example.com", SNAPSHOT) is None

    def test_label_match_is_case_sensitive(self):
        assert resolve_from_host("Hello.example.com", SNAPSHOT) is None

    @pytest.mark.parametrize("host", ["127.0.0.1:8080", "127.0.0.1", "[::1]:8080", "10.0.0.1"])
    def test_ip_literals_never_resolve(self, host):
        assert resolve_from_host(host, {"127": HELLO_CID, "10": HELLO_CID, **SNAPSHOT}) is None

    def test_empty_snapshot(self):
        assert resolve_from_host("hello.example.com", {}) is None

    @pytest.mark.parametrize("host", [None, ""])
    def test_missing_host(self, host):
        assert resolve_from_host(host, SNAPSHOT) is None


class TestResolveFromPath:
    """Tests for resolve_from_path."""

    @pytest.mark.parametrize("path", ["/hello", "/hello/", "/hello/index.html", "/hello/a/b.css"])
    def test_exact_and_prefix_matches(self, path):
        assert resolve_from_path(path, SNAPSHOT) == "hello"

    @pytest.mark.parametrize("path", ["/", "/hell", "/helloworld", "/hello.html", "/x/hello/"])
    def test_no_match(self, path):
        assert resolve_from_path(path, SNAPSHOT) is None

    def test_segment_boundary(self):
        assert resolve_from_path("/ab", {"a": HELLO_CID}) is None
        assert resolve_from_path("/a", {"a": HELLO_CID}) == "a"
        assert resolve_from_path("/a/b", {"a": HELLO_CID}) == "a"

    def test_empty_snapshot(self):
        assert resolve_from_path("/hello", {}) is None
