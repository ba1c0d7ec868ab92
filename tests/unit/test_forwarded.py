"""
Unit tests for the reverse-proxy aware client URL helper.
"""

import pytest

from webassets.http.forwarded import (
    client_url,
    split_host_port,
    url_combine,
    with_leading_slash,
    with_trailing_slash,
)


class TestPathHelpers:
    """Tests for the small path helpers."""

    def test_url_combine(self):
        assert url_combine("/apps/", "", "/ui/") == "apps/ui"
        assert url_combine(None, "ui") == "ui"
        assert url_combine() == ""

    def test_slashes(self):
        assert with_leading_slash("a/b") == "/a/b"
        assert with_leading_slash("/a") == "/a"
        assert with_trailing_slash("/a/b") == "/a/b/"
        assert with_trailing_slash("/") == "/"

    @pytest.mark.parametrize("value,expected", [
        ("example.com:8080", ("example.com", "8080")),
        ("example.com", ("example.com", None)),
        ("[::1]:8080", ("[::1]", "8080")),
        ("[::1]", ("[::1]", None)),
    ])
    def test_split_host_port(self, value, expected):
        assert split_host_port(value) == expected


class TestClientUrl:
    """Tests for client_url."""

    def test_plain_request(self, make_request):
        url = client_url(make_request("/app.js", headers={"Host": "example.com"}))

        assert url.base_href == "/"
        assert url.scheme == "http"
        assert url.host == "example.com"
        assert url.port == "80"
        assert url.original_uri == "http://example.com/app.js"

    def test_non_default_port_kept(self, make_request):
        url = client_url(make_request("/", headers={"Host": "localhost:8080"}))
        assert url.original_uri == "http://localhost:8080/"

    def test_scheme_default_port_without_host_port(self, make_request):
        url = client_url(make_request("/", headers={"Host": "localhost", "X-Forwarded-Proto": "https"}))
        assert url.port == "443"
        assert url.original_uri == "https://localhost/"

    def test_forwarded_headers(self, make_request):
        request = make_request("/app.js", query_string="v=1", headers={
            "Host": "internal:8080",
            "X-Forwarded-Proto": "https",
            "X-Forwarded-Host": "www.example.com",
            "X-Forwarded-Port": "443",
            "X-Forwarded-Prefix": "/shop",
        })
        url = client_url(request)

        assert url.scheme == "https"
        assert url.host == "www.example.com"
        assert url.base_href == "/shop"
        assert url.original_uri == "https://www.example.com/shop/app.js?v=1"

    def test_mount_path_in_base_href(self, make_request):
        request = make_request("/app.js", headers={"Host": "example.com"})
        request.path_base = "/ui"

        url = client_url(request)

        assert url.base_href == "/ui"
        assert url.base_href_with_slash == "/ui/"
        assert url.original_uri == "http://example.com/ui/app.js"

    def test_virtual_directory(self, make_request):
        request = make_request("/", headers={"X-Virtual-Directory": "vdir/"})
        assert client_url(request).base_href == "/vdir"

    def test_forwarded_strip(self, make_request):
        request = make_request("/", headers={"X-Forwarded-Strip": "/API", "X-Forwarded-Prefix": "/public"})
        request.path_base = "/api/ui"
        assert client_url(request).base_href == "/public/ui"
