"""Tests for ManifestFetcher with ``requests.get`` patched out."""

import asyncio
import json

import pytest
import requests

from manifest_index.errors import UpstreamFetchError
from manifest_index.services.manifest_fetcher import ManifestFetcher
from manifest_index.tools import downloader
from manifest_index.tools.manifest_extractor import find_manifest_link, page_title

SITE_HTML = """
<!doctype html>
<html>
  <head>
    <title> Example Site </title>
    <link rel="stylesheet" href="/style.css">
    <link rel="manifest" href="/static/manifest.json">
  </head>
  <body></body>
</html>
"""

MANIFEST = {"name": "Example", "short_name": "Ex", "start_url": "../index.html?src=pwa"}


class FakeResponse:

    def __init__(self, url, text, content_type="text/html", status_code=200):
        self.url = url
        self.text = text
        self.status_code = status_code
        self.headers = {"content-type": content_type}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} for {self.url}")


@pytest.fixture
def web(monkeypatch):
    """Route ``requests.get`` to a dict of URL -> FakeResponse."""
    pages = {}
    seen = []

    def fake_get(url, timeout=None, headers=None):
        seen.append(url)
        if url not in pages:
            raise requests.exceptions.ConnectionError(f"cannot reach {url}")
        return pages[url]

    monkeypatch.setattr(downloader.requests, "get", fake_get)
    pages["__seen__"] = seen
    return pages


class TestManifestExtractor:

    def test_finds_manifest_link(self) -> None:
        assert find_manifest_link(SITE_HTML, "https://example.com/app/") == \
            "https://example.com/static/manifest.json"

    def test_rel_with_several_tokens(self) -> None:
        html = '<link rel="Manifest preload" href="m.webmanifest">'
        assert find_manifest_link(html, "https://example.com/app/") == \
            "https://example.com/app/m.webmanifest"

    def test_no_manifest_link(self) -> None:
        assert find_manifest_link("<html><head></head></html>", "https://example.com/") is None

    def test_page_title(self) -> None:
        assert page_title(SITE_HTML) == "Example Site"
        assert page_title("<p>no title</p>") is None


class TestFetchUrl:

    def test_site_url_follows_manifest_link(self, web) -> None:
        web["https://example.com/"] = FakeResponse("https://www.example.com/", SITE_HTML)
        web["https://www.example.com/static/manifest.json"] = FakeResponse(
            "https://cdn.example.com/manifest.json", json.dumps(MANIFEST), "application/manifest+json")

        manifest = asyncio.run(ManifestFetcher().fetch("https://example.com/"))

        assert manifest["name"] == "Example"
        assert manifest["processed_site_url"] == "https://example.com/"
        assert manifest["processed_final_site_url"] == "https://www.example.com/"
        assert manifest["processed_manifest_url"] == "https://www.example.com/static/manifest.json"
        assert manifest["processed_final_manifest_url"] == "https://cdn.example.com/manifest.json"
        assert manifest["processed_start_url"] == "https://cdn.example.com/index.html?src=pwa"
        assert manifest["processed_site_title"] == "Example Site"

    def test_manifest_url_directly(self, web) -> None:
        web["https://example.com/manifest.json"] = FakeResponse(
            "https://example.com/manifest.json", json.dumps(MANIFEST), "application/json")

        manifest = ManifestFetcher().fetch_sync("https://example.com/manifest.json")

        assert manifest["processed_site_url"] is None
        assert manifest["processed_final_manifest_url"] == "https://example.com/manifest.json"
        assert web["__seen__"] == ["https://example.com/manifest.json"]

    def test_empty_url(self, web) -> None:
        with pytest.raises(UpstreamFetchError):
            ManifestFetcher().fetch_sync("   ")
        assert web["__seen__"] == []

    def test_network_error(self, web) -> None:
        with pytest.raises(UpstreamFetchError) as exc_info:
            ManifestFetcher().fetch_sync("https://down.example/")
        assert isinstance(exc_info.value.cause, requests.exceptions.ConnectionError)

    def test_http_error(self, web) -> None:
        web["https://example.com/"] = FakeResponse("https://example.com/", "gone", status_code=404)
        with pytest.raises(UpstreamFetchError):
            ManifestFetcher().fetch_sync("https://example.com/")

    def test_page_without_manifest(self, web) -> None:
        web["https://example.com/"] = FakeResponse("https://example.com/", "<html></html>")
        with pytest.raises(UpstreamFetchError):
            ManifestFetcher().fetch_sync("https://example.com/")

    def test_manifest_not_an_object(self, web) -> None:
        web["https://example.com/"] = FakeResponse("https://example.com/", SITE_HTML)
        web["https://example.com/static/manifest.json"] = FakeResponse(
            "https://example.com/static/manifest.json", "[1, 2]", "application/json")
        with pytest.raises(UpstreamFetchError):
            ManifestFetcher().fetch_sync("https://example.com/")


class TestFromObject:

    def test_uses_declared_manifest_url(self) -> None:
        manifest = ManifestFetcher().from_object({
            "name": "Inline", "start_url": "/go", "manifest_url": "https://a.example/m.json",
        })
        assert manifest["processed_manifest_url"] == "https://a.example/m.json"
        assert manifest["processed_final_manifest_url"] == "https://a.example/m.json"
        assert manifest["processed_start_url"] == "https://a.example/go"

    def test_without_any_url(self) -> None:
        manifest = ManifestFetcher().from_object({"name": "Inline", "a": 1, "b": 2})
        assert "processed_final_manifest_url" not in manifest

    def test_does_not_mutate_body(self) -> None:
        body = {"name": "Inline", "url": "https://a.example/m.json", "x": 1}
        ManifestFetcher().from_object(body)
        assert "processed_final_manifest_url" not in body
