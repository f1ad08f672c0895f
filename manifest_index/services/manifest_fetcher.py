"""
Fetches web-app manifests for submission.

A submission is either a site/manifest URL or a manifest JSON object. URLs
are downloaded with ``requests``; an HTML page is searched for its
``<link rel="manifest">`` and the linked document is downloaded in turn.
The blocking work runs on a worker thread so the event loop stays free.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Union
from urllib.parse import urljoin

import requests

from ..errors import UpstreamFetchError
from ..tools.downloader import download
from ..tools.manifest_extractor import find_manifest_link, page_title

logger = logging.getLogger(__name__)

ManifestOrUrl = Union[str, Dict[str, Any]]


class ManifestFetcher:
    """Turns a submitted URL or manifest object into a manifest dict with ``processed_*`` URLs."""

    def __init__(self, timeout: float = 25):
        self.timeout = timeout

    async def __call__(self, manifest_or_url: ManifestOrUrl) -> Dict[str, Any]:
        return await self.fetch(manifest_or_url)

    async def fetch(self, manifest_or_url: ManifestOrUrl) -> Dict[str, Any]:
        if isinstance(manifest_or_url, dict):
            return self.from_object(manifest_or_url)
        return await asyncio.to_thread(self.fetch_sync, manifest_or_url)

    def from_object(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Accept a submitted manifest as-is, deriving its URL fields from what it carries."""
        manifest = dict(body)
        manifest_url = (
            manifest.get("processed_final_manifest_url")
            or manifest.get("manifest_url")
            or manifest.get("url")
        )
        if manifest_url:
            manifest.setdefault("processed_manifest_url", manifest_url)
            manifest["processed_final_manifest_url"] = manifest_url
            self._resolve_start_url(manifest, manifest_url)
        return manifest

    def fetch_sync(self, url: str) -> Dict[str, Any]:
        url = (url or "").strip()
        if not url:
            raise UpstreamFetchError("No URL to fetch a manifest from")

        try:
            page = download(url, timeout=self.timeout)
            site_url = None
            final_site_url = None
            title = None
            if page.looks_like_json and isinstance(page.json(), dict):
                doc = page
            else:
                site_url, final_site_url = url, page.final_url
                title = page_title(page.text)
                manifest_link = find_manifest_link(page.text, page.final_url)
                if not manifest_link:
                    raise UpstreamFetchError(f"No web-app manifest linked from {page.final_url}")
                doc = download(manifest_link, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamFetchError(f"Could not download {url}: {e}", cause=e) from e

        manifest = doc.json()
        if not isinstance(manifest, dict):
            raise UpstreamFetchError(f"Manifest at {doc.final_url} is not a JSON object")

        manifest["processed_site_url"] = site_url
        manifest["processed_final_site_url"] = final_site_url
        manifest["processed_manifest_url"] = doc.requested_url
        manifest["processed_final_manifest_url"] = doc.final_url
        if title:
            manifest["processed_site_title"] = title
        self._resolve_start_url(manifest, doc.final_url)
        return manifest

    @staticmethod
    def _resolve_start_url(manifest: Dict[str, Any], manifest_url: str) -> None:
        start_url = manifest.get("start_url")
        if isinstance(start_url, str) and start_url:
            manifest["processed_start_url"] = urljoin(manifest_url, start_url)
