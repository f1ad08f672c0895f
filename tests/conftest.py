import copy
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from manifest_index.config import Settings
from manifest_index.errors import UpstreamFetchError
from manifest_index.main import create_app
from manifest_index.services.manifest_fetcher import ManifestFetcher
from manifest_index.services.store import ManifestStore


class FakeBlobStore:
    """In-memory stand-in for the GitHub-backed store."""

    def __init__(self, records: Optional[Dict[str, List[Dict[str, Any]]]] = None, enabled: bool = True):
        self.records = copy.deepcopy(records or {})
        self.enabled = enabled
        self.calls: List[tuple] = []

    def save(self, collection, records):
        self.calls.append(("save", collection))
        self.records[collection] = copy.deepcopy(records)

    def update(self, collection, record, key="_id"):
        self.calls.append(("update", collection, record.get(key)))
        stored = self.records.setdefault(collection, [])
        for idx, existing in enumerate(stored):
            if existing.get(key) == record.get(key):
                stored[idx] = copy.deepcopy(record)
                break
        else:
            stored.append(copy.deepcopy(record))

    def find(self, collection, filter=None):
        self.calls.append(("find", collection))
        return copy.deepcopy(self.records.get(collection, []))


class StubFetcher(ManifestFetcher):
    """Serves canned manifests by URL instead of going to the network."""

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        super().__init__(timeout=1)
        self.documents = documents or {}
        self.requests: List[Any] = []

    def fetch_sync(self, url):
        self.requests.append(url)
        if url not in self.documents:
            raise UpstreamFetchError(f"No canned manifest for {url!r}")
        manifest = copy.deepcopy(self.documents[url])
        manifest.setdefault("processed_final_manifest_url", url)
        return manifest


def make_manifest(name: str = "Example App", **fields) -> Dict[str, Any]:
    manifest = {
        "name": name,
        "short_name": name.split()[0],
        "start_url": "/",
        "display": "standalone",
    }
    manifest.update(fields)
    return manifest


@pytest.fixture
def settings() -> Settings:
    return Settings(
        base_url="http://testserver",
        persist_delay_seconds=0,
        static_dir="__no_static_dir__",
    )


@pytest.fixture
def store() -> ManifestStore:
    return ManifestStore()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def fetcher() -> StubFetcher:
    return StubFetcher({
        "https://example.com/app": make_manifest("Example App", type="web APP"),
        "https://example.org/game": make_manifest("Space Game", **{"@type": "game"}),
    })


@pytest.fixture
def app(settings, blob_store, fetcher):
    return create_app(settings=settings, blob_store=blob_store, fetcher=fetcher)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
