from fastapi import Request

from ..services.manifest_fetcher import ManifestFetcher
from ..services.persistence import PersistenceQueue
from ..services.store import ManifestStore


def get_store(request: Request) -> ManifestStore:
    return request.app.state.store


def get_persistence(request: Request) -> PersistenceQueue:
    return request.app.state.persistence


def get_fetcher(request: Request) -> ManifestFetcher:
    return request.app.state.fetcher
