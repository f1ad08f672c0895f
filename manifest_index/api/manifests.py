"""
FastAPI router for the manifests collection.

Submitting a site or manifest URL fetches the web-app manifest, stores it,
and folds it into the work for its URL. Stored manifests can be listed,
read, patched and deleted; every change is persisted in the background.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Response

from ..errors import NotFoundError, UpstreamFetchError, ValidationError
from ..services.manifest_fetcher import ManifestFetcher
from ..services.persistence import PersistenceQueue
from ..services.reconciler import (
    delete_manifest,
    patch_manifest,
    reconcile,
    submission_to_fetch_input,
)
from ..services.store import ManifestStore
from .deps import get_fetcher, get_persistence, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/manifests", tags=["manifests"])

MISSING_SUBMISSION = "Required: a `url` parameter or a manifest as a JSON blob"


def load_manifest(manifest_id: str, store: ManifestStore = Depends(get_store)) -> Dict[str, Any]:
    manifest = store.manifests.find_by_id(manifest_id)
    if manifest is None:
        raise NotFoundError("Not found")
    return manifest


@router.get("", response_model=List[Dict[str, Any]])
async def list_manifests(store: ManifestStore = Depends(get_store)):
    """All manifests in submission order."""
    return list(store.manifests)


@router.post("")
async def create_manifest(
    body: Optional[Dict[str, Any]] = Body(None),
    store: ManifestStore = Depends(get_store),
    fetcher: ManifestFetcher = Depends(get_fetcher),
    persistence: PersistenceQueue = Depends(get_persistence),
):
    """
    Fetch and store a web-app manifest.

    The body is either ``{"url": "https://example.com/"}`` (``manifest_url``
    and ``site_url`` are accepted too) or a complete manifest object with at
    least three keys. Responds with the stored manifest, including its
    ``_id``, ``_work_id``, ``_work_type`` and ``_date_fetched*`` fields.
    """
    if not body:
        raise ValidationError(MISSING_SUBMISSION)

    try:
        manifest = await fetcher(submission_to_fetch_input(body))
    except UpstreamFetchError:
        raise
    except Exception as e:
        raise UpstreamFetchError(f"Manifest fetch failed: {e}", cause=e) from e

    manifest, work = reconcile(store, manifest)
    persistence.schedule_submission(store.manifests.snapshot(), work)
    return manifest


@router.get("/{manifest_id}")
async def read_manifest(manifest: Dict[str, Any] = Depends(load_manifest)):
    return manifest


@router.put("/{manifest_id}", status_code=204)
async def update_manifest(
    body: Optional[Dict[str, Any]] = Body(None),
    manifest: Dict[str, Any] = Depends(load_manifest),
    store: ManifestStore = Depends(get_store),
    persistence: PersistenceQueue = Depends(get_persistence),
):
    """Patch a manifest. ``id`` and keys starting with ``_`` are ignored."""
    patch_manifest(store, manifest, body or {})
    persistence.schedule_save("manifests", store.manifests.snapshot())
    return Response(status_code=204)


@router.delete("/{manifest_id}", status_code=204)
async def remove_manifest(
    manifest: Dict[str, Any] = Depends(load_manifest),
    store: ManifestStore = Depends(get_store),
    persistence: PersistenceQueue = Depends(get_persistence),
):
    """Delete a manifest together with the work it points at."""
    delete_manifest(store, manifest)
    persistence.schedule_save("manifests", store.manifests.snapshot())
    persistence.schedule_save("works", store.works.snapshot())
    return Response(status_code=204)
