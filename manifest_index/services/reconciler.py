"""
Manifest-to-work reconciliation.

Each fetched manifest is stored as a new manifest record and folded into the
single work that exists for its normalized URL: the first submission for a
URL creates the work, later ones overwrite its content while keeping its id.
All functions here run synchronously so a request always leaves the store in
a consistent state before it yields again.
"""

import copy
import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from ..tools.dates import fetched_at_fields
from ..tools.urls import manifest_url_key
from .store import ManifestStore, Record

logger = logging.getLogger(__name__)

DEFAULT_WORK_TYPE = "Site"


def title_case(value: Any) -> str:
    """Uppercase the first character and lowercase the rest ("web APP" -> "Web app")."""
    text = "" if value is None else str(value)
    return text[:1].upper() + text[1:].lower()


def work_type_of(manifest: Mapping[str, Any]) -> str:
    return title_case(manifest.get("@type") or manifest.get("type") or DEFAULT_WORK_TYPE)


def project_work(manifest: Mapping[str, Any], work_id: str, manifest_id: str) -> Record:
    """
    Build a work from a manifest.

    The work is a deep copy of every manifest field, re-tagged with the work
    identity. The manifest's ``_work_id`` back-reference is not carried over.
    """
    work = copy.deepcopy(dict(manifest))
    work.pop("_work_id", None)
    work["_id"] = work_id
    work["_manifest_id"] = manifest_id
    return work


def reconcile(store: ManifestStore, manifest: Record,
              now: Optional[datetime] = None) -> Tuple[Record, Record]:
    """
    Store a freshly fetched manifest and create or update its work.

    Returns the stored manifest and the work it produced. The manifest dict
    is tagged in place with its id, fetch timestamps, work type and work id.
    """
    manifests, works = store.manifests, store.works

    manifest_id = manifest.get("_id")
    if manifest_id in (None, "") or manifests.was_used(manifest_id):
        manifest["_id"] = manifests.next_id()
    else:
        manifest["_id"] = str(manifest_id)

    manifest.update(fetched_at_fields(now))
    manifest["_work_type"] = work_type_of(manifest)

    url = manifest_url_key(manifest)
    existing = works.find_by_url(url)
    if existing is not None:
        work_id = existing["_id"]
    else:
        work_id = works.next_id()
    manifest["_work_id"] = work_id

    work = project_work(manifest, work_id, manifest["_id"])
    if works.find_by_id(work_id) is not None:
        works.replace_at(work_id, work)
    else:
        works.append(work)

    manifests.append(manifest)

    logger.info(
        f"Manifest {manifest['_id']} {'updated' if existing is not None else 'created'} "
        f"work {work_id} ({url or 'no url'})"
    )
    return manifest, work


def is_protected_field(key: str) -> bool:
    return key == "id" or key.startswith("_")


def patch_manifest(store: ManifestStore, manifest: Record, changes: Mapping[str, Any]) -> Record:
    """
    Overwrite unprotected fields of a stored manifest in place.

    ``id`` and underscore-prefixed keys are skipped. Timestamps and the work
    type are not recomputed; only the URL indexes are refreshed.
    """
    previous_url = manifest_url_key(manifest)
    for key, value in changes.items():
        if is_protected_field(key):
            continue
        manifest[key] = value

    store.manifests.reindex(manifest, previous_url)
    work = store.works.find_by_id(manifest.get("_work_id"))
    if work is not None:
        store.works.reindex(work)
    return manifest


def delete_manifest(store: ManifestStore, manifest: Record) -> Optional[Record]:
    """
    Remove a manifest and the work it points at.

    Known limitation, kept on purpose: the work named by ``_work_id`` is
    removed even when a newer manifest has since overwritten it. That case is
    logged so it can be spotted. Returns the removed work, if any.
    """
    store.manifests.remove_by_id(manifest["_id"])

    work = store.works.find_by_id(manifest.get("_work_id"))
    if work is None:
        return None
    if work.get("_manifest_id") != manifest["_id"]:
        logger.warning(
            f"Deleting work {work['_id']} with manifest {manifest['_id']} although "
            f"its latest source is manifest {work.get('_manifest_id')}"
        )
    return store.works.remove_by_id(work["_id"])


def submission_to_fetch_input(body: Dict[str, Any]):
    """
    Decide what to hand to the fetcher for a POST body.

    Small bodies name a URL (``url``, ``manifest_url`` or ``site_url``); a
    body with three or more keys is taken to be the manifest itself.
    """
    if len(body) < 3:
        return str(body.get("url") or body.get("manifest_url") or body.get("site_url") or "").strip()
    return body
