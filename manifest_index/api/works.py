"""
FastAPI router for the works collection.

Works are derived from manifests and cannot be changed directly: every
mutation is answered with a read-only error pointing at the manifests
endpoint.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from ..errors import NotFoundError, ReadOnlyViolation
from ..services.store import ManifestStore
from .deps import get_store

router = APIRouter(prefix="/api/works", tags=["works"])

READ_ONLY_MESSAGE = (
    "This is a read-only endpoint (you must submit new works "
    "using the respective API endpoint defined at `manifests_url`)"
)


def load_work(work_id: str, store: ManifestStore = Depends(get_store)) -> Dict[str, Any]:
    work = store.works.find_by_id(work_id)
    if work is None:
        raise NotFoundError("Not found")
    return work


@router.get("", response_model=List[Dict[str, Any]])
async def list_works(
    url: Optional[str] = Query(None, description="Normalized manifest URL to look up"),
    store: ManifestStore = Depends(get_store),
):
    """All works, or the single work for ``url`` when given."""
    if url is not None:
        work = store.works.find_by_url(url)
        return [work] if work is not None else []
    return list(store.works)


@router.get("/{work_id}")
async def read_work(work: Dict[str, Any] = Depends(load_work)):
    return work


@router.post("")
@router.put("")
@router.delete("")
@router.post("/{work_id}")
@router.put("/{work_id}")
@router.delete("/{work_id}")
async def mutate_work():
    """Works are derived from manifests; direct changes are refused."""
    raise ReadOnlyViolation(READ_ONLY_MESSAGE)
