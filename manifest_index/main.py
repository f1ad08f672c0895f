import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .api import manifests, works
from .config import APP_VERSION, Settings, get_settings
from .errors import ManifestIndexError, NotFoundError, UpstreamFetchError
from .models.api_models import ApiRoot, ErrorEnvelope
from .services.github_store import GitHubBlobStore
from .services.manifest_fetcher import ManifestFetcher
from .services.persistence import PersistenceQueue
from .services.store import ManifestStore

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Could not fetch web-app manifest data"


def build_blob_store(settings: Settings) -> GitHubBlobStore:
    return GitHubBlobStore(
        token=settings.gh_token,
        owner=settings.gh_db_user,
        repo=settings.gh_db_repo,
        branch=settings.gh_db_branch,
        path_prefix=settings.gh_db_path_prefix,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    await asyncio.to_thread(app.state.store.hydrate, app.state.blob_store)
    app.state.persistence.start()
    logger.info(f"Serving API at {app.state.settings.resolved_base_url}/api/")
    yield
    await app.state.persistence.stop()


async def handle_index_error(request: Request, exc: ManifestIndexError):
    """Translate the package's error kinds into HTTP responses."""
    if isinstance(exc, NotFoundError):
        return JSONResponse(status_code=404, content={"detail": "Not found"})
    if isinstance(exc, UpstreamFetchError):
        logger.warning(f"Manifest fetch failed: {exc.message}")
        envelope = ErrorEnvelope(name="Internal Server Error", message=FETCH_FAILED_MESSAGE)
        return JSONResponse(status_code=500, content=envelope.model_dump())
    envelope = ErrorEnvelope(name=exc.name, message=exc.message)
    if exc.status_code >= 500:
        logger.error(f"Unhandled {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=envelope.model_dump())


def create_app(settings: Optional[Settings] = None, blob_store=None,
               fetcher: Optional[ManifestFetcher] = None) -> FastAPI:
    """
    Build the API application.

    Each call gets its own store and persistence queue, so tests can build
    isolated apps with a fake blob store and a stub fetcher.
    """
    settings = settings or get_settings()

    app = FastAPI(title="Manifest Index API", version=APP_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = ManifestStore()
    app.state.blob_store = blob_store if blob_store is not None else build_blob_store(settings)
    app.state.persistence = PersistenceQueue(app.state.blob_store, settings.persist_delay_seconds)
    app.state.fetcher = fetcher or ManifestFetcher(timeout=settings.fetch_timeout_seconds)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ManifestIndexError, handle_index_error)

    def api_root():
        base_url = settings.resolved_base_url
        return ApiRoot(
            version=settings.api_version,
            manifests_url=f"{base_url}/api/manifests",
            works_url=f"{base_url}/api/works",
        )

    app.add_api_route("/api/", api_root, methods=["GET"], response_model=ApiRoot)
    app.add_api_route("/", api_root, methods=["GET"], response_model=ApiRoot)
    app.include_router(manifests.router)
    app.include_router(works.router)

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir), name="static")

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    logging.basicConfig(level=settings.log_level,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    uvicorn.run(app, host=settings.host, port=settings.port)
