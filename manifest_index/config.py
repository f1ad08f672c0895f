import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=PROJECT_ROOT / ".env")

APP_VERSION = "1.0.0"
PRODUCTION_BASE_URL = "https://index-api.aframe.io"


def _env(*names: str, default: Optional[str] = None) -> Optional[str]:
    """First non-empty value among several environment variable names."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


class Settings(BaseModel):
    """Runtime settings, read once from the environment (and ``.env``)."""
    env: str = "development"
    host: str = "0.0.0.0"
    port: int = 3000
    base_url: Optional[str] = None

    gh_token: Optional[str] = None
    gh_db_user: str = "aframevr-userland"
    gh_db_repo: str = "aframe-index-db"
    gh_db_branch: str = "master"
    gh_db_path_prefix: str = ""

    persist_delay_seconds: float = 3.0
    fetch_timeout_seconds: float = 25.0
    cors_origins: List[str] = ["*"]
    static_dir: str = "public"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def resolved_base_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        if self.is_production:
            return PRODUCTION_BASE_URL
        return f"http://{self.host}:{self.port}"

    @property
    def api_version(self) -> int:
        return int(APP_VERSION.split(".")[0])

    @classmethod
    def from_env(cls) -> "Settings":
        origins = _env("CORS_ORIGINS", default="*")
        return cls(
            env=_env("MANIFEST_INDEX_ENV", "APP_ENV", default="development"),
            host=_env("MANIFEST_INDEX_HOST", "HOST", default="0.0.0.0"),
            port=int(_env("MANIFEST_INDEX_PORT", "PORT", default="3000")),
            base_url=_env("MANIFEST_INDEX_BASE_URL"),
            gh_token=_env("GH_TOKEN"),
            gh_db_user=_env("GH_DB_USER", default="aframevr-userland"),
            gh_db_repo=_env("GH_DB_REPO", default="aframe-index-db"),
            gh_db_branch=_env("GH_DB_BRANCH", default="master"),
            gh_db_path_prefix=_env("GH_DB_PATH_PREFIX", default=""),
            persist_delay_seconds=float(_env("PERSIST_DELAY_SECONDS", default="3")),
            fetch_timeout_seconds=float(_env("FETCH_TIMEOUT_SECONDS", default="25")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            static_dir=_env("STATIC_DIR", default="public"),
            log_level=_env("LOG_LEVEL", default="INFO"),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
