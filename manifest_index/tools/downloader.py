import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)

USER_AGENT = "manifest-index-api/1.0"


@dataclass
class Download:
    """A fetched document and the URL it ended up at after redirects."""
    requested_url: str
    final_url: str
    status: int
    content_type: str
    text: str

    def json(self) -> Optional[Any]:
        """Parsed body, or None when the body is not JSON."""
        try:
            return json.loads(self.text)
        except ValueError:
            return None

    @property
    def looks_like_json(self) -> bool:
        return "json" in self.content_type.lower() or self.text.lstrip().startswith("{")


def download(url: str, timeout: float = 25) -> Download:
    """GET a document, following redirects. Raises ``requests`` exceptions on failure."""
    r = requests.get(
        url,
        timeout=timeout,
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/manifest+json, application/json, text/html;q=0.9, */*;q=0.8",
        },
    )
    r.raise_for_status()
    content_type = r.headers.get("content-type", "application/octet-stream")
    logger.debug(f"Downloaded {url} -> {r.url} ({r.status_code}, {content_type})")
    return Download(
        requested_url=url,
        final_url=r.url or url,
        status=r.status_code,
        content_type=content_type,
        text=r.text,
    )
