from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup


def find_manifest_link(html: str, page_url: str) -> Optional[str]:
    """Absolute URL of the first ``<link rel="manifest">`` in a page, if any."""
    soup = BeautifulSoup(html, "html.parser")
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if "manifest" in (r.lower() for r in rel):
            return urljoin(page_url, link["href"].strip())
    return None


def page_title(html: str) -> Optional[str]:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title and soup.title.string:
        return soup.title.string.strip() or None
    return None
