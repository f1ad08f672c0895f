from typing import Any, Dict, Optional

# Post-redirect URL of the manifest document, set by the fetcher.
URL_KEY = "processed_final_manifest_url"


def manifest_url_key(record: Dict[str, Any]) -> Optional[str]:
    """
    Deduplication key of a manifest or work record.

    The fetcher already resolved redirects, so the URL is used verbatim:
    case, trailing slashes and query strings are significant. Records
    without a usable URL have no key and stay out of the URL index.
    """
    url = record.get(URL_KEY)
    if isinstance(url, str) and url:
        return url
    return None
