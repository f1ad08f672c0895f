import base64
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..errors import PersistenceError

logger = logging.getLogger(__name__)

COLLECTIONS = ("manifests", "works")


class GitHubBlobStore:
    """
    Stores each collection as a JSON file in a GitHub repository.

    The repository is used as a plain key/value blob store through the
    contents API: one file per collection name, read and rewritten whole.
    Only the names in ``COLLECTIONS`` are accepted; anything else is a
    no-op. Without a token the store is disabled and every call is skipped.
    """

    def __init__(self, token: Optional[str], owner: str, repo: str,
                 branch: str = "master", path_prefix: str = "", timeout: float = 30):
        self.token = token
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.path_prefix = path_prefix
        self.timeout = timeout
        self.base_url = "https://api.github.com"

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    def _path(self, collection: str) -> str:
        return f"{self.path_prefix}{collection}.json"

    def _repo_url(self, suffix: str) -> str:
        return f"{self.base_url}/repos/{self.owner}/{self.repo}/{suffix}"

    def _make_request(self, method: str, collection: str, json_data: Dict = None,
                      params: Dict = None, url: str = None) -> Optional[Any]:
        """Call the GitHub API for a collection file; ``None`` means the file does not exist."""
        url = url or self._repo_url(f"contents/{self._path(collection)}")
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "User-Agent": "manifest-index-api/1.0",
        }
        try:
            response = requests.request(method, url, params=params, json=json_data,
                                        headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise PersistenceError(f"GitHub request failed for {collection}: {e}", cause=e) from e

        if method == "GET" and response.status_code == 404:
            return None
        if response.status_code in (401, 403):
            raise PersistenceError(
                f"GitHub rejected the token for {self.owner}/{self.repo} "
                f"(status {response.status_code})"
            )
        if response.status_code >= 400:
            raise PersistenceError(
                f"GitHub returned status {response.status_code} for {collection}: "
                f"{response.text[:200]}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise PersistenceError(f"GitHub returned invalid JSON for {collection}", cause=e) from e

    def _file_content(self, collection: str, data: Dict[str, Any]) -> str:
        """Base64 content of a file entry, read through the blobs API for files over 1 MB."""
        if data.get("encoding", "base64") == "base64" and data.get("content"):
            return data["content"]
        if not data.get("size"):
            return ""
        # Large files come back with encoding "none" and empty content.
        sha = data.get("sha")
        if not sha:
            raise PersistenceError(f"Stored {collection} file has no content and no sha")
        blob = self._make_request("GET", collection, url=self._repo_url(f"git/blobs/{sha}"))
        if not isinstance(blob, dict) or blob.get("encoding") != "base64" or not blob.get("content"):
            raise PersistenceError(f"Could not read the {collection} blob {sha}")
        return blob["content"]

    def _read(self, collection: str) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        data = self._make_request("GET", collection, params={"ref": self.branch})
        if data is None:
            return [], None
        if not isinstance(data, dict) or data.get("type", "file") != "file":
            raise PersistenceError(
                f"{self._path(collection)} is not a file in {self.owner}/{self.repo}"
            )
        try:
            raw = base64.b64decode(self._file_content(collection, data)).decode("utf-8")
            records = json.loads(raw) if raw.strip() else []
        except (ValueError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Stored {collection} file is not valid JSON", cause=e) from e
        if not isinstance(records, list):
            raise PersistenceError(f"Stored {collection} file does not hold a list")
        return records, data.get("sha")

    def _write(self, collection: str, records: List[Dict[str, Any]], sha: Optional[str],
               message: str) -> None:
        body = {
            "message": message,
            "content": base64.b64encode(
                json.dumps(records, indent=2, ensure_ascii=False).encode("utf-8")
            ).decode("ascii"),
            "branch": self.branch,
        }
        if sha:
            body["sha"] = sha
        self._make_request("PUT", collection, json_data=body)

    def _skip(self, action: str, collection: str) -> bool:
        if collection not in COLLECTIONS:
            logger.info(f"Ignoring {action} for unknown collection {collection!r}")
            return True
        if not self.enabled:
            logger.debug(f"Persistence disabled; skipping {action} of {collection}")
            return True
        return False

    def save(self, collection: str, records: List[Dict[str, Any]]) -> None:
        """Overwrite the whole collection file."""
        if self._skip("save", collection):
            return None
        _, sha = self._read(collection)
        self._write(collection, records, sha, f"Save {collection} ({len(records)} records)")
        logger.info(f"Saved {len(records)} {collection} to {self.owner}/{self.repo}")

    def update(self, collection: str, record: Dict[str, Any], key: str = "_id") -> None:
        """Replace the stored record whose ``key`` matches, or append it."""
        if self._skip("update", collection):
            return None
        records, sha = self._read(collection)
        for idx, existing in enumerate(records):
            if isinstance(existing, dict) and existing.get(key) == record.get(key):
                records[idx] = record
                break
        else:
            records.append(record)
        self._write(collection, records, sha, f"Update {collection} {key}={record.get(key)}")
        logger.info(f"Updated {collection} record {record.get(key)} in {self.owner}/{self.repo}")

    def find(self, collection: str, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Records whose fields equal every item of ``filter``."""
        if self._skip("find", collection):
            return []
        records, _ = self._read(collection)
        if not filter:
            return records
        return [
            r for r in records
            if isinstance(r, dict) and all(r.get(k) == v for k, v in filter.items())
        ]
