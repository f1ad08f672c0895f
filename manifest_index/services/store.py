"""
In-memory collections for manifests and works.

A ``Collection`` is an ordered list of records plus two lookups, by ``_id``
and by normalized manifest URL. Every mutation goes through one of the
methods below so the list and both indexes never disagree.
"""

import copy
import itertools
import logging
from typing import Any, Dict, Iterator, List, Optional, Set

from ..errors import NotFoundError, PersistenceError, StoreError
from ..tools.ids import from_base36, to_base36
from ..tools.urls import manifest_url_key

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

ID_KEY = "_id"


class Collection:
    """Ordered records with an id index, a URL index and an id counter."""

    def __init__(self, name: str):
        self.name = name
        self._records: List[Record] = []
        self._by_id: Dict[str, Record] = {}
        self._by_url: Dict[str, Record] = {}
        self._counter = itertools.count(1)
        self._last_issued = 0
        # every id ever issued or held, and the ones since removed
        self._used_ids: Set[str] = set()
        self._retired_ids: Set[str] = set()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    # ---------- ids ----------
    def next_id(self) -> str:
        """Issue the next sequential base-36 id. Ids are never handed out twice."""
        record_id = to_base36(next(self._counter))
        while record_id in self._used_ids:
            record_id = to_base36(next(self._counter))
        self._last_issued = from_base36(record_id)
        self._used_ids.add(record_id)
        return record_id

    def was_used(self, record_id) -> bool:
        """True for any id this collection has issued or held, including removed ones."""
        return record_id is not None and str(record_id) in self._used_ids

    def _reserve(self, record_id: str) -> None:
        # Ids that arrive from outside (hydration, client-supplied) push the
        # counter forward so a later next_id() cannot collide with them.
        value = from_base36(record_id)
        if value is not None and value > self._last_issued:
            self._counter = itertools.count(value + 1)
            self._last_issued = value

    # ---------- lookups ----------
    def find_by_id(self, record_id: Optional[str]) -> Optional[Record]:
        if record_id is None:
            return None
        return self._by_id.get(str(record_id))

    def find_by_url(self, url: Optional[str]) -> Optional[Record]:
        if not url:
            return None
        return self._by_url.get(url)

    def _position(self, record_id: str) -> int:
        record = self._by_id.get(record_id)
        if record is None:
            raise NotFoundError(f"No {self.name} record with id {record_id!r}")
        for idx, candidate in enumerate(self._records):
            if candidate is record:
                return idx
        raise StoreError(f"{self.name} id index out of sync for {record_id!r}")

    # ---------- mutations ----------
    def append(self, record: Record) -> Record:
        record_id = record.get(ID_KEY)
        if record_id is None or record_id == "":
            raise StoreError(f"Cannot add a {self.name} record without an {ID_KEY!r}")
        record_id = str(record_id)
        if record_id in self._by_id:
            raise StoreError(f"Duplicate {self.name} id {record_id!r}")
        if record_id in self._retired_ids:
            raise StoreError(f"{self.name} id {record_id!r} was removed and cannot be reused")
        record[ID_KEY] = record_id

        self._records.append(record)
        self._by_id[record_id] = record
        url = manifest_url_key(record)
        if url:
            self._by_url[url] = record
        self._used_ids.add(record_id)
        self._reserve(record_id)
        return record

    def replace_at(self, record_id: str, record: Record) -> Record:
        """Overwrite the record with ``record_id`` in place, keeping its id and position."""
        record_id = str(record_id)
        idx = self._position(record_id)
        old = self._records[idx]
        record[ID_KEY] = record_id

        self._records[idx] = record
        self._by_id[record_id] = record
        old_url = manifest_url_key(old)
        if old_url and self._by_url.get(old_url) is old:
            self._repoint(old_url, exclude=old)
        url = manifest_url_key(record)
        if url:
            self._by_url[url] = record
        return record

    def remove_by_id(self, record_id: str) -> Record:
        record_id = str(record_id)
        idx = self._position(record_id)
        record = self._records.pop(idx)
        del self._by_id[record_id]
        self._retired_ids.add(record_id)
        url = manifest_url_key(record)
        if url and self._by_url.get(url) is record:
            self._repoint(url, exclude=record)
        return record

    def reindex(self, record: Record, previous_url: Optional[str] = None) -> None:
        """Refresh the URL entry of a record that was mutated in place."""
        if self._by_id.get(str(record.get(ID_KEY))) is not record:
            raise NotFoundError(f"{self.name} record is not part of the collection")
        url = manifest_url_key(record)
        if previous_url and previous_url != url and self._by_url.get(previous_url) is record:
            self._repoint(previous_url, exclude=record)
        if url:
            self._by_url[url] = record

    def _repoint(self, url: str, exclude: Record) -> None:
        # The newest remaining record with this URL takes over the entry.
        for candidate in reversed(self._records):
            if candidate is not exclude and manifest_url_key(candidate) == url:
                self._by_url[url] = candidate
                return
        self._by_url.pop(url, None)

    def load(self, records: List[Record]) -> None:
        """Replace the contents wholesale, e.g. with records read back from the blob store."""
        self._records = []
        self._by_id = {}
        self._by_url = {}
        for record in records:
            if not isinstance(record, dict) or record.get(ID_KEY) in (None, ""):
                logger.warning(f"Skipping {self.name} record without an id during load")
                continue
            if str(record[ID_KEY]) in self._by_id:
                logger.warning(f"Skipping duplicate {self.name} id {record[ID_KEY]!r} during load")
                continue
            self.append(record)

    # ---------- views ----------
    def snapshot(self) -> List[Record]:
        return copy.deepcopy(self._records)

    def is_consistent(self) -> bool:
        """True when both indexes describe exactly the records in the sequence."""
        if len(self._by_id) != len(self._records):
            return False
        for record in self._records:
            if self._by_id.get(str(record.get(ID_KEY))) is not record:
                return False
        urls = {manifest_url_key(r) for r in self._records} - {None}
        if set(self._by_url) != urls:
            return False
        return all(
            any(indexed is r for r in self._records) and manifest_url_key(indexed) == url
            for url, indexed in self._by_url.items()
        )


class ManifestStore:
    """The two collections served by the API, created once per application."""

    def __init__(self):
        self.manifests = Collection("manifests")
        self.works = Collection("works")

    def hydrate(self, blob_store) -> None:
        """Load both collections from the blob store; start empty when it fails."""
        if blob_store is None or not getattr(blob_store, "enabled", False):
            logger.info("Persistence disabled; starting with empty collections")
            return
        try:
            manifests = blob_store.find("manifests")
            works = blob_store.find("works")
        except PersistenceError as e:
            logger.error(f"Could not load collections from the remote store: {e}")
            return
        self.manifests.load(manifests)
        self.works.load(works)
        logger.info(f"Loaded {len(self.manifests)} manifests and {len(self.works)} works")
