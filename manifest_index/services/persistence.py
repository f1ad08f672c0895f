"""
Background persistence of the collections.

Requests never wait on the remote store: handlers enqueue jobs and return.
A single worker task drains the queue in order, running each blob store
call on a worker thread. Delayed jobs wait on a loop timer and join the
queue when it fires, so they never hold up the jobs behind them. Failures
are logged and dropped; in-memory state is never rolled back and jobs are
not retried.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class PersistenceJob:
    action: str                      # "save" or "update"
    collection: str
    payload: Any
    key: str = "_id"
    delay: float = 0.0

    def describe(self) -> str:
        if self.action == "update":
            return f"update {self.collection} {self.key}={self.payload.get(self.key)}"
        return f"save {self.collection} ({len(self.payload)} records)"


class PersistenceQueue:
    """FIFO queue of blob store writes, drained by one asyncio task."""

    def __init__(self, blob_store, delay_seconds: float = 3.0):
        self.blob_store = blob_store
        self.delay_seconds = delay_seconds
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._delayed: Dict[int, Tuple[asyncio.TimerHandle, PersistenceJob]] = {}

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.get_running_loop().create_task(self._run())
        logger.info("Persistence worker started")

    async def stop(self) -> None:
        """Run pending delayed jobs now, let queued jobs finish, then stop the worker."""
        if not self.running:
            return
        for handle, job in list(self._delayed.values()):
            handle.cancel()
            self._release(job)
        await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Persistence worker stopped")

    @property
    def pending_delayed(self) -> int:
        return len(self._delayed)

    async def join(self) -> None:
        """Wait for the jobs already in the queue; delayed jobs still on their timer are not awaited."""
        if self._queue is not None:
            await self._queue.join()

    def _put(self, job: PersistenceJob) -> None:
        if not self.running:
            logger.warning(f"Persistence worker not running; dropping {job.describe()}")
            return
        if job.delay:
            handle = asyncio.get_running_loop().call_later(job.delay, self._release, job)
            self._delayed[id(job)] = (handle, job)
            return
        self._queue.put_nowait(job)

    def _release(self, job: PersistenceJob) -> None:
        self._delayed.pop(id(job), None)
        self._queue.put_nowait(job)

    def _drop_delayed(self, collection: str) -> None:
        # a full save supersedes record updates still waiting on their timer
        for key, (handle, job) in list(self._delayed.items()):
            if job.collection == collection:
                handle.cancel()
                del self._delayed[key]

    def schedule_save(self, collection: str, records: List[Dict[str, Any]], delay: float = 0.0) -> None:
        # records must already be a snapshot (see Collection.snapshot)
        self._drop_delayed(collection)
        self._put(PersistenceJob("save", collection, records, delay=delay))

    def schedule_update(self, collection: str, record: Dict[str, Any], key: str = "_id",
                        delay: float = 0.0) -> None:
        self._put(PersistenceJob("update", collection, copy.deepcopy(record), key=key, delay=delay))

    def schedule_submission(self, manifests: List[Dict[str, Any]], work: Dict[str, Any]) -> None:
        """Save the manifests now, then update the one work after the fixed delay."""
        self.schedule_save("manifests", manifests)
        self.schedule_update("works", work, delay=self.delay_seconds)

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await asyncio.to_thread(self._execute, job)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Persistence job failed ({job.describe()}): {e}")
            finally:
                self._queue.task_done()

    def _execute(self, job: PersistenceJob) -> None:
        if job.action == "save":
            self.blob_store.save(job.collection, job.payload)
        elif job.action == "update":
            self.blob_store.update(job.collection, job.payload, job.key)
        else:
            raise ValueError(f"Unknown persistence action: {job.action}")
