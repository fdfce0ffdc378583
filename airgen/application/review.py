"""Approval and write-back of staged generation results."""
from __future__ import annotations

import asyncio

import structlog

from airgen.core.errors import CommitError, NotConnectedError, RecordStoreError
from airgen.core.state import RunStatusStore
from airgen.domain import RecordProjection
from airgen.infrastructure import RecordStore

logger = structlog.get_logger(__name__)


class CommitProtocol:
    """Second phase of stage -> commit: pushes pending text to the record store.

    A failed write leaves the entry pending, so the same commit can simply be
    issued again; resending identical content is idempotent on the store side.
    """

    def __init__(
        self,
        state: RunStatusStore,
        projection: RecordProjection,
        *,
        store: RecordStore | None = None,
        output_field: str | None = None,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self._state = state
        self._projection = projection
        self.store = store
        self.output_field = output_field
        self._lock = lock or asyncio.Lock()

    def _require_binding(self) -> tuple[RecordStore, str]:
        if self.store is None:
            raise NotConnectedError("No record store connection")
        if not self.output_field:
            raise NotConnectedError("No output field bound; run a batch first")
        return self.store, self.output_field

    async def commit_one(self, record_id: str) -> CommitError | None:
        """Write one pending entry back; unknown ids are a no-op."""

        async with self._lock:
            update = self._state.get_pending(record_id)
            if update is None:
                return None
            store, output_field = self._require_binding()
            patch = {output_field: update.text}

            try:
                await asyncio.to_thread(store.update, record_id, patch)
            except RecordStoreError as exc:
                return self._fail(record_id, exc)
            except Exception as exc:
                return self._fail(record_id, RecordStoreError(str(exc) or type(exc).__name__))

            self._projection.apply(record_id, patch)
            if self._state.get_pending(record_id) is update:
                self._state.evict(record_id)
            self._state.log(f"Synchronized {record_id[-4:]}", "success")
            return None

    def _fail(self, record_id: str, cause: RecordStoreError) -> CommitError:
        logger.warning("commit.failed", record_id=record_id, status=cause.status_code, message=cause.message)
        self._state.log(f"Vault sync error: {cause.message}", "error")
        return CommitError(record_id, cause)

    async def commit_all(self) -> None:
        """Commit every id pending at call time; ids staged meanwhile stay pending."""

        record_ids = self._state.pending_ids()
        committed = 0
        failed = 0
        for record_id in record_ids:
            if self._state.get_pending(record_id) is None:
                continue
            error = await self.commit_one(record_id)
            if error is None:
                committed += 1
            else:
                failed += 1

        logger.info("commit.batch_finished", committed=committed, failed=failed, requested=len(record_ids))
        self._state.log(
            f"Curation phase finalized: {committed} committed, {failed} failed.",
            "success" if failed == 0 else "info",
        )
