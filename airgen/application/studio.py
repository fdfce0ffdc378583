"""Application service layer for the enrichment studio."""
from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Callable

import structlog

from airgen.core.errors import (
    AuthError,
    CommitError,
    FetchError,
    NotConnectedError,
    NotFoundError,
    RecordStoreError,
    RunInProgressError,
    StoreConnectionError,
)
from airgen.core.schema import ConnectionCredentials, ProcessingConfig
from airgen.core.settings import Settings
from airgen.core.state import RunStatusStore, StatusListener
from airgen.domain import Record, RecordProjection, RunStatus
from airgen.exporters.pending_csv import default_export_name, export_pending_drafts
from airgen.infrastructure import (
    ConnectionStateStore,
    GenerationClient,
    RecordStore,
    RecordStoreFactory,
    get_record_store_factory,
)
from airgen.workers.pipeline import Delay, PacingConfig, PipelineOrchestrator

from .review import CommitProtocol

logger = structlog.get_logger(__name__)


class StudioService:
    """Coordinates connection, batch runs and review for one table."""

    def __init__(
        self,
        *,
        connection_store: ConnectionStateStore | None = None,
        store_factory: RecordStoreFactory | None = None,
        generator: GenerationClient | None = None,
        pacing: PacingConfig | None = None,
        delay: Delay = asyncio.sleep,
        generation_timeout: float | None = 120.0,
        fetch_limit: int = 50,
        export_root: Path | None = None,
    ) -> None:
        self._connection_store = connection_store
        self._store_factory = store_factory
        self._fetch_limit = fetch_limit
        self._export_root = export_root or Path.cwd() / "exports"

        self._state = RunStatusStore()
        self._projection = RecordProjection()
        self._lock = asyncio.Lock()
        self._credentials: ConnectionCredentials | None = None
        self._store: RecordStore | None = None
        self._active_config: ProcessingConfig | None = None
        self._cancel: threading.Event | None = None
        self._review_ready = False
        self._run_requested = False

        self._orchestrator = PipelineOrchestrator(
            self._state,
            generator,
            pacing=pacing,
            delay=delay,
            generation_timeout=generation_timeout,
            on_review_ready=self._mark_review_ready,
        )
        self._commits = CommitProtocol(self._state, self._projection, lock=self._lock)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StudioService":
        return cls(
            connection_store=ConnectionStateStore(settings.state_path),
            pacing=PacingConfig(
                scan=settings.scan_delay,
                verify=settings.verify_delay,
                cooldown=settings.cooldown_delay,
            ),
            generation_timeout=settings.generation_timeout,
            fetch_limit=settings.fetch_limit,
            export_root=settings.export_root,
        )

    # ------------------------------------------------------------------
    # connection lifecycle
    # ------------------------------------------------------------------
    @property
    def credentials(self) -> ConnectionCredentials | None:
        return self._credentials

    @property
    def is_connected(self) -> bool:
        return self._store is not None

    async def connect(self, credentials: ConnectionCredentials, *, silent: bool = False) -> list[Record] | None:
        """Open the record store and load the first page of records.

        A silent (automatic) reconnect never raises for store errors; it
        forgets the persisted credentials instead and returns ``None``.
        """

        if self._state.is_processing or self._run_requested:
            raise RunInProgressError("Cannot switch connection while a batch run is active")

        factory = self._store_factory or get_record_store_factory()
        store = factory(credentials)
        try:
            records = await asyncio.to_thread(store.fetch, self._fetch_limit)
        except RecordStoreError as exc:
            store.close()
            logger.warning("studio.connect_failed", silent=silent, status=exc.status_code, message=exc.message)
            if silent:
                if self._connection_store is not None:
                    self._connection_store.clear()
                return None
            if isinstance(exc, (AuthError, NotFoundError)):
                raise StoreConnectionError(exc.message, exc) from exc
            raise FetchError(exc.message, exc) from exc

        if self._store is not None and self._store is not store:
            self._store.close()
        self._store = store
        self._credentials = credentials
        self._commits.store = store
        self._projection.replace(records)
        if self._connection_store is not None:
            self._connection_store.save(credentials)
        if not silent:
            self._state.log("Curatorial archive synchronized.", "success")
        logger.info("studio.connected", table=credentials.table_name, records=len(records), silent=silent)
        return records

    def _close_store(self) -> None:
        if self._store is not None:
            self._store.close()
        self._store = None

    async def restore(self) -> list[Record] | None:
        """Silently reconnect with persisted credentials, if any."""

        if self._connection_store is None:
            return None
        credentials = self._connection_store.load()
        if credentials is None:
            return None
        return await self.connect(credentials, silent=True)

    def logout(self) -> None:
        if self._state.is_processing or self._run_requested:
            raise RunInProgressError("Cannot log out while a batch run is active")
        self._close_store()
        self._credentials = None
        self._active_config = None
        self._commits.store = None
        self._commits.output_field = None
        self._projection.clear()
        self._state.reset()
        self._review_ready = False
        if self._connection_store is not None:
            self._connection_store.clear()
        logger.info("studio.logged_out")

    # ------------------------------------------------------------------
    # records
    # ------------------------------------------------------------------
    def list_records(self) -> list[Record]:
        return self._projection.to_list()

    def get_record(self, record_id: str) -> Record | None:
        return self._projection.get(record_id)

    def available_fields(self) -> list[str]:
        return self._projection.field_names()

    def image_fields(self) -> list[str]:
        return self._projection.attachment_field_names()

    # ------------------------------------------------------------------
    # batch runs
    # ------------------------------------------------------------------
    @property
    def active_config(self) -> ProcessingConfig | None:
        return self._active_config

    @property
    def review_ready(self) -> bool:
        return self._review_ready

    def _mark_review_ready(self, pending: int) -> None:
        self._review_ready = True
        logger.info("studio.review_ready", pending=pending)

    def status(self) -> RunStatus:
        return self._state.snapshot()

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        return self._state.subscribe(listener)

    async def process(self, config: ProcessingConfig, *, cancel: threading.Event | None = None) -> RunStatus:
        if self._store is None:
            raise NotConnectedError("Connect to a record store before starting a run")
        # a run waiting behind a commit counts as in progress
        if self._state.is_processing or self._run_requested:
            raise RunInProgressError("A batch run is already in progress")

        self._run_requested = True
        try:
            async with self._lock:
                self._active_config = config
                self._commits.output_field = config.output_field
                self._review_ready = False
                self._cancel = cancel or threading.Event()
                try:
                    await self._orchestrator.process(self._projection.to_list(), config, cancel=self._cancel)
                finally:
                    self._cancel = None
        finally:
            self._run_requested = False
        return self._state.snapshot()

    def cancel(self) -> bool:
        """Ask the active run to stop before its next record."""

        if self._cancel is None:
            return False
        self._cancel.set()
        logger.info("studio.cancel_requested")
        return True

    # ------------------------------------------------------------------
    # review
    # ------------------------------------------------------------------
    def has_pending(self, record_id: str) -> bool:
        return self._state.get_pending(record_id) is not None

    async def commit_one(self, record_id: str) -> CommitError | None:
        if self._store is None:
            raise NotConnectedError("Connect to a record store before committing")
        return await self._commits.commit_one(record_id)

    async def commit_all(self) -> None:
        if self._store is None:
            raise NotConnectedError("Connect to a record store before committing")
        await self._commits.commit_all()
        self._review_ready = False

    def export_pending_csv(self, path: Path | None = None) -> Path:
        target = path or self._export_root / default_export_name()
        snapshot = self._state.snapshot()
        return export_pending_drafts(target, self._projection, snapshot.pending_updates)

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._close_store()
        self._credentials = None
        self._active_config = None
        self._cancel = None
        self._review_ready = False
        self._commits.store = None
        self._commits.output_field = None
        self._projection.clear()
        self._state.reset()


_service = StudioService()


def configure_studio_service(service: StudioService) -> None:
    """Install the studio service used by the HTTP routes."""

    global _service
    _service = service


def get_studio_service() -> StudioService:
    """Return the studio service for the process."""

    return _service


def reset_studio_state() -> None:
    """Reset the in-memory studio state (used in tests)."""

    _service.reset()
