"""Single-writer container for run status and the pending cache.

Only the orchestrator and the commit protocol call the mutating methods.
Everyone else reads detached snapshots or subscribes for a snapshot after
every change.
"""
from __future__ import annotations

from typing import Callable

import structlog

from airgen.domain import LogEntry, LogStatus, PendingCache, PendingUpdate, ProcessStep, RunStatus

logger = structlog.get_logger(__name__)

INIT_MESSAGE = "Initiating curatorial research cycle..."

StatusListener = Callable[[RunStatus], None]


class RunStatusStore:
    def __init__(self) -> None:
        self._status = RunStatus()
        self._pending = PendingCache()
        self._listeners: list[StatusListener] = []

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------
    def snapshot(self) -> RunStatus:
        status = self._status.copy()
        status.pending_updates = self._pending.to_mapping()
        return status

    @property
    def is_processing(self) -> bool:
        return self._status.is_processing

    def pending_ids(self) -> list[str]:
        return self._pending.ids()

    def get_pending(self, record_id: str) -> PendingUpdate | None:
        return self._pending.get(record_id)

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # ------------------------------------------------------------------
    # run lifecycle
    # ------------------------------------------------------------------
    def begin_run(self, total: int) -> None:
        self._pending.clear()
        self._status = RunStatus(
            total=total,
            is_processing=True,
            logs=[LogEntry.create(INIT_MESSAGE, "info")],
        )
        logger.info("run.started", total=total)
        self._notify()

    def begin_record(self, index: int) -> None:
        self._status.current = index + 1
        self._status.current_result = ""
        self._status.step = ProcessStep.SCANNING
        self._notify()

    def enter(self, step: ProcessStep) -> None:
        self._status.step = step
        self._notify()

    def set_result(self, text: str) -> None:
        self._status.current_result = text
        self._notify()

    def record_failure(self, message: str, *, marker: str | None = None) -> None:
        self._status.failed += 1
        self._status.step = ProcessStep.FAILED
        if marker is not None:
            self._status.current_result = marker
        self._append_log(message, "error")
        self._notify()

    def record_success(self, record_id: str, update: PendingUpdate, message: str) -> None:
        self._pending.stage(record_id, update)
        self._status.completed += 1
        self._status.step = ProcessStep.SETTLED
        self._append_log(message, "success")
        self._notify()

    def finish(self, *, cancelled: bool = False) -> None:
        self._status.is_processing = False
        self._status.step = ProcessStep.FINISHED
        self._status.cancelled = cancelled
        logger.info(
            "run.finished",
            completed=self._status.completed,
            failed=self._status.failed,
            total=self._status.total,
            cancelled=cancelled,
        )
        self._notify()

    # ------------------------------------------------------------------
    # pending cache
    # ------------------------------------------------------------------
    def stage(self, record_id: str, update: PendingUpdate) -> None:
        self._pending.stage(record_id, update)
        self._notify()

    def evict(self, record_id: str) -> PendingUpdate | None:
        update = self._pending.evict(record_id)
        if update is not None:
            self._notify()
        return update

    # ------------------------------------------------------------------
    # logs
    # ------------------------------------------------------------------
    def log(self, message: str, status: LogStatus = "info") -> LogEntry:
        entry = self._append_log(message, status)
        self._notify()
        return entry

    def _append_log(self, message: str, status: LogStatus) -> LogEntry:
        entry = LogEntry.create(message, status)
        self._status.logs.append(entry)
        if status == "error":
            logger.warning("run.log", message=message, status=status)
        else:
            logger.info("run.log", message=message, status=status)
        return entry

    def reset(self) -> None:
        """Drop all run state (used on logout and in tests)."""

        self._pending.clear()
        self._status = RunStatus()
        self._notify()
