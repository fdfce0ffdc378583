"""Batch enrichment pipeline.

Records are processed strictly one at a time: SCANNING, GENERATING, then
VERIFYING, ending SETTLED or FAILED. A failure on one record is logged and
counted, and the run moves on; nothing short of cancellation stops a batch
before its last record.
"""
from __future__ import annotations

import asyncio
import functools
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

import structlog

from airgen.core.errors import GenerationError, MissingInputError, RunInProgressError
from airgen.core.schema import ProcessingConfig, ProcessMode
from airgen.core.state import RunStatusStore
from airgen.core.template import render
from airgen.domain import PendingUpdate, ProcessStep, Record, dedupe_sources
from airgen.infrastructure import GenerationClient, GenerationResult, get_generation_client

logger = structlog.get_logger(__name__)

FAILURE_MARKER = "Synthesis failed."

Delay = Callable[[float], Awaitable[None]]
ReviewListener = Callable[[int], None]


@dataclass(frozen=True, slots=True)
class PacingConfig:
    """Pauses between pipeline stages, in seconds."""

    scan: float = 0.8
    verify: float = 1.2
    cooldown: float = 0.8

    @classmethod
    def disabled(cls) -> "PacingConfig":
        return cls(scan=0.0, verify=0.0, cooldown=0.0)


class PipelineOrchestrator:
    def __init__(
        self,
        state: RunStatusStore,
        generator: GenerationClient | None = None,
        *,
        pacing: PacingConfig | None = None,
        delay: Delay = asyncio.sleep,
        generation_timeout: float | None = 120.0,
        on_review_ready: ReviewListener | None = None,
    ) -> None:
        self._state = state
        self._generator = generator
        self._pacing = pacing or PacingConfig()
        self._delay = delay
        self._timeout = generation_timeout
        self._on_review_ready = on_review_ready

    async def process(
        self,
        records: Sequence[Record],
        config: ProcessingConfig,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        if self._state.is_processing:
            raise RunInProgressError("A batch run is already in progress")

        batch = list(records)
        self._state.begin_run(len(batch))
        log = logger.bind(mode=config.mode.value, output_field=config.output_field)

        cancelled = False
        try:
            for index, record in enumerate(batch):
                if cancel is not None and cancel.is_set():
                    cancelled = True
                    self._state.log(f"Run cancelled before record {index + 1} of {len(batch)}.")
                    break
                await self._process_record(index, record, config)
        except asyncio.CancelledError:
            cancelled = True
            raise
        finally:
            self._state.finish(cancelled=cancelled)

        if cancelled:
            self._state.log("Batch curation cancelled. Review the drafts staged so far.")
        else:
            self._state.log("Batch curation complete. Review the narrative drafts.", "success")

        pending = len(self._state.pending_ids())
        log.info("pipeline.finished", pending=pending, cancelled=cancelled)
        if pending and self._on_review_ready is not None:
            self._on_review_ready(pending)

    # ------------------------------------------------------------------
    # per-record state machine
    # ------------------------------------------------------------------
    async def _process_record(self, index: int, record: Record, config: ProcessingConfig) -> None:
        state = self._state
        state.begin_record(index)
        state.log(f"Analyzing form & material: {record.short_id}...")
        await self._pause(self._pacing.scan)

        state.enter(ProcessStep.GENERATING)
        prompt = render(config.prompt_template, record.fields)

        image_url: str | None = None
        if config.mode == ProcessMode.ANALYZE_IMAGE:
            try:
                image_url = self._resolve_image(record, config.image_field)
            except MissingInputError as exc:
                state.record_failure(str(exc))
                return

        try:
            result = await self._dispatch(prompt, image_url)
        except GenerationError as exc:
            state.record_failure(f"Archive research error: {exc}", marker=FAILURE_MARKER)
        else:
            if not result.text.strip():
                state.record_failure(
                    f"Archive research error: empty response for {record.short_id}",
                    marker=FAILURE_MARKER,
                )
            else:
                state.set_result(result.text)
                state.enter(ProcessStep.VERIFYING)
                sources = dedupe_sources(result.sources)
                state.log(f"Contextualizing through {len(sources)} cultural citations...")
                await self._pause(self._pacing.verify)
                state.record_success(
                    record.id,
                    PendingUpdate(text=result.text, sources=sources),
                    f"Refined description ready for {record.short_id}",
                )

        await self._pause(self._pacing.cooldown)

    @staticmethod
    def _resolve_image(record: Record, image_field: str) -> str:
        url = record.attachment_url(image_field)
        if not url:
            raise MissingInputError(f"No visual data for {record.short_id}")
        return url

    async def _dispatch(self, prompt: str, image_url: str | None) -> GenerationResult:
        generator = self._generator or get_generation_client()
        if image_url is not None:
            call = functools.partial(generator.analyze_image, image_url, prompt)
        else:
            call = functools.partial(generator.generate_text, prompt)

        try:
            return await asyncio.wait_for(asyncio.to_thread(call), timeout=self._timeout)
        except GenerationError:
            raise
        except asyncio.TimeoutError as exc:
            raise GenerationError(f"Generation timed out after {self._timeout:g}s") from exc
        except Exception as exc:
            logger.warning("pipeline.generator_crashed", error_type=type(exc).__name__, error=str(exc))
            raise GenerationError(str(exc) or type(exc).__name__) from exc

    async def _pause(self, seconds: float) -> None:
        if seconds > 0:
            await self._delay(seconds)
