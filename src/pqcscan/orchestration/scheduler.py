"""Bounded-concurrency job scheduler."""

import asyncio
import contextlib
from collections import deque
from collections.abc import Callable, Sequence
from typing import Any

from pqcscan.core.config import get_settings
from pqcscan.core.exceptions import JobStateError, PersistenceError
from pqcscan.core.interfaces import IScanStore
from pqcscan.core.logging import get_logger
from pqcscan.models import ExternalScannerIntegration, ScanJob, ScanStatus
from pqcscan.orchestration.external import ExternalScannerPoller
from pqcscan.orchestration.pipeline import ScanPipeline


class JobScheduler:
    """Queues scan jobs and runs at most ``max_concurrent`` of them at once.

    The scheduler is the only writer of job status and progress. Every
    transition is applied to a copy, persisted, and only then published to the
    in-memory registry, so callers never observe a state the store rejected.
    """

    def __init__(
        self,
        store: IScanStore,
        pipeline: ScanPipeline | None = None,
        max_concurrent: int | None = None,
        tick_seconds: float | None = None,
        poller: ExternalScannerPoller | None = None,
    ) -> None:
        settings = get_settings()
        self.logger = get_logger("scheduler")
        self.store = store
        self.pipeline = pipeline or ScanPipeline(store)
        self.max_concurrent = max_concurrent or settings.max_concurrent_jobs
        self.tick_seconds = tick_seconds or settings.scheduler_tick_seconds
        self.poller = poller

        self._jobs: dict[str, ScanJob] = {}
        self._queue: deque[str] = deque()
        self._active: dict[str, asyncio.Task[None]] = {}
        self._finished: dict[str, asyncio.Event] = {}
        self._loop_task: asyncio.Task[None] | None = None
        self.peak_active = 0

    async def __aenter__(self) -> "JobScheduler":
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def active_count(self) -> int:
        return len(self._active)

    async def submit(
        self,
        job: ScanJob,
        integrations: Sequence[ExternalScannerIntegration] = (),
    ) -> str:
        """Persist and enqueue a pending job; returns its ID.

        Configured external scanners are triggered right away and run
        independently of the local pipeline.
        """
        if job.status != ScanStatus.PENDING:
            raise JobStateError(f"Only pending jobs can be submitted (got {job.status.value})")
        if job.id in self._jobs:
            raise JobStateError(f"Job {job.id} was already submitted")

        job = job.model_copy(deep=True)
        await self.store.create_job(job)
        self._jobs[job.id] = job
        self._finished[job.id] = asyncio.Event()
        self._queue.append(job.id)
        self.logger.info(
            "scan_submitted",
            job_id=job.id,
            repository=job.repository.url,
            branch=job.branch,
            queued=len(self._queue),
        )

        if self.poller and integrations:
            await self.poller.trigger_all(job.model_copy(deep=True), integrations)
        return job.id

    def get(self, job_id: str) -> ScanJob | None:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    def list(self, status: ScanStatus | None = None) -> list[ScanJob]:
        return [
            job.model_copy(deep=True)
            for job in self._jobs.values()
            if status is None or job.status == status
        ]

    async def start(self) -> None:
        """Start the background tick loop."""
        if self.is_running:
            return
        self._loop_task = asyncio.create_task(self._run_loop())
        self.logger.info(
            "scheduler_started",
            max_concurrent=self.max_concurrent,
            tick_seconds=self.tick_seconds,
        )

    async def stop(self) -> None:
        """Stop ticking and wait for in-flight jobs. Queued jobs stay pending."""
        if self._loop_task:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None
        if self._active:
            await asyncio.gather(*self._active.values(), return_exceptions=True)
        self.logger.info("scheduler_stopped", pending=len(self._queue))

    def tick(self) -> int:
        """Start queued jobs while capacity allows. Returns how many were started."""
        started = 0
        while self._queue and len(self._active) < self.max_concurrent:
            job_id = self._queue.popleft()
            if self._jobs[job_id].status != ScanStatus.PENDING:
                continue
            self._active[job_id] = asyncio.create_task(self._execute(job_id))
            self.peak_active = max(self.peak_active, len(self._active))
            started += 1
        return started

    async def wait(self, job_id: str) -> ScanJob:
        """Wait until a job reaches a terminal state and return it."""
        event = self._finished.get(job_id)
        if event is None:
            raise JobStateError(f"Unknown job: {job_id}")
        await event.wait()
        return self._jobs[job_id].model_copy(deep=True)

    async def drain(self) -> None:
        """Wait for every submitted job to finish."""
        await asyncio.gather(
            *(
                self._finished[job_id].wait()
                for job_id, job in self._jobs.items()
                if not job.is_terminal
            )
        )

    async def mark_failed(self, job_id: str, reason: str) -> ScanJob:
        """Fail a job from outside the pipeline.

        A running job stops at its next progress checkpoint.
        """
        if job_id not in self._jobs:
            raise JobStateError(f"Unknown job: {job_id}")
        was_pending = self._jobs[job_id].status == ScanStatus.PENDING
        job = await self._commit(job_id, lambda j: j.mark_failed(reason))
        self.logger.warning("scan_failed_by_operator", job_id=job_id, reason=reason)
        if was_pending:
            with contextlib.suppress(ValueError):
                self._queue.remove(job_id)
            self._finished[job_id].set()
        return job.model_copy(deep=True)

    async def _run_loop(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.tick_seconds)

    async def _commit(self, job_id: str, change: Callable[[ScanJob], None]) -> ScanJob:
        staged = self._jobs[job_id].model_copy(deep=True)
        change(staged)
        await self.store.update_job(staged)
        self._jobs[job_id] = staged
        return staged

    async def _execute(self, job_id: str) -> None:
        log = self.logger.bind(job_id=job_id)
        work = self._jobs[job_id].model_copy(deep=True)

        def sync_details(job: ScanJob) -> None:
            job.resolved_branch = work.resolved_branch
            job.warnings = list(work.warnings)

        async def checkpoint(progress: int) -> None:
            if self._jobs[job_id].is_terminal:
                raise JobStateError(f"Job {job_id} was stopped while running")

            def advance(job: ScanJob) -> None:
                sync_details(job)
                job.advance(progress)

            await self._commit(job_id, advance)
            log.debug("scan_progress", progress=progress)

        results_written = False
        try:
            await self._commit(job_id, lambda j: j.mark_running())
            log.info("scan_started", repository=work.repository.url, tools=work.config.tools)

            report = await self.pipeline.execute(work, checkpoint)
            results_written = True

            if self._jobs[job_id].is_terminal:
                log.warning("scan_already_finished", status=self._jobs[job_id].status.value)
                return

            def complete(job: ScanJob) -> None:
                sync_details(job)
                job.mark_completed()

            job = await self._commit(job_id, complete)
            log.info(
                "scan_completed",
                duration=job.duration_seconds,
                score=report.compliance.score if report.compliance else None,
            )
        except asyncio.CancelledError:
            await self._fail(job_id, "Scan cancelled")
            raise
        except Exception as e:
            if self._jobs[job_id].is_terminal:
                log.info("scan_stopped", status=self._jobs[job_id].status.value)
            else:
                log.error("scan_failed", error=str(e), error_type=type(e).__name__)
                await self._fail(job_id, str(e) or type(e).__name__)
        finally:
            # Only a completed job keeps its findings, assets and local report.
            if results_written and self._jobs[job_id].status != ScanStatus.COMPLETED:
                await self._discard_results(job_id)
            self._active.pop(job_id, None)
            self._finished[job_id].set()

    async def _fail(self, job_id: str, message: str) -> None:
        if self._jobs[job_id].is_terminal:
            return
        try:
            await self._commit(job_id, lambda j: j.mark_failed(message))
        except PersistenceError as e:
            # The registry still records the failure when the store is down.
            self.logger.error("scan_failure_not_persisted", job_id=job_id, error=e.message)
            self._jobs[job_id].mark_failed(message)

    async def _discard_results(self, job_id: str) -> None:
        try:
            await self.store.replace_results(job_id, [], [], None)
        except PersistenceError as e:
            self.logger.error("scan_results_not_discarded", job_id=job_id, error=e.message)
        else:
            self.logger.info("scan_results_discarded", job_id=job_id)
