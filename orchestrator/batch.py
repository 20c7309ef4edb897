"""Bounded-concurrency batch runner with per-job state and selective retry."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from core import BatchRow, BatchSummary, GenerationJob, GenerationResult, JobState, RowError
from utils.exceptions import PaperPageError

from .batch_input import build_batch
from .queue import JobQueue


logger = logging.getLogger(__name__)

MIN_WORKERS = 1
MAX_WORKERS = 3

ChangeCallback = Callable[[GenerationJob], None]


def clamp_workers(value: int) -> int:
    return max(MIN_WORKERS, min(MAX_WORKERS, int(value or MIN_WORKERS)))


class BatchOrchestrator:
    """
    Runs many pipeline invocations over one shared job queue.

    Each worker is an asyncio task that pops a job id, runs the pipeline to
    completion, then pops the next one. Job states move
    queued -> running -> success | failed; only ``run_all`` and
    ``retry_failed`` move a finished job back to queued.
    """

    def __init__(
        self,
        pipeline,
        max_workers: int = MAX_WORKERS,
        on_change: Optional[ChangeCallback] = None,
    ) -> None:
        self.pipeline = pipeline
        self.max_workers = clamp_workers(max_workers)
        self.on_change = on_change
        self.errors: List[RowError] = []
        self.results: Dict[str, GenerationResult] = {}
        self._jobs: Dict[str, GenerationJob] = {}
        self._queue = JobQueue()
        self._draining = False

    @property
    def jobs(self) -> List[GenerationJob]:
        return list(self._jobs.values())

    def get_job(self, job_id: str) -> Optional[GenerationJob]:
        return self._jobs.get(job_id)

    def load(self, rows: List[BatchRow], files: Optional[Mapping[str, str]] = None) -> List[RowError]:
        """Replace the batch with validated rows; returns row-level errors."""
        jobs, errors = build_batch(rows, files)
        self.set_jobs(jobs)
        self.errors = errors
        logger.info(f"[Batch] Loaded {len(jobs)} jobs, {len(errors)} rejected rows")
        return errors

    def set_jobs(self, jobs: Iterable[GenerationJob]) -> None:
        if self._draining:
            raise RuntimeError("Cannot replace jobs while the batch is running")
        self._queue.clear()
        self._jobs = {}
        self.results = {}
        for job in jobs:
            if job.id in self._jobs:
                raise ValueError(f"Duplicate job id: {job.id}")
            self._jobs[job.id] = job

    # Intake control

    def hold_intake(self) -> None:
        """Stop workers from starting new jobs; running jobs finish normally."""
        self._queue.hold()
        logger.info("[Batch] Intake on hold")

    def resume_intake(self) -> None:
        self._queue.release()

    @property
    def intake_open(self) -> bool:
        return not self._queue.held

    # Progress

    def counts(self) -> BatchSummary:
        summary = BatchSummary(total=len(self._jobs))
        for job in self._jobs.values():
            field = job.state.value
            setattr(summary, field, getattr(summary, field) + 1)
        return summary

    def progress(self) -> float:
        return self.counts().percent

    # Commands

    async def run_all(self) -> BatchSummary:
        """Re-queue every job, discarding earlier results, and run them."""
        self._ensure_idle()
        self._queue.clear()
        self.results = {}
        for job in self._jobs.values():
            self._requeue(job)
        return await self.run_pending()

    async def retry_failed(self) -> BatchSummary:
        """Re-queue exactly the failed jobs; finished successes stay as they are."""
        self._ensure_idle()
        failed = [job for job in self._jobs.values() if job.state == JobState.FAILED]
        for job in failed:
            self.results.pop(job.id, None)
            self._requeue(job)
        logger.info(f"[Batch] Retrying {len(failed)} failed jobs")
        return await self.run_pending()

    async def run_pending(self) -> BatchSummary:
        """Run every queued job under the worker limit and wait for them."""
        self._ensure_idle()

        self.resume_intake()
        self._queue.extend(job.id for job in self._jobs.values() if job.state == JobState.QUEUED)
        worker_count = min(self.max_workers, len(self._queue))
        if worker_count == 0:
            return self.counts()

        self._draining = True
        try:
            logger.info(f"[Batch] Starting {worker_count} workers for {len(self._queue)} jobs")
            await asyncio.gather(*(self._worker(n) for n in range(worker_count)))
        finally:
            self._draining = False

        summary = self.counts()
        logger.info(
            f"[Batch] Done: {summary.success} success, {summary.failed} failed, "
            f"{summary.queued} queued of {summary.total}"
        )
        return summary

    # Internals

    def _ensure_idle(self) -> None:
        if self._draining:
            raise RuntimeError("Batch is already running")

    def _requeue(self, job: GenerationJob) -> None:
        job.reset()
        self._notify(job)

    async def _worker(self, worker_id: int) -> None:
        while True:
            job_id = self._queue.pop()
            if job_id is None:
                return
            job = self._jobs.get(job_id)
            if job is None or job.state != JobState.QUEUED:
                continue
            await self._run_job(job, worker_id)

    async def _run_job(self, job: GenerationJob, worker_id: int) -> None:
        self._transition(job, JobState.RUNNING, "")
        job.attempts += 1
        logger.info(f"[Batch] worker-{worker_id} running {job.id}")

        try:
            result = await self.pipeline.run(job.request)
        except PaperPageError as e:
            logger.error(f"[Batch] {job.id} failed ({e.kind}): {e.message}")
            self._transition(job, JobState.FAILED, e.message)
            return
        except Exception as e:
            logger.exception(f"[Batch] {job.id} failed unexpectedly")
            self._transition(job, JobState.FAILED, str(e) or type(e).__name__)
            return

        self.results[job.id] = result
        job.result_title = result.record.title
        self._transition(job, JobState.SUCCESS, "")

    def _transition(self, job: GenerationJob, state: JobState, message: str) -> None:
        job.state = state
        job.message = message
        job.updated_at = datetime.now(timezone.utc)
        self._notify(job)

    def _notify(self, job: GenerationJob) -> None:
        if self.on_change is not None:
            self.on_change(job)
