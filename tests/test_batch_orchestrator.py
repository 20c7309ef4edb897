"""
Unit tests for the batch orchestrator (fake pipeline, real asyncio workers).
"""

from __future__ import annotations

import asyncio

import pytest

from core import (
    GenerationJob,
    GenerationRequest,
    GenerationResult,
    JobState,
    ProjectRecord,
    SourceDescriptor,
    SourceKind,
)
from orchestrator import BatchOrchestrator, JobQueue, clamp_workers, parse_batch_csv
from utils.exceptions import GeneratorUnavailable


class _FakePipeline:
    def __init__(self, failing=(), delay=0.01, crash=()):
        self.failing = set(failing)
        self.crash = set(crash)
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.peak = 0

    async def run(self, request):
        self.calls.append(request.project_id)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if request.project_id in self.failing:
                raise GeneratorUnavailable(f"quota exceeded for {request.project_id}")
            if request.project_id in self.crash:
                raise KeyError("boom")
        finally:
            self.in_flight -= 1

        record = ProjectRecord(
            title=f"Title {request.project_id}",
            institution="ModuLabs",
            venue="Publication",
            year="2024",
            abstract="a",
        )
        return GenerationResult(project_id=request.project_id, source=request.source, record=record)


def _job(job_id: str, state: JobState = JobState.QUEUED, message: str = "") -> GenerationJob:
    request = GenerationRequest(
        project_id=job_id,
        source=SourceDescriptor(kind=SourceKind.GITHUB, locator=f"https://github.com/acme/{job_id}"),
    )
    return GenerationJob(id=job_id, request=request, state=state, message=message)


def test_worker_count_is_clamped():
    assert clamp_workers(0) == 1
    assert clamp_workers(2) == 2
    assert clamp_workers(10) == 3
    assert BatchOrchestrator(_FakePipeline(), max_workers=8).max_workers == 3


def test_queue_hands_out_each_id_once():
    queue = JobQueue(["a", "b"])
    assert queue.push("a") is False
    assert queue.pop() == "a"
    assert queue.push("a") is True
    assert queue.pop() == "b"
    assert queue.pop() == "a"
    assert queue.pop() is None
    assert len(queue) == 0


def test_held_queue_keeps_waiting_ids_in_order():
    queue = JobQueue(["a", "b"])
    queue.hold()
    assert queue.pop() is None
    assert len(queue) == 2
    queue.release()
    assert [queue.pop(), queue.pop()] == ["a", "b"]


@pytest.mark.asyncio
async def test_running_jobs_never_exceed_worker_count():
    pipeline = _FakePipeline()
    observed = []

    def on_change(job):
        observed.append(sum(1 for j in orchestrator.jobs if j.state == JobState.RUNNING))

    orchestrator = BatchOrchestrator(pipeline, max_workers=2, on_change=on_change)
    orchestrator.set_jobs([_job(f"job-{i}") for i in range(5)])

    summary = await orchestrator.run_pending()

    assert summary.success == 5
    assert max(observed) <= 2
    assert pipeline.peak == 2
    assert sorted(pipeline.calls) == [f"job-{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_failures_are_isolated_per_job():
    pipeline = _FakePipeline(failing={"b"}, crash={"c"})
    orchestrator = BatchOrchestrator(pipeline, max_workers=3)
    orchestrator.set_jobs([_job("a"), _job("b"), _job("c"), _job("d")])

    summary = await orchestrator.run_pending()

    assert (summary.success, summary.failed) == (2, 2)
    assert orchestrator.get_job("a").result_title == "Title a"
    assert orchestrator.get_job("b").message == "quota exceeded for b"
    assert orchestrator.get_job("c").state == JobState.FAILED
    assert orchestrator.progress() == 100.0


@pytest.mark.asyncio
async def test_retry_failed_only_touches_failed_jobs():
    pipeline = _FakePipeline()
    transitions = []
    orchestrator = BatchOrchestrator(pipeline, on_change=lambda job: transitions.append((job.id, job.state)))
    orchestrator.set_jobs(
        [
            _job("ok", JobState.SUCCESS, "done earlier"),
            _job("bad-1", JobState.FAILED, "network"),
            _job("bad-2", JobState.FAILED, "quota"),
        ]
    )

    await orchestrator.retry_failed()

    assert transitions[:2] == [("bad-1", JobState.QUEUED), ("bad-2", JobState.QUEUED)]
    assert "ok" not in {job_id for job_id, _ in transitions}
    assert sorted(pipeline.calls) == ["bad-1", "bad-2"]
    ok = orchestrator.get_job("ok")
    assert (ok.state, ok.message) == (JobState.SUCCESS, "done earlier")
    assert orchestrator.counts().success == 3


@pytest.mark.asyncio
async def test_run_all_requeues_everything():
    pipeline = _FakePipeline()
    orchestrator = BatchOrchestrator(pipeline)
    orchestrator.set_jobs([_job("a", JobState.SUCCESS), _job("b", JobState.FAILED, "x")])

    summary = await orchestrator.run_all()

    assert sorted(pipeline.calls) == ["a", "b"]
    assert summary.success == 2
    assert orchestrator.get_job("b").message == ""
    assert all(job.attempts == 1 for job in orchestrator.jobs)


@pytest.mark.asyncio
async def test_hold_intake_leaves_unstarted_jobs_queued():
    pipeline = _FakePipeline()
    orchestrator = BatchOrchestrator(pipeline, max_workers=1)

    def hold_after_first_start(job):
        if job.state == JobState.RUNNING:
            orchestrator.hold_intake()

    orchestrator.on_change = hold_after_first_start
    orchestrator.set_jobs([_job("a"), _job("b"), _job("c")])

    summary = await orchestrator.run_pending()
    assert (summary.success, summary.queued) == (1, 2)
    assert pipeline.calls == ["a"]

    orchestrator.on_change = None
    summary = await orchestrator.run_pending()
    assert summary.success == 3
    assert pipeline.calls == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_invalid_rows_never_execute():
    text = (
        "sourceType,sourceUrl,projectId\n"
        "github,https://github.com/acme/a,a\n"
        "fax,https://example.org/b,b\n"
        "youtube,https://youtu.be/c,c\n"
    )
    pipeline = _FakePipeline()
    orchestrator = BatchOrchestrator(pipeline)

    errors = orchestrator.load(parse_batch_csv(text))
    summary = await orchestrator.run_pending()

    assert len(errors) == 1
    assert summary.total == 2
    assert sorted(pipeline.calls) == ["a", "c"]


class _GatedPipeline(_FakePipeline):
    def __init__(self):
        super().__init__(delay=0)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def run(self, request):
        self.started.set()
        await self.release.wait()
        return await super().run(request)


@pytest.mark.asyncio
async def test_commands_refused_mid_run_leave_jobs_untouched():
    pipeline = _GatedPipeline()
    orchestrator = BatchOrchestrator(pipeline, max_workers=1)
    orchestrator.set_jobs([_job("a"), _job("b"), _job("done", JobState.SUCCESS, "earlier")])

    drain = asyncio.create_task(orchestrator.run_pending())
    await pipeline.started.wait()
    before = {job.id: job.state for job in orchestrator.jobs}

    with pytest.raises(RuntimeError):
        await orchestrator.run_all()
    with pytest.raises(RuntimeError):
        await orchestrator.retry_failed()

    assert {job.id: job.state for job in orchestrator.jobs} == before
    assert before["a"] == JobState.RUNNING
    assert orchestrator.get_job("done").message == "earlier"

    pipeline.release.set()
    summary = await drain

    assert summary.success == 3
    assert pipeline.calls == ["a", "b"]
