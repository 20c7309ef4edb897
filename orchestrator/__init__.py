"""Batch orchestration: input validation, job queue and worker pool."""

from .batch import MAX_WORKERS, MIN_WORKERS, BatchOrchestrator, clamp_workers
from .batch_input import build_batch, parse_batch_csv
from .queue import JobQueue

__all__ = [
    "BatchOrchestrator",
    "JobQueue",
    "MAX_WORKERS",
    "MIN_WORKERS",
    "build_batch",
    "clamp_workers",
    "parse_batch_csv",
]
