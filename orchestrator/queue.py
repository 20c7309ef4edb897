"""Shared FIFO of batch job ids with an intake gate; one producer, N worker consumers."""

from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque, Iterable, Optional, Set


class JobQueue:
    """
    Mutex-guarded job id queue.

    A job id waits at most once and ``pop`` hands each id to exactly one
    worker. While intake is held, ``pop`` hands out nothing and the waiting
    ids stay in row order for the next run.
    """

    def __init__(self, job_ids: Iterable[str] = ()) -> None:
        self._pending: Deque[str] = deque()
        self._members: Set[str] = set()
        self._held = False
        self._lock = Lock()
        self.extend(job_ids)

    def push(self, job_id: str) -> bool:
        """Returns False when the id is already waiting."""
        with self._lock:
            if job_id in self._members:
                return False
            self._pending.append(job_id)
            self._members.add(job_id)
            return True

    def extend(self, job_ids: Iterable[str]) -> int:
        return sum(1 for job_id in job_ids if self.push(job_id))

    def pop(self) -> Optional[str]:
        """Next waiting id, or None when empty or held."""
        with self._lock:
            if self._held or not self._pending:
                return None
            job_id = self._pending.popleft()
            self._members.discard(job_id)
            return job_id

    def hold(self) -> None:
        with self._lock:
            self._held = True

    def release(self) -> None:
        with self._lock:
            self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()
            self._members.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
