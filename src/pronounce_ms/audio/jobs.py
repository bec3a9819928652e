"""
Preload Job Tracking.

A preload job follows one batch of texts through its background
resolution pass:

    processing ──> completed   (results in input order)
              └──> failed      (error message, no results)

Transitions are monotonic. A terminal job stays readable for the
retention window (5 minutes by default) and is then removed, either by
the periodic JobSweeper or on the first read after the window closed.

Jobs are replaced, never mutated in place: readers always see a
consistent snapshot.
"""
from __future__ import annotations

import dataclasses
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pronounce_ms.core.config import Defaults
from pronounce_ms.core.logging import get_logger, info, verbose

_LOG = get_logger("pronounce-ms.jobs")


class JobStatus:
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


@dataclass(frozen=True)
class PreloadResult:
    """
    Outcome of one text within a completed job.

    Attributes:
        text: The input text.
        cache_key: Key the audio is cached under.
        audio_reference: Client-facing playback path ("/play/{key}").
        was_cached: True if the record existed before this job.
    """
    text: str
    cache_key: str
    audio_reference: str
    was_cached: bool


@dataclass(frozen=True)
class PreloadJob:
    """
    One batch preload request.

    Attributes:
        id: Opaque job identifier.
        texts: Texts to resolve, in order.
        language: Language code for every text.
        status: One of JobStatus.
        results: Populated only when completed.
        error: Populated only when failed.
        started_at: Unix timestamp of acceptance.
        completed_at: Unix timestamp of the terminal transition.
        processing_duration: completed_at - started_at, in seconds.
    """
    texts: List[str]
    language: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: str = JobStatus.PROCESSING
    results: List[PreloadResult] = field(default_factory=list)
    error: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None
    processing_duration: Optional[float] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_expired(self, retention_seconds: float, now: Optional[float] = None) -> bool:
        """True for a terminal job older than the retention window."""
        if not self.is_terminal:
            return False
        now = time.time() if now is None else now
        return now - self.started_at > retention_seconds


class JobRegistry:
    """
    Thread-safe store of preload jobs keyed by id.

    All reads and transitions happen under one lock. Transitions are only
    allowed out of processing; attempting one on a missing or terminal
    job is a no-op that returns False (e.g. after a full purge).
    """

    def __init__(self, retention_seconds: float = Defaults.PRELOAD_RETENTION_SECONDS):
        self.retention_seconds = float(retention_seconds)
        self._jobs: Dict[str, PreloadJob] = {}
        self._lock = threading.Lock()

    def put(self, job: PreloadJob) -> None:
        with self._lock:
            self._jobs[job.id] = job

    def get(self, job_id: str, now: Optional[float] = None) -> Optional[PreloadJob]:
        """
        Get a job snapshot.

        A terminal job past the retention window is deleted on read and
        reported as absent.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            if job.is_expired(self.retention_seconds, now):
                del self._jobs[job_id]
                verbose(_LOG, "expired_on_read", job=job_id)
                return None
            return job

    def delete(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def clear(self) -> int:
        with self._lock:
            previous = len(self._jobs)
            self._jobs.clear()
        return previous

    def size(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __len__(self) -> int:
        return self.size()

    def count_by_status(self) -> Dict[str, int]:
        counts = {JobStatus.PROCESSING: 0, JobStatus.COMPLETED: 0, JobStatus.FAILED: 0}
        with self._lock:
            for job in self._jobs.values():
                counts[job.status] = counts.get(job.status, 0) + 1
        return counts

    def complete(self, job_id: str, results: List[PreloadResult], now: Optional[float] = None) -> bool:
        return self._finish(job_id, JobStatus.COMPLETED, results=list(results), error=None, now=now)

    def fail(self, job_id: str, error: str, now: Optional[float] = None) -> bool:
        return self._finish(job_id, JobStatus.FAILED, results=[], error=error, now=now)

    def _finish(
        self,
        job_id: str,
        status: str,
        results: List[PreloadResult],
        error: Optional[str],
        now: Optional[float],
    ) -> bool:
        now = time.time() if now is None else now
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return False
            self._jobs[job_id] = dataclasses.replace(
                job,
                status=status,
                results=results,
                error=error,
                completed_at=now,
                processing_duration=max(0.0, now - job.started_at),
            )
        verbose(_LOG, "transition", job=job_id, status=status)
        return True

    def sweep_older_than(self, retention_seconds: Optional[float] = None, now: Optional[float] = None) -> int:
        """
        Remove terminal jobs older than the retention window.

        Jobs still processing are never removed here.

        Returns:
            Number of removed jobs.
        """
        retention = self.retention_seconds if retention_seconds is None else retention_seconds
        now = time.time() if now is None else now
        with self._lock:
            expired = [jid for jid, job in self._jobs.items() if job.is_expired(retention, now)]
            for jid in expired:
                del self._jobs[jid]
        return len(expired)


class JobSweeper:
    """
    Background thread that sweeps expired jobs at a fixed interval.

    Started and stopped by the application lifespan. stop() wakes the
    thread immediately instead of waiting out the interval.
    """

    def __init__(
        self,
        registry: JobRegistry,
        interval_seconds: float = Defaults.PRELOAD_SWEEP_INTERVAL_SECONDS,
    ):
        self.registry = registry
        self.interval_seconds = float(interval_seconds)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="preload-job-sweeper",
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def sweep_once(self) -> int:
        removed = self.registry.sweep_older_than()
        if removed > 0:
            info(_LOG, "job_sweep", removed=removed, remaining=self.registry.size())
        return removed

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.sweep_once()
