"""
Asynchronous Batch Preloading.

POST /preload returns as soon as the batch is validated and a job is
registered; the actual lookups run on a worker thread. Clients poll the
job through the registry.

Pass Semantics:
    - Texts are looked up in input order, one at a time.
    - Every result references the cached record by key ("/play/{key}").
    - The first failure fails the whole job; partial results are dropped.
    - The pass only talks back through JobRegistry transitions.

There is no watchdog: a resolver that never returns leaves its job in
processing until the registry is purged.
"""
from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, List, Optional, Sequence

from pronounce_ms.audio.jobs import JobRegistry, JobStatus, PreloadJob, PreloadResult
from pronounce_ms.audio.lookup import AudioLookup
from pronounce_ms.core.config import Defaults
from pronounce_ms.core.logging import fail, get_logger, info, set_request_id, success
from pronounce_ms.core.metrics import metrics
from pronounce_ms.services.validators import validate_language, validate_texts
from pronounce_ms.utils.timeit import timeit

_LOG = get_logger("pronounce-ms.preload")


def play_reference(key: str) -> str:
    """Client-facing playback path for a cache key."""
    return f"/play/{key}"


class PreloadOrchestrator:
    """
    Accepts preload batches and resolves them in the background.

    Attributes:
        lookup: Shared cache-backed lookup.
        registry: Where jobs and their transitions live.
        max_texts: Largest accepted batch.
    """

    def __init__(
        self,
        lookup: AudioLookup,
        registry: JobRegistry,
        supported_languages: Sequence[str] = Defaults.SUPPORTED_LANGUAGES,
        default_language: str = Defaults.DEFAULT_LANGUAGE,
        max_texts: int = Defaults.PRELOAD_MAX_TEXTS,
        max_text_chars: int = Defaults.TEXT_MAX_CHARS,
        max_workers: int = Defaults.PRELOAD_MAX_WORKERS,
    ):
        self.lookup = lookup
        self.registry = registry
        self.supported_languages = list(supported_languages)
        self.default_language = default_language
        self.max_texts = max_texts
        self.max_text_chars = max_text_chars
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="preload")
        self._futures: dict[str, Future] = {}

    def submit(self, texts: Any, language: Optional[str] = None) -> PreloadJob:
        """
        Validate a batch, register a processing job and schedule its pass.

        Returns:
            The job as registered. Its status is always processing, even
            if the pass has already finished by the time the caller reads
            it; poll the registry for the current state.

        Raises:
            ValidationError: Before any job is created.
        """
        texts = validate_texts(texts, self.max_texts, self.max_text_chars)
        language = validate_language(language, self.supported_languages, self.default_language)

        job = PreloadJob(texts=texts, language=language)
        self.registry.put(job)
        info(_LOG, "preload_accepted", job=job.id, texts=len(texts), language=language)

        future = self._executor.submit(self._run, job)
        self._futures[job.id] = future
        future.add_done_callback(lambda _f, jid=job.id: self._futures.pop(jid, None))
        return job

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Optional[PreloadJob]:
        """
        Block until the job's pass has finished, then return its snapshot.

        Returns the current snapshot immediately if no pass is pending.
        """
        future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.registry.get(job_id)

    def _run(self, job: PreloadJob) -> None:
        set_request_id(job.id[:12])
        results: List[PreloadResult] = []
        with timeit("preload_pass") as t:
            try:
                for text in job.texts:
                    found = self.lookup.lookup(text, job.language)
                    results.append(PreloadResult(
                        text=text,
                        cache_key=found.key,
                        audio_reference=play_reference(found.key),
                        was_cached=found.cached,
                    ))
            except Exception as e:
                self.registry.fail(job.id, str(e))
                metrics.record_preload(JobStatus.FAILED)
                fail(_LOG, "preload_failed", job=job.id, error=str(e))
                return

        self.registry.complete(job.id, results)
        metrics.record_preload(JobStatus.COMPLETED)
        success(
            _LOG, "preload_completed",
            job=job.id,
            texts=len(results),
            cached=sum(1 for r in results if r.was_cached),
            seconds=round(t.timing.seconds, 4),
        )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
