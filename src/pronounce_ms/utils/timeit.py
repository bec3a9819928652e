"""
Timing Utilities.

A small context manager used to time resolver calls, preload passes and
HTTP requests. Uses time.perf_counter() for sub-millisecond precision.

Example:
    with timeit("resolve") as t:
        locator = resolver.resolve(text, language)
    info(_LOG, "resolved", seconds=round(t.timing.seconds, 4))
"""
from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, Optional


@dataclass
class Timing:
    """
    Timing measurement result.

    Attributes:
        name: What was timed (e.g. "resolve", "preload_pass").
        seconds: Duration in seconds.
        meta: Optional metadata for log context.
    """
    name: str
    seconds: float
    meta: Optional[Dict[str, Any]] = None

    @property
    def millis(self) -> int:
        return round(self.seconds * 1000)


class timeit:
    """
    Context manager for timing code blocks.

    The result is available as `.timing` after the block exits, also when
    the block raised.
    """

    def __init__(self, name: str, meta: Optional[Dict[str, Any]] = None):
        self.name = name
        self.meta = meta
        self._t0: float | None = None
        self.timing: Timing | None = None

    def __enter__(self) -> "timeit":
        self._t0 = perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        t1 = perf_counter()
        assert self._t0 is not None
        self.timing = Timing(name=self.name, seconds=(t1 - self._t0), meta=self.meta)
