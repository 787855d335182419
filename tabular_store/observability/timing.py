"""
Operation timing.

``timed`` wraps a callable, measures each call with a monotonic clock and
reports the sample to a sink. A sink is any callable taking
``(name, duration_seconds, ok)``.
"""

import functools
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

TimingSink = Callable[[str, float, bool], None]


def log_timing(name: str, duration_seconds: float, ok: bool) -> None:
    """Default sink: one DEBUG line per call."""
    logger.debug(
        "%s took %.2fms%s", name, duration_seconds * 1000, "" if ok else " (failed)"
    )


def timed(
    func: Callable,
    sink: Optional[TimingSink] = None,
    name: Optional[str] = None,
) -> Callable:
    """
    Return a wrapper around ``func`` that reports its duration to ``sink``.

    Failed calls are reported with ``ok=False`` and the exception propagates.
    """
    report = sink or log_timing
    label = name or getattr(func, "__qualname__", repr(func))

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.monotonic()
        ok = False
        try:
            result = func(*args, **kwargs)
            ok = True
            return result
        finally:
            report(label, time.monotonic() - start, ok)

    return wrapper


class TimingRecorder:
    """In-memory sink. Keeps every sample it receives."""

    def __init__(self):
        self.samples: List[Tuple[str, float, bool]] = []

    def __call__(self, name: str, duration_seconds: float, ok: bool) -> None:
        self.samples.append((name, duration_seconds, ok))

    def count(self, name: str) -> int:
        return sum(1 for n, _, _ in self.samples if n == name)

    def total(self, name: str) -> float:
        return sum(d for n, d, _ in self.samples if n == name)

    def summary(self) -> Dict[str, dict]:
        """Per-name call count, failure count and total duration."""
        out: Dict[str, dict] = {}
        for n, d, ok in self.samples:
            entry = out.setdefault(n, {"calls": 0, "failures": 0, "total_seconds": 0.0})
            entry["calls"] += 1
            entry["failures"] += 0 if ok else 1
            entry["total_seconds"] += d
        return out
