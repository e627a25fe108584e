"""In-process counters and samples for the crop engine and re-encoder.

Counters track how often things happen (sessions begun, encode passes,
fallbacks). Samples keep the ordered values observed for a key, either a
duration recorded by :meth:`_Metrics.timed` or a value passed to
:meth:`_Metrics.observe` such as the byte size of each encode pass.

Usage:
    from image_cropper.metrics import metrics
    metrics.inc("encoder.encode_attempts")
    metrics.observe("encoder.encoded_bytes", len(data))
    with metrics.timed("session.commit_duration"):
        ...
    snapshot = metrics.snapshot()
"""

from __future__ import annotations

import time
from collections import defaultdict
from contextlib import contextmanager
from threading import RLock
from typing import Any


class _Metrics:
    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)
        self._samples: dict[str, list[float]] = defaultdict(list)
        self._lock = RLock()

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[key] += int(amount)

    def count(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    def observe(self, key: str, value: float) -> None:
        with self._lock:
            self._samples[key].append(float(value))

    def samples(self, key: str) -> list[float]:
        with self._lock:
            return list(self._samples.get(key, ()))

    @contextmanager
    def timed(self, key: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe(key, time.perf_counter() - start)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "samples": {k: list(v) for k, v in self._samples.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._samples.clear()


metrics = _Metrics()
