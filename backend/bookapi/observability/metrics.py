"""
BookAPI Backend - In-Process Metrics
=====================================

What:  Thread-safe counters and latency aggregates, keyed by metric name and
       tags (for this service: `operation` and `outcome`).
How:   Every series lives in a dict under one lock; `snapshot()` renders them
       as JSON-ready dicts for GET /metrics.

Series naming:
    A series key is the metric name followed by its sorted tags, e.g.
        http.requests{operation=create,outcome=success}

The store is process-local and resets on restart.
"""

from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any, Dict, Tuple

SeriesKey = Tuple[str, Tuple[Tuple[str, str], ...]]


@dataclass
class _LatencyAgg:
    count: int = 0
    sum_ms: float = 0.0
    max_ms: float = 0.0

    def observe(self, elapsed_ms: float) -> None:
        self.count += 1
        self.sum_ms += float(elapsed_ms)
        if elapsed_ms > self.max_ms:
            self.max_ms = float(elapsed_ms)


def _series_key(name: str, tags: Dict[str, Any]) -> SeriesKey:
    return name, tuple(sorted((k, str(v)) for k, v in tags.items()))


def format_series(key: SeriesKey) -> str:
    name, tags = key
    if not tags:
        return name
    return name + "{" + ",".join(f"{k}={v}" for k, v in tags) + "}"


class InMemoryMetrics:
    """Thread-safe, process-local metrics sink."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: Dict[SeriesKey, int] = {}
        self._timers: Dict[SeriesKey, _LatencyAgg] = {}

    def increment(self, name: str, value: int = 1, **tags: Any) -> None:
        key = _series_key(name, tags)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + int(value)

    def observe(self, name: str, elapsed_ms: float, **tags: Any) -> None:
        key = _series_key(name, tags)
        with self._lock:
            agg = self._timers.get(key)
            if agg is None:
                agg = self._timers[key] = _LatencyAgg()
            agg.observe(elapsed_ms)

    def counter_value(self, name: str, **tags: Any) -> int:
        with self._lock:
            return self._counters.get(_series_key(name, tags), 0)

    def timer_count(self, name: str, **tags: Any) -> int:
        with self._lock:
            agg = self._timers.get(_series_key(name, tags))
            return agg.count if agg else 0

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": {format_series(k): v for k, v in self._counters.items()},
                "latency_ms": {format_series(k): asdict(v) for k, v in self._timers.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters = {}
            self._timers = {}
