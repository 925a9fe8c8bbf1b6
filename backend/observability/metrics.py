"""
Stage timing for observability.

Responsibilities:
- Measure one pipeline stage with monotonic time
- Emit one METRIC_TIMER event per measurement via observability.logger
- Hand the measured duration back to the caller (reported as latencyMs)

Event timestamps (ts_ms) stay wall-clock; only durations are monotonic.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from observability.logger import log_event


@dataclass
class TimerHandle:
    """
    One running measurement.

    duration_ms is 0 until stop() runs, then frozen at the measured value.
    """
    name: str
    session_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    duration_ms: int = 0
    _start_ns: int = field(init=False, default_factory=time.monotonic_ns, repr=False)
    _stopped: bool = field(init=False, default=False, repr=False)

    def stop(self, *, failed: bool = False) -> int:
        """Freeze the duration and emit the metric. Later calls are no-ops."""
        if self._stopped:
            return self.duration_ms
        self._stopped = True
        self.duration_ms = (time.monotonic_ns() - self._start_ns) // 1_000_000

        log_event({
            "event_type": "METRIC_TIMER",
            "metric": self.name,
            "value_ms": self.duration_ms,
            "session_id": self.session_id,
            "failed": failed,
            "details": self.details,
        })
        return self.duration_ms


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[TimerHandle]:
    """
    Time the enclosed block.

    The metric is emitted exactly once, also when the block raises
    (with failed=true).

    Usage:
        with timed("stt_latency", session_id=session.session_id) as t:
            text = await stt.transcribe(path)
        latency_ms = t.duration_ms
    """
    handle = TimerHandle(name=name, session_id=session_id, details=dict(details or {}))
    try:
        yield handle
    except BaseException:
        handle.stop(failed=True)
        raise
    handle.stop()
