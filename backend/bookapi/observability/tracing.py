"""
BookAPI Backend - Request Tracing
==================================

What:  Minimal span model for per-request and per-database-call tracing.
How:   `Tracer.start_span()` is a context manager. The active span lives in a
       ContextVar, so a span opened inside another span (in the same task or
       a task spawned from it) becomes its child and shares its trace id.
       Finished spans are handed to exporters.

Exporters:
    LoggingSpanExporter   - one DEBUG log line per finished span
    InMemorySpanExporter  - bounded buffer, used by tests and diagnostics

Exporters are side channels: an exporter that raises is logged and skipped,
the traced code never sees the error.

Trace propagation:
    An incoming W3C `traceparent` header (00-<trace_id>-<span_id>-<flags>)
    continues the caller's trace; see `parse_traceparent()`.
"""

import asyncio
import logging
import re
import uuid
from collections import deque
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

_TRACEPARENT_RE = re.compile(r"^00-([0-9a-f]{32})-([0-9a-f]{16})-[0-9a-f]{2}$")


@dataclass
class Span:
    name: str
    trace_id: str
    span_id: str
    parent_id: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    status: str = "ok"
    start_time: float = field(default_factory=perf_counter)
    end_time: Optional[float] = None

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def set_attributes(self, attributes: Dict[str, Any]) -> None:
        self.attributes.update(attributes)

    @property
    def duration_ms(self) -> float:
        end = self.end_time if self.end_time is not None else perf_counter()
        return (end - self.start_time) * 1000.0


current_span: ContextVar[Optional[Span]] = ContextVar("current_span", default=None)

SpanExporter = Callable[[Span], None]


class LoggingSpanExporter:
    def __init__(self, logger_name: str = "bookapi.trace") -> None:
        self._logger = logging.getLogger(logger_name)

    def __call__(self, span: Span) -> None:
        self._logger.debug(
            "span %s trace=%s span=%s parent=%s status=%s %.2fms %s",
            span.name,
            span.trace_id,
            span.span_id,
            span.parent_id,
            span.status,
            span.duration_ms,
            span.attributes,
        )


class InMemorySpanExporter:
    """Keeps the most recent finished spans."""

    def __init__(self, maxlen: int = 1000) -> None:
        self._spans: deque = deque(maxlen=maxlen)

    def __call__(self, span: Span) -> None:
        self._spans.append(span)

    def finished_spans(self) -> List[Span]:
        return list(self._spans)

    def clear(self) -> None:
        self._spans.clear()


def parse_traceparent(header: Optional[str]) -> Optional[Tuple[str, str]]:
    """Return (trace_id, parent_span_id) from a W3C traceparent, or None."""
    if not header:
        return None
    match = _TRACEPARENT_RE.match(header.strip().lower())
    if not match:
        return None
    trace_id, parent_id = match.groups()
    if trace_id == "0" * 32 or parent_id == "0" * 16:
        return None
    return trace_id, parent_id


class Tracer:
    """Creates spans and ships them to exporters when they end."""

    def __init__(
        self,
        service_name: str = "bookapi",
        exporters: Optional[List[SpanExporter]] = None,
        resource: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service_name = service_name
        self.resource = dict(resource or {})
        self._exporters: List[SpanExporter] = list(exporters or [])

    def add_exporter(self, exporter: SpanExporter) -> None:
        self._exporters.append(exporter)

    @contextmanager
    def start_span(
        self,
        name: str,
        attributes: Optional[Dict[str, Any]] = None,
        trace_id: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> Iterator[Span]:
        parent = current_span.get()
        if trace_id is None and parent is not None:
            trace_id = parent.trace_id
            parent_id = parent.span_id

        span = Span(
            name=name,
            trace_id=trace_id or uuid.uuid4().hex,
            span_id=uuid.uuid4().hex[:16],
            parent_id=parent_id,
            attributes=dict(attributes or {}),
        )
        span.attributes.setdefault("service.name", self.service_name)
        for key, value in self.resource.items():
            span.attributes.setdefault(key, value)

        token = current_span.set(span)
        try:
            yield span
        except asyncio.CancelledError:
            span.status = "cancelled"
            raise
        except Exception as exc:
            span.status = "error"
            span.set_attribute("error", type(exc).__name__)
            span.set_attribute("error.message", str(exc))
            raise
        finally:
            current_span.reset(token)
            span.end_time = perf_counter()
            self._export(span)

    def _export(self, span: Span) -> None:
        for exporter in self._exporters:
            try:
                exporter(span)
            except Exception:
                logger.warning("Span exporter %r failed", exporter, exc_info=True)
