# Span field store and the per-context stack of entered spans.

from __future__ import annotations

import contextvars
import itertools
import logging
import threading
from typing import Any, Hashable, Mapping, Optional, Tuple

from .fields import FieldSet
from .metadata import Metadata

log = logging.getLogger(__name__)

_registry_ids = itertools.count()


class SpanRecord:
    """One open span: its metadata and the fields recorded so far.

    ``fields`` is swapped for a new FieldSet on every record, never mutated,
    so a formatter holding a reference always sees a consistent snapshot.
    """

    __slots__ = ("id", "metadata", "fields", "entered", "closed")

    def __init__(self, span_id: Hashable, metadata: Metadata, fields: FieldSet) -> None:
        self.id = span_id
        self.metadata = metadata
        self.fields = fields
        self.entered = 0
        self.closed = False

    @property
    def name(self) -> str:
        return self.metadata.name

    def __repr__(self) -> str:
        return f"SpanRecord(id={self.id!r}, name={self.name!r}, fields={self.fields!r})"


class SpanRegistry:
    """Maps span ids to records and tracks which spans each context has entered.

    The id map is shared by every thread and task and guarded by one lock.
    The stack lives in a ContextVar, so each thread and each asyncio task
    pushes and pops its own spans.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._spans: dict[Hashable, SpanRecord] = {}
        self._stack: contextvars.ContextVar[Tuple[SpanRecord, ...]] = contextvars.ContextVar(
            f"microjson_span_stack_{next(_registry_ids)}", default=()
        )

    def create(self, span_id: Hashable, metadata: Metadata, fields: Optional[Mapping[str, Any]] = None) -> SpanRecord:
        record = SpanRecord(span_id, metadata, FieldSet(fields))
        with self._lock:
            stale = self._spans.get(span_id)
            self._spans[span_id] = record
        if stale is not None:
            log.debug("span id %r reused before close; replacing %r", span_id, stale.name)
        return record

    def record(self, span_id: Hashable, fields: Mapping[str, Any]) -> None:
        with self._lock:
            record = self._spans.get(span_id)
            if record is not None:
                record.fields = record.fields.extend(fields)
        if record is None:
            log.debug("record on unknown span id %r ignored", span_id)

    def get(self, span_id: Hashable) -> Optional[SpanRecord]:
        with self._lock:
            return self._spans.get(span_id)

    def enter(self, span_id: Hashable) -> None:
        with self._lock:
            record = self._spans.get(span_id)
            if record is not None:
                record.entered += 1
        if record is None:
            log.debug("enter on unknown span id %r ignored", span_id)
            return
        self._stack.set(self._stack.get() + (record,))

    def exit(self, span_id: Hashable) -> None:
        """Pop ``span_id`` off this context's stack.

        Exiting a span that is not the innermost one unwinds everything
        entered after it as well.
        """
        stack = self._stack.get()
        for depth in range(len(stack) - 1, -1, -1):
            if stack[depth].id == span_id:
                break
        else:
            log.debug("exit on span id %r that is not entered in this context", span_id)
            return
        popped = stack[depth:]
        if len(popped) > 1:
            log.debug(
                "out-of-order exit of %r; unwinding %d inner span(s)", stack[depth].name, len(popped) - 1
            )
        self._stack.set(stack[:depth])
        with self._lock:
            for record in popped:
                record.entered -= 1
                if record.closed and record.entered <= 0:
                    self._release(record)

    def close(self, span_id: Hashable) -> None:
        """Release a span. A span still entered somewhere is freed on its last exit."""
        with self._lock:
            record = self._spans.get(span_id)
            if record is None:
                return
            record.closed = True
            if record.entered <= 0:
                self._release(record)

    def _release(self, record: SpanRecord) -> None:
        # caller holds the lock; the id may already belong to a newer span
        if self._spans.get(record.id) is record:
            del self._spans[record.id]

    def current(self) -> Tuple[SpanRecord, ...]:
        """Entered spans of this context, root first."""
        return self._stack.get()

    def depth(self) -> int:
        return len(self._stack.get())

    def __len__(self) -> int:
        with self._lock:
            return len(self._spans)
