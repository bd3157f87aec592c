# Event formatter: turns one event plus the entered spans into one JSON line.

from __future__ import annotations

import io
import itertools
import sys
import threading
from typing import IO, Any, Callable, Hashable, Iterable, Mapping, Optional, Union

from .config import Config
from .fields import FieldSet
from .metadata import Event, Metadata
from .spans import SpanRegistry
from .timefmt import format_timestamp
from .visitor import JsonVisitor
from .writer import JsonWriter

Sink = Union[IO[bytes], IO[str]]
MakeWriter = Callable[[], Sink]

_span_ids = itertools.count(1)


def next_span_id() -> int:
    """Process-unique id for spans created without a host-assigned id."""
    return next(_span_ids)


def _default_writer() -> Sink:
    return sys.stderr


class JsonLayer:
    """Formats events as JSON lines and keeps the span state they draw from.

    ``writer`` is either a writable stream (binary or text) or a zero-argument
    callable returning one, called once per line. Host adapters drive the
    ``on_*`` lifecycle methods; tests can call them directly.
    """

    def __init__(
        self,
        writer: Union[Sink, MakeWriter, None] = None,
        config: Optional[Config] = None,
        registry: Optional[SpanRegistry] = None,
    ) -> None:
        if writer is None:
            self._make_writer: MakeWriter = _default_writer
        elif hasattr(writer, "write"):
            self._make_writer = lambda: writer  # type: ignore[assignment,return-value]
        else:
            self._make_writer = writer  # type: ignore[assignment]
        self._config = config or Config()
        self._registry = registry or SpanRegistry()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def registry(self) -> SpanRegistry:
        return self._registry

    # -- host lifecycle -------------------------------------------------

    def on_span_create(self, span_id: Hashable, metadata: Metadata, fields: Optional[Mapping[str, Any]] = None) -> None:
        self._registry.create(span_id, metadata, fields)

    def on_span_record(self, span_id: Hashable, fields: Mapping[str, Any]) -> None:
        self._registry.record(span_id, fields)

    def on_enter(self, span_id: Hashable) -> None:
        self._registry.enter(span_id)

    def on_exit(self, span_id: Hashable) -> None:
        self._registry.exit(span_id)

    def on_close(self, span_id: Hashable) -> None:
        self._registry.close(span_id)

    def on_event(self, event: Event) -> None:
        """Format ``event`` and write it to the sink. Sink errors propagate."""
        self._write(self.format_event(event))

    # -- formatting -----------------------------------------------------

    def format_event(self, event: Event) -> str:
        cfg = self._config
        md = event.metadata
        # snapshot each span's fields once; they may be re-recorded concurrently
        chain = [(record.name, record.fields) for record in self._registry.current()]

        jw = JsonWriter()
        jw.obj_start()
        visitor = JsonVisitor(jw)

        if cfg.timestamps_enabled:
            visitor.record_str("timestamp", str(cfg.timer()) if cfg.timer is not None else format_timestamp())
        visitor.record_str("level", str(md.level))
        if cfg.include_target:
            visitor.record_str("target", md.target)

        show_file = cfg.include_file and md.file is not None
        show_line = cfg.include_line_number and md.line is not None
        show_span = cfg.include_current_span and bool(chain)
        show_spans = cfg.include_span_list and bool(chain)

        field_sets = [fields for _, fields in chain]
        field_sets.append(event.fields)
        if cfg.flatten_event:
            reserved = _top_level_keys(cfg, show_file, show_line, show_span, show_spans)
            _write_merged(visitor, field_sets, reserved)
        else:
            visitor.key("fields")
            jw.obj_start()
            visitor.reset()
            _write_merged(visitor, field_sets, frozenset())
            jw.obj_end()
            visitor.reset(first=False)

        if show_file:
            visitor.record_str("filename", md.file)
        if show_line:
            visitor.record_u64("line_number", md.line)
        if cfg.include_thread_id:
            visitor.record_str("threadId", f"ThreadId({threading.get_ident()})")
        if cfg.include_thread_name:
            visitor.record_str("threadName", threading.current_thread().name)

        if show_span:
            visitor.key("span")
            _write_span_object(jw, *chain[-1])
        if show_spans:
            visitor.key("spans")
            jw.arr_start()
            for i, (name, fields) in enumerate(chain):
                if i:
                    jw.comma()
                _write_span_object(jw, name, fields)
            jw.arr_end()

        jw.obj_end()
        jw.finish_line()
        return jw.finish()

    def _write(self, line: str) -> None:
        sink = self._make_writer()
        if _is_text_sink(sink):
            sink.write(line)
        else:
            sink.write(line.encode("utf-8"))

    def flush(self) -> None:
        sink = self._make_writer()
        flush = getattr(sink, "flush", None)
        if flush is not None:
            flush()


def _is_text_sink(sink: Any) -> bool:
    # file-likes outside the io hierarchy (SpooledTemporaryFile) only expose a mode
    return isinstance(sink, io.TextIOBase) or "b" not in getattr(sink, "mode", "b")


def _top_level_keys(cfg: Config, show_file: bool, show_line: bool, show_span: bool, show_spans: bool) -> frozenset:
    keys = {"level"}
    if cfg.timestamps_enabled:
        keys.add("timestamp")
    if cfg.include_target:
        keys.add("target")
    if show_file:
        keys.add("filename")
    if show_line:
        keys.add("line_number")
    if cfg.include_thread_id:
        keys.add("threadId")
    if cfg.include_thread_name:
        keys.add("threadName")
    if show_span:
        keys.add("span")
    if show_spans:
        keys.add("spans")
    return frozenset(keys)


def _write_merged(visitor: JsonVisitor, field_sets: Iterable[FieldSet], reserved: frozenset) -> None:
    """Write span fields root to leaf, then the event's own, later names winning."""
    field_sets = [fs for fs in field_sets if fs]
    total = 0
    names: set = set()
    for fs in field_sets:
        total += len(fs)
        names.update(fs.names())
    if len(names) == total and names.isdisjoint(reserved):
        # no collisions: reuse the fragments encoded at record time
        for fs in field_sets:
            visitor.raw_fields(fs.fragment)
        return
    merged: dict = {}
    for fs in field_sets:
        for name, value in fs.items():
            merged.pop(name, None)
            merged[name] = value
    for name, value in merged.items():
        if name not in reserved:
            visitor.record(name, value)


def _write_span_object(jw: JsonWriter, name: str, fields: FieldSet) -> None:
    jw.obj_start()
    visitor = JsonVisitor(jw)
    visitor.record_str("name", name)
    if "name" in fields:
        visitor.record_all((k, v) for k, v in fields.items() if k != "name")
    else:
        visitor.raw_fields(fields.fragment)
    jw.obj_end()
