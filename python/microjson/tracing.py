# Span facade for application code: create, enter, record, exit, close.

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Any, Hashable, Iterator, Optional

from .layer import next_span_id
from .metadata import Level, Metadata


def _resolve_layer(layer):
    if layer is not None:
        return layer
    from .bootstrap import get_layer

    return get_layer()


class Span:
    """Handle to one span registered with a layer.

    Usable as a context manager for a single enter/exit bracket; the span
    stays open (and may be entered again) until :meth:`close`.
    """

    def __init__(
        self,
        name: str,
        target: Optional[str] = None,
        level: Any = Level.INFO,
        layer=None,
        span_id: Optional[Hashable] = None,
        _depth: int = 1,
        **fields: Any,
    ) -> None:
        frame = sys._getframe(_depth)
        self.id = span_id if span_id is not None else next_span_id()
        self.metadata = Metadata(
            name=name,
            target=target or frame.f_globals.get("__name__", "root"),
            level=Level.parse(level),
            file=frame.f_code.co_filename,
            line=frame.f_lineno,
        )
        self._layer = _resolve_layer(layer)
        self._closed = False
        self._layer.on_span_create(self.id, self.metadata, fields)

    @property
    def name(self) -> str:
        return self.metadata.name

    def record(self, **fields: Any) -> None:
        self._layer.on_span_record(self.id, fields)

    def enter(self) -> None:
        self._layer.on_enter(self.id)

    def exit(self) -> None:
        self._layer.on_exit(self.id)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._layer.on_close(self.id)

    def __enter__(self) -> "Span":
        self.enter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.exit()

    def __repr__(self) -> str:
        return f"Span({self.name!r}, id={self.id!r})"


@contextmanager
def span(name: str, target: Optional[str] = None, level: Any = Level.INFO, layer=None, **fields: Any) -> Iterator[Span]:
    """Create a span, enter it for the block, then exit and close it.

    >>> with span("request", id=42):
    ...     log.info("handled", status="ok")
    """
    # frames: Span.__init__ <- span() <- contextmanager.__enter__ <- caller
    s = Span(name, target=target, level=level, layer=layer, _depth=3, **fields)
    s.enter()
    try:
        yield s
    finally:
        s.exit()
        s.close()
