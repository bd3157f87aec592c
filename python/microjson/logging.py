# JSON-lines logging facade plus a stdlib logging.Handler bridge.
# Both feed events into a JsonLayer; the active span stack supplies context.

from __future__ import annotations

import logging
import sys
from typing import Any, Protocol

from .fields import FieldValue
from .metadata import Event, Level, Metadata

_STANDARD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}


class _GlobalLogger(Protocol):
    def trace(self, msg: str, **kv: Any) -> None: ...
    def debug(self, msg: str, **kv: Any) -> None: ...
    def info(self, msg: str, **kv: Any) -> None: ...
    def warn(self, msg: str, **kv: Any) -> None: ...
    def error(self, msg: str, **kv: Any) -> None: ...


def _resolve_layer(layer):
    if layer is not None:
        return layer
    from .bootstrap import get_layer

    return get_layer()


class Logger:
    """Key/value logger: ``log.info("started", port=8080)``.

    The message becomes the ``message`` field, keyword arguments follow it
    in call order. Without an explicit layer the one installed by
    :func:`microjson.init` is used at call time.
    """

    def __init__(self, target: str, layer=None, level: Any = Level.TRACE) -> None:
        self.target = target
        self._layer = layer
        self._min_level = Level.parse(level)

    def enabled(self, level: Level) -> bool:
        return level >= self._min_level

    def _emit(self, level: Level, msg: str, kv: dict[str, Any]) -> None:
        if not self.enabled(level):
            return
        # two frames up: the caller of debug()/info()/...
        frame = sys._getframe(2)
        md = Metadata(
            name=f"event {frame.f_code.co_filename}:{frame.f_lineno}",
            target=self.target,
            level=level,
            file=frame.f_code.co_filename,
            line=frame.f_lineno,
        )
        _resolve_layer(self._layer).on_event(Event.new(md, msg, kv))

    def trace(self, msg: str, **kv: Any) -> None: self._emit(Level.TRACE, msg, kv)
    def debug(self, msg: str, **kv: Any) -> None: self._emit(Level.DEBUG, msg, kv)
    def info(self, msg: str, **kv: Any) -> None: self._emit(Level.INFO, msg, kv)
    def warn(self, msg: str, **kv: Any) -> None: self._emit(Level.WARN, msg, kv)
    def error(self, msg: str, **kv: Any) -> None: self._emit(Level.ERROR, msg, kv)


class JsonHandler(logging.Handler):
    """Route stdlib ``logging`` records through a JsonLayer.

    Keys passed with ``extra=`` become event fields; ``exc_info`` becomes an
    ``error`` field carrying the exception and its cause chain.
    """

    def __init__(self, layer=None, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._layer = layer

    def to_event(self, record: logging.LogRecord) -> Event:
        md = Metadata(
            name=f"event {record.pathname}:{record.lineno}",
            target=record.name,
            level=Level.from_stdlib(record.levelno),
            file=record.pathname,
            line=record.lineno,
        )
        fields: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            fields[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            fields.setdefault("error", FieldValue.error(record.exc_info[1]))
        return Event.new(md, record.getMessage(), fields)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            _resolve_layer(self._layer).on_event(self.to_event(record))
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        layer = _resolve_layer(self._layer)
        flush = getattr(layer, "flush", None)
        if flush is not None:
            flush()


def get_logger(target: str = "root", level: Any = None) -> _GlobalLogger:
    """Logger bound to the globally installed layer.

    ``level`` defaults to the level given to :func:`microjson.init`.
    """
    from .bootstrap import default_level

    return Logger(target, level=default_level() if level is None else level)
