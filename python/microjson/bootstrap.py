# Process-wide setup: one JsonLayer, optionally wired into stdlib logging.
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Hashable, Mapping, Optional

from .config import Config
from .layer import JsonLayer
from .logging import JsonHandler
from .metadata import Event, Level, Metadata


class _NopLayer:
    """Stand-in before init(): accepts every callback and writes nothing."""

    config = Config()

    def on_span_create(self, span_id: Hashable, metadata: Metadata, fields: Optional[Mapping[str, Any]] = None) -> None: pass
    def on_span_record(self, span_id: Hashable, fields: Mapping[str, Any]) -> None: pass
    def on_enter(self, span_id: Hashable) -> None: pass
    def on_exit(self, span_id: Hashable) -> None: pass
    def on_close(self, span_id: Hashable) -> None: pass
    def on_event(self, event: Event) -> None: pass
    def flush(self) -> None: pass


_global_layer: Any = _NopLayer()
_global_level: Level = Level.INFO
_global_handler: Optional[JsonHandler] = None
_saved_root_level: Optional[int] = None


def init(
    config: Optional[Config] = None,
    writer: Any = None,
    level: Any = "info",
    install_handler: bool = True,
    **toggles: Any,
) -> JsonLayer:
    """Install the global JSON layer.

    ``toggles`` are Config field names (``flatten_event=True``,
    ``include_thread_name=True``, ...) applied on top of ``config``. With
    ``install_handler`` the root stdlib logger is routed through the layer at
    ``level``.
    """
    global _global_layer, _global_level, _global_handler, _saved_root_level
    cfg = config or Config()
    if toggles:
        cfg = replace(cfg, **toggles)
    shutdown()
    _global_level = Level.parse(level)
    _global_layer = JsonLayer(writer, cfg)
    if install_handler:
        _global_handler = JsonHandler(_global_layer)
        root = logging.getLogger()
        root.addHandler(_global_handler)
        _saved_root_level = root.level
        root.setLevel(_stdlib_level(_global_level))
    return _global_layer


def shutdown() -> None:
    """Undo init() and fall back to the no-op layer. The root logger gets its old level back."""
    global _global_layer, _global_handler, _saved_root_level
    if _global_handler is not None:
        root = logging.getLogger()
        root.removeHandler(_global_handler)
        _global_handler = None
        if _saved_root_level is not None:
            root.setLevel(_saved_root_level)
            _saved_root_level = None
    _global_layer.flush()
    _global_layer = _NopLayer()


def get_layer() -> Any:
    return _global_layer


def default_level() -> Level:
    return _global_level


def _stdlib_level(level: Level) -> int:
    # stdlib has no TRACE; map it below DEBUG
    return logging.DEBUG - 5 if level is Level.TRACE else int(level)
