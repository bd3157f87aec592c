__all__ = [
    "init", "shutdown", "get_layer", "get_logger",
    "Config", "TimestampMode", "JsonLayer", "JsonHandler", "Logger",
    "Event", "Level", "Metadata", "FieldKind", "FieldSet", "FieldValue",
    "Span", "span", "escape_json",
]
__version__ = "0.1.0"

from .config import Config, TimestampMode
from .fields import FieldKind, FieldSet, FieldValue
from .metadata import Event, Level, Metadata
from .writer import escape_json
from .layer import JsonLayer
from .logging import JsonHandler, Logger, get_logger
from .bootstrap import get_layer, init, shutdown
from .tracing import Span, span
