# Static description of spans and events, and the transient event record.

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .fields import EMPTY, FieldSet


class Level(enum.IntEnum):
    TRACE = 0
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40

    def __str__(self) -> str:
        return self.name

    @classmethod
    def parse(cls, value: Any) -> "Level":
        """Accept a Level, a name ("info", "warning"), or a stdlib logging level number."""
        if isinstance(value, Level):
            return value
        if isinstance(value, str):
            name = value.strip().upper()
            if name == "WARNING":
                name = "WARN"
            elif name in ("CRITICAL", "FATAL"):
                name = "ERROR"
            try:
                return cls[name]
            except KeyError:
                raise ValueError(f"unknown level: {value!r}") from None
        return cls.from_stdlib(int(value))

    @classmethod
    def from_stdlib(cls, levelno: int) -> "Level":
        if levelno >= 40:
            return cls.ERROR
        if levelno >= 30:
            return cls.WARN
        if levelno >= 20:
            return cls.INFO
        if levelno >= 10:
            return cls.DEBUG
        return cls.TRACE


@dataclass(frozen=True)
class Metadata:
    name: str
    target: str
    level: Level = Level.INFO
    file: Optional[str] = None
    line: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", Level.parse(self.level))


@dataclass(frozen=True)
class Event:
    metadata: Metadata
    fields: FieldSet = field(default=EMPTY)

    @classmethod
    def new(cls, metadata: Metadata, message: Optional[str] = None, fields: Optional[Mapping[str, Any]] = None) -> "Event":
        """Build an event whose ``message`` (if any) is its first field."""
        values: dict[str, Any] = {}
        if message is not None:
            values["message"] = message
        if fields:
            values.update(fields)
        return cls(metadata, FieldSet(values))
