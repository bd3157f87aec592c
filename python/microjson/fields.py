# Typed field values and the immutable field sets spans and events carry.

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional, Tuple

from .writer import JsonWriter, decode_lossy

I64_MIN = -(2 ** 63)
U64_MAX = 2 ** 64 - 1


class FieldKind(enum.Enum):
    BOOL = "bool"
    I64 = "i64"
    U64 = "u64"
    F64 = "f64"
    STR = "str"
    DEBUG = "debug"
    ERROR = "error"


@dataclass(frozen=True)
class FieldValue:
    """One recorded value. ``source`` is only used by ERROR values."""

    kind: FieldKind
    value: Any
    source: Optional[str] = None

    @classmethod
    def of(cls, value: Any) -> "FieldValue":
        """Classify an arbitrary Python value into its field kind."""
        if isinstance(value, FieldValue):
            return value
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return cls(FieldKind.BOOL, value)
        if isinstance(value, int):
            if 0 <= value <= U64_MAX:
                return cls(FieldKind.U64, value)
            if I64_MIN <= value < 0:
                return cls(FieldKind.I64, value)
            # wider than 64 bits: keep every digit by writing it as text
            return cls(FieldKind.STR, str(value))
        if isinstance(value, float):
            return cls(FieldKind.F64, value)
        if isinstance(value, str):
            return cls(FieldKind.STR, value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls(FieldKind.STR, decode_lossy(value))
        if isinstance(value, BaseException):
            return cls.error(value)
        return cls(FieldKind.DEBUG, repr(value))

    @classmethod
    def error(cls, exc: BaseException) -> "FieldValue":
        return cls(FieldKind.ERROR, _error_message(exc), _source_chain(exc))

    def rendered(self) -> str:
        """Text form of a DEBUG or ERROR value."""
        if self.kind is FieldKind.ERROR and self.source:
            return f"{self.value}: {self.source}"
        return str(self.value)


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _source_chain(exc: BaseException) -> Optional[str]:
    parts = []
    seen = {id(exc)}
    cur = exc.__cause__ or (None if exc.__suppress_context__ else exc.__context__)
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        parts.append(_error_message(cur))
        cur = cur.__cause__ or (None if cur.__suppress_context__ else cur.__context__)
    return ": ".join(parts) or None


class FieldSet:
    """Ordered, immutable name -> FieldValue mapping.

    The JSON fragment for the set (``"a":1,"b":"x"``, no braces) is built
    once on construction and reused every time the set is written, so span
    fields are encoded when recorded rather than on every event.
    """

    __slots__ = ("_values", "_fragment")

    def __init__(self, values: Optional[Mapping[str, Any]] = None, _fragment: Optional[str] = None) -> None:
        self._values: dict[str, FieldValue] = {
            str(name): FieldValue.of(value) for name, value in (values or {}).items()
        }
        self._fragment = _fragment if _fragment is not None else _encode(self._values)

    @property
    def fragment(self) -> str:
        return self._fragment

    def extend(self, values: Mapping[str, Any]) -> "FieldSet":
        """Return a new set with ``values`` added; existing names are replaced in place."""
        if not values:
            return self
        added = FieldSet(values)
        if not self._values:
            return added
        if self._values.keys().isdisjoint(added._values):
            merged = dict(self._values)
            merged.update(added._values)
            return FieldSet._from_encoded(merged, self._fragment + "," + added._fragment)
        merged = dict(self._values)
        merged.update(added._values)
        return FieldSet._from_encoded(merged, _encode(merged))

    @classmethod
    def _from_encoded(cls, values: dict[str, FieldValue], fragment: str) -> "FieldSet":
        fs = cls.__new__(cls)
        fs._values = values
        fs._fragment = fragment
        return fs

    def items(self) -> Iterator[Tuple[str, FieldValue]]:
        return iter(self._values.items())

    def names(self):
        return self._values.keys()

    def get(self, name: str) -> Optional[FieldValue]:
        return self._values.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __bool__(self) -> bool:
        return bool(self._values)

    def __repr__(self) -> str:
        return f"FieldSet({{{self._fragment}}})"


def _encode(values: Mapping[str, FieldValue]) -> str:
    # imported here: visitor depends on this module
    from .visitor import JsonVisitor

    if not values:
        return ""
    jw = JsonWriter()
    visitor = JsonVisitor(jw)
    for name, value in values.items():
        visitor.record(name, value)
    return jw.finish()


EMPTY = FieldSet()
