from __future__ import annotations

from typing import Iterable, Optional, Tuple

from .fields import FieldKind, FieldValue
from .writer import JsonWriter


class JsonVisitor:
    """Writes fields as ``"name":value`` pairs into the object open on ``writer``.

    The only state kept is whether a field has been written to the current
    object yet, which decides the leading comma. Call :meth:`reset` when the
    same visitor moves on to a new object.
    """

    __slots__ = ("writer", "first")

    def __init__(self, writer: JsonWriter, first: bool = True) -> None:
        self.writer = writer
        self.first = first

    @classmethod
    def continuing(cls, writer: JsonWriter) -> "JsonVisitor":
        """Visitor for an object that already has members: every field gets a comma."""
        return cls(writer, first=False)

    def reset(self, first: bool = True) -> None:
        self.first = first

    def _sep(self, name: str) -> None:
        if not self.first:
            self.writer.comma()
        self.first = False
        self.writer.key(name)

    def record_bool(self, name: str, value: bool) -> None:
        self._sep(name)
        self.writer.val_bool(value)

    def record_i64(self, name: str, value: int) -> None:
        self._sep(name)
        self.writer.val_i64(value)

    def record_u64(self, name: str, value: int) -> None:
        self._sep(name)
        self.writer.val_u64(value)

    def record_f64(self, name: str, value: float) -> None:
        self._sep(name)
        self.writer.val_f64(value)

    def record_str(self, name: str, value: str) -> None:
        self._sep(name)
        self.writer.val_str(value)

    def record_debug(self, name: str, rendered: str) -> None:
        self._sep(name)
        self.writer.val_str(rendered)

    def record_error(self, name: str, message: str, source: Optional[str] = None) -> None:
        self._sep(name)
        self.writer.val_str(f"{message}: {source}" if source else message)

    def record(self, name: str, value: FieldValue) -> None:
        kind = value.kind
        if kind is FieldKind.BOOL:
            self.record_bool(name, value.value)
        elif kind is FieldKind.I64:
            self.record_i64(name, value.value)
        elif kind is FieldKind.U64:
            self.record_u64(name, value.value)
        elif kind is FieldKind.F64:
            self.record_f64(name, value.value)
        elif kind is FieldKind.STR:
            self.record_str(name, value.value)
        elif kind is FieldKind.DEBUG:
            self.record_debug(name, value.rendered())
        elif kind is FieldKind.ERROR:
            self.record_error(name, str(value.value), value.source)
        else:
            raise AssertionError(f"unhandled field kind: {kind!r}")

    def record_all(self, fields: Iterable[Tuple[str, FieldValue]]) -> None:
        for name, value in fields:
            self.record(name, value)

    def raw_fields(self, fragment: str) -> None:
        """Splice a pre-encoded ``"a":1,"b":2`` fragment into the current object."""
        if not fragment:
            return
        if not self.first:
            self.writer.comma()
        self.first = False
        self.writer.raw(fragment)

    def key(self, name: str) -> None:
        """Write the separator and key for a value the caller writes itself."""
        self._sep(name)
