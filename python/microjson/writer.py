# Minimal JSON text builder. Escaping follows RFC 8259; nothing here goes
# through the json module.

from __future__ import annotations

import math
import re
from typing import Union

# Characters that may not appear raw inside a JSON string, plus lone
# surrogates (what malformed UTF-8 turns into after surrogateescape decoding).
_ESCAPE_RE = re.compile('[\x00-\x1f"\\\\\ud800-\udfff]')

_ESCAPE_MAP = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}
for _i in range(0x20):
    _ESCAPE_MAP.setdefault(chr(_i), "\\u%04x" % _i)
del _i

REPLACEMENT_CHAR = "\ufffd"


def _replace(match: "re.Match[str]") -> str:
    return _ESCAPE_MAP.get(match.group(0), REPLACEMENT_CHAR)


def escape_json(text: str) -> str:
    """Escape ``text`` for use inside a JSON string literal.

    The input object is returned unchanged when it contains nothing that
    needs escaping, so the common case costs a single regex scan.
    """
    if _ESCAPE_RE.search(text) is None:
        return text
    return _ESCAPE_RE.sub(_replace, text)


def decode_lossy(data: Union[bytes, bytearray, memoryview]) -> str:
    """Decode raw bytes as UTF-8, substituting U+FFFD for malformed sequences."""
    return bytes(data).decode("utf-8", errors="replace")


class JsonWriter:
    """Append-only JSON builder writing into a list of string pieces.

    The writer does not track structure; callers (the visitor and the event
    formatter) are responsible for emitting separators in the right places.
    """

    __slots__ = ("_buf",)

    def __init__(self) -> None:
        self._buf: list[str] = []

    @classmethod
    def continuing(cls, existing: str) -> "JsonWriter":
        """Start from an already-written fragment such as cached span fields."""
        jw = cls()
        if existing:
            jw._buf.append(existing)
        return jw

    def obj_start(self) -> None:
        self._buf.append("{")

    def obj_end(self) -> None:
        self._buf.append("}")

    def arr_start(self) -> None:
        self._buf.append("[")

    def arr_end(self) -> None:
        self._buf.append("]")

    def comma(self) -> None:
        self._buf.append(",")

    def key(self, name: str) -> None:
        self._buf.append('"')
        self._buf.append(escape_json(name))
        self._buf.append('":')

    def val_str(self, value: str) -> None:
        self._buf.append('"')
        self._buf.append(escape_json(value))
        self._buf.append('"')

    def val_i64(self, value: int) -> None:
        self._buf.append(str(int(value)))

    def val_u64(self, value: int) -> None:
        self._buf.append(str(int(value)))

    def val_f64(self, value: float) -> None:
        # JSON has no NaN/Infinity; those are written as null.
        if math.isnan(value) or math.isinf(value):
            self._buf.append("null")
        else:
            self._buf.append(repr(float(value)))

    def val_bool(self, value: bool) -> None:
        self._buf.append("true" if value else "false")

    def raw(self, fragment: str) -> None:
        """Append pre-formatted JSON text verbatim."""
        self._buf.append(fragment)

    def finish_line(self) -> None:
        self._buf.append("\n")

    def finish(self) -> str:
        return "".join(self._buf)
