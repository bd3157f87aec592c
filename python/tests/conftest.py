from __future__ import annotations

import io
import json
from dataclasses import replace

import pytest

from microjson import Config, Event, JsonLayer, Level, Metadata


class Capture:
    """In-memory byte sink with helpers for reading back JSON lines."""

    def __init__(self) -> None:
        self.buf = io.BytesIO()

    def write(self, data: bytes) -> int:
        return self.buf.write(data)

    def flush(self) -> None:
        pass

    def text(self) -> str:
        return self.buf.getvalue().decode("utf-8")

    def lines(self) -> list:
        return [json.loads(line) for line in self.text().splitlines()]

    def one(self) -> dict:
        lines = self.lines()
        assert len(lines) == 1, self.text()
        return lines[0]


@pytest.fixture
def capture() -> Capture:
    return Capture()


@pytest.fixture
def make_layer(capture):
    def _make(config: Config = None, **toggles) -> JsonLayer:
        cfg = replace(config or Config(), **toggles)
        return JsonLayer(capture, cfg)

    return _make


def event(message=None, level=Level.INFO, target="app", file="app/main.py", line=7, **fields) -> Event:
    md = Metadata(name=f"event {file}:{line}", target=target, level=level, file=file, line=line)
    return Event.new(md, message, fields)


def span_md(name: str, target: str = "app") -> Metadata:
    return Metadata(name=name, target=target, level=Level.INFO)
