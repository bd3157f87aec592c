# Formatting toggles, fixed when the layer is built.

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Callable, Optional


class TimestampMode(enum.Enum):
    SYSTEM_CLOCK = "system_clock"
    DISABLED = "disabled"


@dataclass(frozen=True)
class Config:
    """Immutable formatting options read on every event.

    ``timer`` overrides the system clock with a zero-argument callable that
    returns the timestamp text; it is ignored when timestamps are disabled.
    """

    include_target: bool = True
    include_file: bool = False
    include_line_number: bool = False
    include_thread_id: bool = False
    include_thread_name: bool = False
    flatten_event: bool = False
    timestamp_mode: TimestampMode = TimestampMode.SYSTEM_CLOCK
    timer: Optional[Callable[[], str]] = None
    include_current_span: bool = False
    include_span_list: bool = False

    def with_target(self, display: bool) -> "Config":
        return replace(self, include_target=display)

    def with_file(self, display: bool) -> "Config":
        return replace(self, include_file=display)

    def with_line_number(self, display: bool) -> "Config":
        return replace(self, include_line_number=display)

    def with_thread_ids(self, display: bool) -> "Config":
        return replace(self, include_thread_id=display)

    def with_thread_names(self, display: bool) -> "Config":
        return replace(self, include_thread_name=display)

    def with_flatten_event(self, flatten: bool) -> "Config":
        return replace(self, flatten_event=flatten)

    def with_current_span(self, display: bool) -> "Config":
        return replace(self, include_current_span=display)

    def with_span_list(self, display: bool) -> "Config":
        return replace(self, include_span_list=display)

    def without_time(self) -> "Config":
        return replace(self, timestamp_mode=TimestampMode.DISABLED, timer=None)

    def with_timer(self, timer: Optional[Callable[[], str]]) -> "Config":
        if timer is None:
            return self.without_time()
        return replace(self, timestamp_mode=TimestampMode.SYSTEM_CLOCK, timer=timer)

    @property
    def timestamps_enabled(self) -> bool:
        return self.timestamp_mode is TimestampMode.SYSTEM_CLOCK
