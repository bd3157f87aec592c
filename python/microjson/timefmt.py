from __future__ import annotations

import time
from typing import Optional


def format_timestamp(ns: Optional[int] = None) -> str:
    """RFC 3339 UTC timestamp with microsecond precision.

    >>> format_timestamp(0)
    '1970-01-01T00:00:00.000000Z'
    """
    if ns is None:
        ns = time.time_ns()
    secs, micros = divmod(ns // 1000, 1_000_000)
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(secs)) + f".{micros:06d}Z"
