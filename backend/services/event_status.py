from __future__ import annotations

import time
from typing import Optional


def now_ms() -> int:
    return int(time.time() * 1000)


def compute_event_status(start_date: int, end_date: int, status: Optional[str] = None, now: Optional[int] = None) -> str:
    """Derive the display status of an event from its time window.

    A stored status of ``past`` always wins (manual close). Otherwise the
    event is active on ``[start_date, end_date)``. Times are epoch millis.
    """
    if status == "past":
        return "past"
    current = now_ms() if now is None else now
    if current < start_date:
        return "upcoming"
    if current >= end_date:
        return "past"
    return "active"


def is_event_live(event, now: Optional[int] = None) -> bool:
    """True when an event row (sqlite3.Row or dict) is currently live."""
    return compute_event_status(event["start_date"], event["end_date"], event["status"], now) == "active"
