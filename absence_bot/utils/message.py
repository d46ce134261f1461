from __future__ import annotations

from absence_bot.models import AbsenceWindow, Partial


def format_time(value) -> str:
    return value.strftime("%H%M")


def encode(identity: str, window: AbsenceWindow) -> str:
    """Render the outbound report text.

    A full day is the identity number alone; a partial day appends
    ``HHMM-HHMM`` after a single space, e.g. ``8112189876 0900-1130``.
    """

    if isinstance(window, Partial):
        return f"{identity} {format_time(window.start)}-{format_time(window.end)}"
    return identity


__all__ = ["encode", "format_time"]
