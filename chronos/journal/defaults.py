"""Default values and constants for journal records."""

import time
from datetime import date, datetime

from .models import ChecklistItemConfig, DailyEntry

MOOD_LABELS = {
    1: "Despair",
    3: "Low",
    5: "Neutral",
    7: "Content",
    10: "Ecstatic",
}

COMMON_EMOTIONS = [
    "Calm", "Anxious", "Energetic", "Tired", "Focused", "Distracted",
    "Grateful", "Resentful", "Inspired", "Bored", "Confident", "Insecure",
    "Lonely", "Loved", "Overwhelmed", "Peaceful",
]

DEFAULT_CHECKLIST = [
    ChecklistItemConfig(id="journal", label="Write in Journal", enabled=True),
    ChecklistItemConfig(id="move", label="Physical Movement", enabled=True),
    ChecklistItemConfig(id="read", label="Read (15m)", enabled=True),
]


def default_checklist() -> list[ChecklistItemConfig]:
    """Fresh copy of the default habit checklist."""
    return [
        ChecklistItemConfig(id=c.id, label=c.label, enabled=c.enabled)
        for c in DEFAULT_CHECKLIST
    ]


def empty_entry(date_str: str) -> DailyEntry:
    """A blank entry for the given ISO date."""
    return DailyEntry(id=date_str)


def mood_label(value: int | None) -> str | None:
    """Label of the nearest mood anchor at or below value."""
    if value is None:
        return None
    anchors = [k for k in sorted(MOOD_LABELS) if k <= value]
    if not anchors:
        return None
    return MOOD_LABELS[anchors[-1]]


def local_iso_date(d: date | None = None) -> str:
    """YYYY-MM-DD for the local calendar date.

    Uses the local clock so "today" does not flip at midnight UTC.
    """
    d = d or date.today()
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_iso_date(value: str) -> date:
    """Parse and validate a YYYY-MM-DD entry key.

    Raises:
        ValueError: If value is not a calendar date in that form.
    """
    if len(value) != 10:
        raise ValueError(f"Invalid entry date: {value!r}")
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)
