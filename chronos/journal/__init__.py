"""Journal records for Chronos.

Provides the daily entry schema, its defaults, pure editing helpers and
aggregate statistics.
"""

from .defaults import (
    COMMON_EMOTIONS,
    DEFAULT_CHECKLIST,
    MOOD_LABELS,
    default_checklist,
    empty_entry,
    local_iso_date,
    mood_label,
    parse_iso_date,
)
from .models import (
    SECTIONS,
    Achievements,
    AppData,
    ChecklistItemConfig,
    DailyEntry,
    DailyState,
    Future,
    Goal,
    Memory,
    Note,
    Reflections,
    TimeEffort,
)
from .stats import compute_stats

__all__ = [
    "COMMON_EMOTIONS",
    "DEFAULT_CHECKLIST",
    "MOOD_LABELS",
    "SECTIONS",
    "Achievements",
    "AppData",
    "ChecklistItemConfig",
    "DailyEntry",
    "DailyState",
    "Future",
    "Goal",
    "Memory",
    "Note",
    "Reflections",
    "TimeEffort",
    "compute_stats",
    "default_checklist",
    "empty_entry",
    "local_iso_date",
    "mood_label",
    "parse_iso_date",
]
