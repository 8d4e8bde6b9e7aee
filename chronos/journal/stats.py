"""Aggregate statistics over cached journal entries."""

from datetime import date, timedelta
from typing import Any

from .defaults import parse_iso_date
from .models import ChecklistItemConfig, DailyEntry

NEUTRAL_MOOD = 5


def _streak(entry_dates: set[date], today: date) -> int:
    """Consecutive days with an entry, ending today or yesterday."""
    day = today if today in entry_dates else today - timedelta(days=1)
    streak = 0
    while day in entry_dates:
        streak += 1
        day -= timedelta(days=1)
    return streak


def _checklist_completion(
    entries: list[DailyEntry],
    checklist_config: list[ChecklistItemConfig],
) -> float:
    enabled = [c.id for c in checklist_config if c.enabled]
    if not enabled or not entries:
        return 0.0
    ratios = [
        sum(1 for item_id in enabled if entry.checklist.get(item_id)) / len(enabled)
        for entry in entries
    ]
    return round(sum(ratios) / len(ratios), 3)


def compute_stats(
    entries: dict[str, DailyEntry],
    checklist_config: list[ChecklistItemConfig] | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Summarize entries for the home view and account page.

    Missing moods count as neutral; other missing ratings count as zero.

    Args:
        entries: Entries keyed by ISO date.
        checklist_config: Habit configuration for completion rates.
        today: Reference date for the streak (defaults to today).

    Returns:
        Dict of counts, averages and totals.
    """
    values = list(entries.values())
    count = len(values)

    entry_dates = set()
    for key in entries:
        try:
            entry_dates.add(parse_iso_date(key))
        except ValueError:
            continue

    mood_sum = sum(e.state.mood or NEUTRAL_MOOD for e in values)

    return {
        "count": count,
        "activity": 1 if count > 0 else 0,
        "avg_mood": round(mood_sum / count, 2) if count else NEUTRAL_MOOD,
        "total_creative": sum(e.effort.creative_hours or 0 for e in values),
        "total_stress": sum(e.state.stress or 0 for e in values),
        "total_clarity": sum(e.state.mental_clarity or 0 for e in values),
        "checklist_completion": _checklist_completion(values, checklist_config or []),
        "streak": _streak(entry_dates, today or date.today()),
    }
