"""Pure update helpers for entries, the habit checklist and notes.

Every helper returns a new object and leaves its input untouched, so a
caller can keep the previous value around while a save is in flight.
"""

import copy
from dataclasses import fields
from typing import Any

from .defaults import now_ms
from .models import (
    RATING_FIELDS,
    RATING_MAX,
    RATING_MIN,
    SECTIONS,
    ChecklistItemConfig,
    DailyEntry,
    Goal,
    Note,
    check_field,
)


def _validate_rating(section: str, key: str, value: Any) -> None:
    if key not in RATING_FIELDS.get(section, set()) or value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer rating, got {value!r}")
    if not RATING_MIN <= value <= RATING_MAX:
        raise ValueError(
            f"{section}.{key} must be between {RATING_MIN} and {RATING_MAX}, got {value}"
        )


def _new_id(existing: set[str]) -> str:
    """Epoch-ms id, bumped past any id already in use."""
    candidate = now_ms()
    while str(candidate) in existing:
        candidate += 1
    return str(candidate)


def update_section(entry: DailyEntry, section: str, **values: Any) -> DailyEntry:
    """Merge field values into one section of an entry.

    Args:
        entry: Entry to update.
        section: Section document key ("state", "effort", ...).
        **values: Field values keyed by document key ("timesCried") or
            attribute name ("times_cried").

    Returns:
        Updated copy of the entry.

    Raises:
        KeyError: Unknown section or field.
        ValueError: Value of the wrong type or rating out of range.
    """
    if section not in SECTIONS:
        raise KeyError(f"Unknown section: {section}")

    updated = copy.deepcopy(entry)
    target = getattr(updated, section)
    by_key = {f.metadata.get("key", f.name): f for f in fields(target)}
    by_name = {f.name: f for f in by_key.values()}

    for name, value in values.items():
        f = by_key.get(name) or by_name.get(name)
        if f is None:
            raise KeyError(f"Unknown field {name!r} in section {section!r}")

        value = check_field(f, value, section)
        _validate_rating(section, f.metadata.get("key", f.name), value)
        setattr(target, f.name, value)

    return updated


def toggle_descriptor(entry: DailyEntry, descriptor: str) -> DailyEntry:
    """Add or remove an emotion descriptor."""
    updated = copy.deepcopy(entry)
    descriptors = updated.state.descriptors
    if descriptor in descriptors:
        descriptors.remove(descriptor)
    else:
        descriptors.append(descriptor)
    return updated


def add_goal(entry: DailyEntry, text: str = "") -> DailyEntry:
    updated = copy.deepcopy(entry)
    goals = updated.future.short_term_goals
    goals.append(Goal(id=_new_id({g.id for g in goals}), text=text))
    return updated


def _update_goal(entry: DailyEntry, goal_id: str, **changes: Any) -> DailyEntry:
    updated = copy.deepcopy(entry)
    for goal in updated.future.short_term_goals:
        if goal.id == goal_id:
            for name, value in changes.items():
                setattr(goal, name, value)
            return updated
    raise KeyError(f"Unknown goal: {goal_id}")


def update_goal_text(entry: DailyEntry, goal_id: str, text: str) -> DailyEntry:
    return _update_goal(entry, goal_id, text=text)


def toggle_goal(entry: DailyEntry, goal_id: str) -> DailyEntry:
    for goal in entry.future.short_term_goals:
        if goal.id == goal_id:
            return _update_goal(entry, goal_id, done=not goal.done)
    raise KeyError(f"Unknown goal: {goal_id}")


def toggle_checklist_item(entry: DailyEntry, item_id: str) -> DailyEntry:
    """Flip a habit for the day. A missing key counts as unchecked."""
    updated = copy.deepcopy(entry)
    updated.checklist[item_id] = not updated.checklist.get(item_id, False)
    return updated


# ==================== Checklist configuration ====================


def add_checklist_item(
    config: list[ChecklistItemConfig],
    label: str = "New Habit",
) -> list[ChecklistItemConfig]:
    item_id = _new_id({c.id for c in config})
    return [*config, ChecklistItemConfig(id=item_id, label=label, enabled=True)]


def remove_checklist_item(
    config: list[ChecklistItemConfig],
    item_id: str,
) -> list[ChecklistItemConfig]:
    return [c for c in config if c.id != item_id]


def rename_checklist_item(
    config: list[ChecklistItemConfig],
    item_id: str,
    label: str,
) -> list[ChecklistItemConfig]:
    return [
        ChecklistItemConfig(id=c.id, label=label, enabled=c.enabled)
        if c.id == item_id
        else c
        for c in config
    ]


def set_checklist_item_enabled(
    config: list[ChecklistItemConfig],
    item_id: str,
    enabled: bool,
) -> list[ChecklistItemConfig]:
    return [
        ChecklistItemConfig(id=c.id, label=c.label, enabled=enabled)
        if c.id == item_id
        else c
        for c in config
    ]


def enabled_items(config: list[ChecklistItemConfig]) -> list[ChecklistItemConfig]:
    return [c for c in config if c.enabled]


# ==================== Notes ====================


def add_note(
    notes: list[Note],
    title: str,
    content: str = "",
    tags: list[str] | None = None,
) -> list[Note]:
    note_id = _new_id({n.id for n in notes})
    ts = int(note_id)
    note = Note(
        id=note_id,
        title=title,
        content=content,
        created=ts,
        updated=ts,
        tags=list(tags or []),
    )
    return [*notes, note]


def update_note(
    notes: list[Note],
    note_id: str,
    title: str | None = None,
    content: str | None = None,
    tags: list[str] | None = None,
) -> list[Note]:
    """Update a note, keeping the previous content as a version.

    Raises:
        KeyError: Unknown note id.
    """
    result = []
    found = False
    for note in notes:
        if note.id != note_id:
            result.append(note)
            continue

        found = True
        updated = copy.deepcopy(note)
        ts = now_ms()
        if content is not None and content != note.content:
            versions = updated.versions or []
            versions.append({"date": note.updated, "content": note.content})
            updated.versions = versions
            updated.content = content
        if title is not None:
            updated.title = title
        if tags is not None:
            updated.tags = list(tags)
        updated.updated = ts
        result.append(updated)

    if not found:
        raise KeyError(f"Unknown note: {note_id}")
    return result


def delete_note(notes: list[Note], note_id: str) -> list[Note]:
    return [n for n in notes if n.id != note_id]
