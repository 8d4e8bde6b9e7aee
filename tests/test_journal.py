"""Tests for journal records, defaults and statistics."""

import pytest
from datetime import date

from chronos.journal import (
    COMMON_EMOTIONS,
    DEFAULT_CHECKLIST,
    AppData,
    ChecklistItemConfig,
    DailyEntry,
    Note,
    compute_stats,
    default_checklist,
    empty_entry,
    local_iso_date,
    mood_label,
    parse_iso_date,
)


class TestDailyEntry:
    """Tests for DailyEntry serialization."""

    def test_empty_entry_defaults(self):
        """Test a blank entry has every section at its empty value."""
        entry = empty_entry("2026-03-14")

        assert entry.id == "2026-03-14"
        assert entry.state.mood is None
        assert entry.state.descriptors == []
        assert entry.state.times_cried == 0
        assert entry.effort.study_hours == {}
        assert entry.future.short_term_goals == []
        assert entry.checklist == {}

    def test_empty_entries_do_not_share_lists(self):
        """Test defaults are fresh objects per entry."""
        a = empty_entry("2026-03-14")
        b = empty_entry("2026-03-15")

        a.state.descriptors.append("Calm")

        assert b.state.descriptors == []

    def test_to_dict_uses_document_keys(self):
        """Test serialized keys match the stored camelCase format."""
        entry = empty_entry("2026-03-14")
        entry.state.times_laughed = 3
        entry.effort.wake_time = "07:00"

        d = entry.to_dict()

        assert d["id"] == "2026-03-14"
        assert d["state"]["timesLaughed"] == 3
        assert d["effort"]["wakeTime"] == "07:00"
        assert d["reflections"]["longForm"] == ""
        assert d["checklist"] == {}
        assert set(d) == {
            "id", "timestamp", "state", "effort", "achievements",
            "reflections", "memory", "future", "checklist",
        }

    def test_from_dict_fills_missing_sections(self):
        """Test a partial document is merged over the defaults."""
        entry = DailyEntry.from_dict({
            "id": "2026-03-14",
            "timestamp": 1700000000000,
            "reflections": {"longForm": "A long day."},
        })

        assert entry.reflections.long_form == "A long day."
        assert entry.reflections.ideas == []
        assert entry.state.mood is None
        assert entry.effort.work_hours == 0
        assert entry.checklist == {}
        assert entry.timestamp == 1700000000000

    def test_from_dict_fills_missing_fields(self):
        """Test missing fields inside a present section get defaults."""
        entry = DailyEntry.from_dict({"id": "2026-03-14", "state": {"mood": 8}})

        assert entry.state.mood == 8
        assert entry.state.descriptors == []
        assert entry.state.physical_discomfort == ""

    def test_from_dict_ignores_unknown_keys(self):
        """Test remote-only keys such as userId are dropped."""
        entry = DailyEntry.from_dict({
            "id": "2026-03-14",
            "userId": "user-1",
            "state": {"mood": 4, "legacy": True},
        })

        assert entry.state.mood == 4
        assert "userId" not in entry.to_dict()
        assert "legacy" not in entry.to_dict()["state"]

    def test_from_dict_entry_id_override(self):
        """Test the key the entry is stored under wins over its id field."""
        entry = DailyEntry.from_dict({"id": ""}, entry_id="2026-03-14")
        assert entry.id == "2026-03-14"

    @pytest.mark.parametrize(
        "data",
        [
            {"state": 5},
            {"effort": {"creativeHours": "3"}},
            {"state": {"timesCried": True}},
            {"state": {"descriptors": "Calm"}},
            {"future": {"shortTermGoals": ["Run"]}},
            {"checklist": {"read": 1}},
            {"timestamp": "yesterday"},
        ],
    )
    def test_from_dict_rejects_wrong_types(self, data):
        """Test values that do not fit their field are refused."""
        with pytest.raises(ValueError):
            DailyEntry.from_dict({"id": "2026-03-14", **data})

    def test_from_dict_accepts_int_hours(self):
        """Test whole numbers are fine for hour fields."""
        entry = DailyEntry.from_dict({"effort": {"workHours": 8, "studyHours": {"math": 2}}})
        assert entry.effort.work_hours == 8

    def test_null_section_is_missing(self):
        entry = DailyEntry.from_dict({"state": None})
        assert entry.state.mood is None

    def test_goals_deserialize(self):
        """Test short-term goals become Goal records."""
        entry = DailyEntry.from_dict({
            "id": "2026-03-14",
            "future": {"shortTermGoals": [{"id": "1", "text": "Run", "done": True}]},
        })

        goal = entry.future.short_term_goals[0]
        assert goal.text == "Run"
        assert goal.done is True
        assert entry.to_dict()["future"]["shortTermGoals"] == [
            {"id": "1", "text": "Run", "done": True}
        ]

    def test_roundtrip(self):
        """Test to_dict/from_dict roundtrip."""
        entry = empty_entry("2026-03-14")
        entry.state.mood = 7
        entry.state.descriptors = ["Calm", "Focused"]
        entry.effort.study_hours = {"math": 1.5}
        entry.checklist = {"read": True}

        assert DailyEntry.from_dict(entry.to_dict()) == entry


class TestAppData:
    """Tests for the cached envelope."""

    def test_roundtrip_envelope(self):
        """Test the envelope survives serialization."""
        data = AppData(
            entries={"2026-03-14": empty_entry("2026-03-14")},
            principles=[Note(id="p1", title="Be kind", created=1, updated=1)],
            essays=[],
            checklist_config=default_checklist(),
        )

        d = data.to_dict()
        restored = AppData.from_dict(d)

        assert set(d) == {"entries", "principles", "essays", "checklistConfig"}
        assert restored.entries["2026-03-14"].id == "2026-03-14"
        assert restored.principles[0].title == "Be kind"
        assert [c.id for c in restored.checklist_config] == ["journal", "move", "read"]

    def test_missing_checklist_config_is_empty(self):
        """Test the envelope itself does not invent a checklist."""
        data = AppData.from_dict({"entries": {}})
        assert data.checklist_config == []

    def test_note_without_versions_omits_key(self):
        """Test notes only carry versions once they have some."""
        note = Note(id="n1", title="t")
        assert "versions" not in note.to_dict()

        note.versions = [{"date": 1, "content": "old"}]
        assert note.to_dict()["versions"] == [{"date": 1, "content": "old"}]


class TestDefaults:
    """Tests for default values and helpers."""

    def test_default_checklist(self):
        """Test the three default habits."""
        assert [(c.id, c.label) for c in DEFAULT_CHECKLIST] == [
            ("journal", "Write in Journal"),
            ("move", "Physical Movement"),
            ("read", "Read (15m)"),
        ]
        assert all(c.enabled for c in DEFAULT_CHECKLIST)

    def test_default_checklist_copies(self):
        """Test callers get their own checklist objects."""
        items = default_checklist()
        items[0].label = "Changed"
        assert DEFAULT_CHECKLIST[0].label == "Write in Journal"

    def test_common_emotions(self):
        assert len(COMMON_EMOTIONS) == 16
        assert "Peaceful" in COMMON_EMOTIONS

    @pytest.mark.parametrize(
        "value,label",
        [(None, None), (1, "Despair"), (2, "Despair"), (5, "Neutral"), (9, "Content"), (10, "Ecstatic")],
    )
    def test_mood_label(self, value, label):
        assert mood_label(value) == label

    def test_local_iso_date(self):
        """Test dates are zero padded."""
        assert local_iso_date(date(2026, 1, 5)) == "2026-01-05"

    def test_local_iso_date_today(self):
        assert local_iso_date() == date.today().isoformat()

    def test_parse_iso_date(self):
        assert parse_iso_date("2026-02-28") == date(2026, 2, 28)

    @pytest.mark.parametrize("value", ["2026-2-28", "2026-02-30", "yesterday", "20260228", ""])
    def test_parse_iso_date_rejects(self, value):
        with pytest.raises(ValueError):
            parse_iso_date(value)


class TestStats:
    """Tests for aggregate statistics."""

    def test_no_entries(self):
        """Test stats for an empty journal."""
        stats = compute_stats({})

        assert stats["count"] == 0
        assert stats["activity"] == 0
        assert stats["avg_mood"] == 5
        assert stats["total_creative"] == 0
        assert stats["checklist_completion"] == 0.0
        assert stats["streak"] == 0

    def test_missing_mood_counts_as_neutral(self):
        """Test unrated days pull the average toward neutral."""
        rated = empty_entry("2026-03-14")
        rated.state.mood = 9
        unrated = empty_entry("2026-03-15")

        stats = compute_stats({"2026-03-14": rated, "2026-03-15": unrated})

        assert stats["count"] == 2
        assert stats["activity"] == 1
        assert stats["avg_mood"] == 7

    def test_totals(self):
        """Test totals ignore missing values."""
        a = empty_entry("2026-03-14")
        a.effort.creative_hours = 2
        a.state.stress = 6
        a.state.mental_clarity = 4
        b = empty_entry("2026-03-15")
        b.effort.creative_hours = 1.5

        stats = compute_stats({"2026-03-14": a, "2026-03-15": b})

        assert stats["total_creative"] == 3.5
        assert stats["total_stress"] == 6
        assert stats["total_clarity"] == 4

    def test_checklist_completion(self):
        """Test completion averages over entries and enabled items."""
        config = [
            ChecklistItemConfig("journal", "Write", True),
            ChecklistItemConfig("read", "Read", True),
            ChecklistItemConfig("old", "Disabled", False),
        ]
        a = empty_entry("2026-03-14")
        a.checklist = {"journal": True, "read": True, "old": True}
        b = empty_entry("2026-03-15")
        b.checklist = {"journal": False}

        stats = compute_stats({"2026-03-14": a, "2026-03-15": b}, config)

        assert stats["checklist_completion"] == 0.5

    def test_streak(self):
        """Test the streak counts back from today."""
        today = date(2026, 3, 15)
        entries = {
            key: empty_entry(key)
            for key in ["2026-03-15", "2026-03-14", "2026-03-13", "2026-03-10"]
        }

        assert compute_stats(entries, today=today)["streak"] == 3

    def test_streak_from_yesterday(self):
        """Test a streak is not broken before today's entry exists."""
        entries = {key: empty_entry(key) for key in ["2026-03-14", "2026-03-13"]}

        assert compute_stats(entries, today=date(2026, 3, 15))["streak"] == 2
        assert compute_stats(entries, today=date(2026, 3, 16))["streak"] == 0
