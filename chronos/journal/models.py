"""Journal record types and their JSON representation.

Stored documents use camelCase keys so that a local cache and a remote
document for the same day are interchangeable. Attributes are snake_case;
each field carries its document key in the dataclass field metadata.
"""

from dataclasses import MISSING, Field, dataclass, field, fields
from types import UnionType
from typing import Any, Union, get_args, get_origin

RATING_MIN = 1
RATING_MAX = 10


def _key(name: str, **kwargs: Any) -> Any:
    """Declare a dataclass field stored under the given document key."""
    return field(metadata={"key": name}, **kwargs)


def _default_for(f: Any) -> Any:
    if f.default is not MISSING:
        return f.default
    if f.default_factory is not MISSING:
        return f.default_factory()
    return None


def matches_type(value: Any, tp: Any) -> bool:
    """Whether a JSON value fits a declared field type.

    Numbers accept ints for float fields; booleans never count as numbers.
    """
    if tp is Any:
        return True
    if tp is type(None):
        return value is None

    origin = get_origin(tp)
    args = get_args(tp)
    if origin in (Union, UnionType):
        return any(matches_type(value, a) for a in args)
    if origin is list:
        return isinstance(value, list) and all(matches_type(v, args[0]) for v in value)
    if origin is dict:
        return isinstance(value, dict) and all(
            isinstance(k, str) and matches_type(v, args[1]) for k, v in value.items()
        )

    if tp is bool:
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if tp is float:
        return isinstance(value, (int, float))
    return isinstance(value, tp)


def _type_name(tp: Any) -> str:
    return str(tp) if get_origin(tp) else getattr(tp, "__name__", str(tp))


def check_field(f: Field, value: Any, owner: str) -> Any:
    """Validate a value for a record field.

    Plain dicts inside a list of records are turned into records first.

    Returns:
        The value to store.

    Raises:
        ValueError: If the value does not fit the declared type.
    """
    args = get_args(f.type)
    if (
        get_origin(f.type) is list
        and isinstance(value, list)
        and isinstance(args[0], type)
        and issubclass(args[0], _Record)
    ):
        value = [args[0].from_dict(v) if isinstance(v, dict) else v for v in value]

    if not matches_type(value, f.type):
        key = f.metadata.get("key", f.name)
        raise ValueError(f"{owner}.{key} expects {_type_name(f.type)}, got {value!r}")
    return value


class _Record:
    """Shared to_dict/from_dict for flat records."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to document dictionary."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, list):
                value = [v.to_dict() if isinstance(v, _Record) else v for v in value]
            elif isinstance(value, dict):
                value = dict(value)
            result[f.metadata.get("key", f.name)] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None):
        """Create from document dictionary, defaulting missing keys.

        Raises:
            ValueError: If data is not an object or a value has the wrong type.
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"{cls.__name__} expects an object, got {data!r}")

        kwargs = {}
        for f in fields(cls):
            key = f.metadata.get("key", f.name)
            if key in data:
                kwargs[f.name] = check_field(f, data[key], cls.__name__)
            else:
                kwargs[f.name] = _default_for(f)
        return cls(**kwargs)


@dataclass
class DailyState(_Record):
    """Section A: how the day felt."""

    mood: int | None = _key("mood", default=None)
    descriptors: list[str] = _key("descriptors", default_factory=list)
    stress: int | None = _key("stress", default=None)
    anxiety: int | None = _key("anxiety", default=None)
    times_cried: int = _key("timesCried", default=0)
    times_laughed: int = _key("timesLaughed", default=0)
    mental_clarity: int | None = _key("mentalClarity", default=None)
    physical_discomfort: str = _key("physicalDiscomfort", default="")


@dataclass
class TimeEffort(_Record):
    """Section B: where the hours went."""

    study_hours: dict[str, float] = _key("studyHours", default_factory=dict)
    work_hours: float = _key("workHours", default=0)
    creative_hours: float = _key("creativeHours", default=0)
    sleep_duration: float = _key("sleepDuration", default=0)
    sleep_quality: int | None = _key("sleepQuality", default=None)
    wake_time: str = _key("wakeTime", default="")
    focus_quality: int | None = _key("focusQuality", default=None)


@dataclass
class Achievements(_Record):
    daily_wins: str = _key("dailyWins", default="")
    academic: list[str] = _key("academic", default_factory=list)
    professional: list[str] = _key("professional", default_factory=list)
    breakthroughs: str = _key("breakthroughs", default="")
    private_pride: str = _key("privatePride", default="")
    failures: str = _key("failures", default="")
    lessons: str = _key("lessons", default="")


@dataclass
class Reflections(_Record):
    long_form: str = _key("longForm", default="")
    ideas: list[str] = _key("ideas", default_factory=list)
    current_questions: list[str] = _key("currentQuestions", default_factory=list)
    changed_mind: str = _key("changedMind", default="")


@dataclass
class Memory(_Record):
    happy_moments: str = _key("happyMoments", default="")
    sad_moments: str = _key("sadMoments", default="")
    people_met: str = _key("peopleMet", default="")
    places_visited: str = _key("placesVisited", default="")
    conversations: str = _key("conversations", default="")
    media: str = _key("media", default="")


@dataclass
class Goal(_Record):
    id: str
    text: str = ""
    done: bool = False


@dataclass
class Future(_Record):
    """Section F: gratitude and intentions."""

    gratitude: str = _key("gratitude", default="")
    short_term_goals: list[Goal] = _key("shortTermGoals", default_factory=list)
    vision_board_text: str = _key("visionBoardText", default="")
    looking_forward: str = _key("lookingForward", default="")
    wishes: str = _key("wishes", default="")


# Section document key -> section type, in display order.
SECTIONS: dict[str, type[_Record]] = {
    "state": DailyState,
    "effort": TimeEffort,
    "achievements": Achievements,
    "reflections": Reflections,
    "memory": Memory,
    "future": Future,
}

RATING_FIELDS = {
    "state": {"mood", "stress", "anxiety", "mentalClarity"},
    "effort": {"sleepQuality", "focusQuality"},
}


@dataclass
class DailyEntry:
    """One day's journaling record, keyed by ISO date."""

    id: str
    timestamp: int = 0  # epoch milliseconds of the last save
    state: DailyState = field(default_factory=DailyState)
    effort: TimeEffort = field(default_factory=TimeEffort)
    achievements: Achievements = field(default_factory=Achievements)
    reflections: Reflections = field(default_factory=Reflections)
    memory: Memory = field(default_factory=Memory)
    future: Future = field(default_factory=Future)
    checklist: dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to document dictionary."""
        result: dict[str, Any] = {"id": self.id, "timestamp": self.timestamp}
        for name in SECTIONS:
            result[name] = getattr(self, name).to_dict()
        result["checklist"] = dict(self.checklist)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any], entry_id: str | None = None) -> "DailyEntry":
        """Create from a document dictionary.

        Missing sections and fields get their empty values; unknown keys
        such as ``userId`` are ignored.

        Raises:
            ValueError: If the document or any value has the wrong shape.
        """
        if not isinstance(data, dict):
            raise ValueError(f"DailyEntry expects an object, got {data!r}")

        sections = {
            name: section_type.from_dict(data.get(name))
            for name, section_type in SECTIONS.items()
        }

        timestamp = data.get("timestamp") or 0
        if not matches_type(timestamp, float):
            raise ValueError(f"DailyEntry.timestamp expects a number, got {timestamp!r}")

        checklist = data.get("checklist") or {}
        if not matches_type(checklist, dict[str, bool]):
            raise ValueError(f"DailyEntry.checklist expects booleans, got {checklist!r}")

        return cls(
            id=entry_id or data.get("id") or "",
            timestamp=int(timestamp),
            checklist=dict(checklist),
            **sections,
        )


@dataclass
class Note(_Record):
    """A freeform principle or essay."""

    id: str
    title: str = ""
    content: str = ""
    created: int = 0
    updated: int = 0
    tags: list[str] = field(default_factory=list)
    versions: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.versions is None:
            del result["versions"]
        return result


@dataclass
class ChecklistItemConfig(_Record):
    id: str
    label: str
    enabled: bool = True


@dataclass
class AppData:
    """Everything held in the local cache, persisted wholesale."""

    entries: dict[str, DailyEntry] = field(default_factory=dict)
    principles: list[Note] = field(default_factory=list)
    essays: list[Note] = field(default_factory=list)
    checklist_config: list[ChecklistItemConfig] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": {k: e.to_dict() for k, e in self.entries.items()},
            "principles": [n.to_dict() for n in self.principles],
            "essays": [n.to_dict() for n in self.essays],
            "checklistConfig": [c.to_dict() for c in self.checklist_config],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppData":
        """Create from the cached envelope.

        A missing ``checklistConfig`` stays empty here; callers decide the
        default.
        """
        return cls(
            entries={
                key: DailyEntry.from_dict(value, entry_id=key)
                for key, value in (data.get("entries") or {}).items()
            },
            principles=[Note.from_dict(n) for n in data.get("principles") or []],
            essays=[Note.from_dict(n) for n in data.get("essays") or []],
            checklist_config=[
                ChecklistItemConfig.from_dict(c)
                for c in data.get("checklistConfig") or []
            ],
        )
