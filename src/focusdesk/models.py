"""Owner-scoped entities and their persisted row mapping.

Rows use the store's column names (`user_id`, `created_at`, `due_date`,
`completed_dates`, ...) and plain JSON values. Entities use typed attributes
(`owner_id`, aware datetimes, `date`, enums). Every conversion between the two
goes through `from_row` / `to_columns` / `new_row` here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, ClassVar, Iterable, Optional


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Category(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    SHOPPING = "shopping"
    OTHER = "other"


PRIORITY_COLORS: dict[Priority, str] = {
    Priority.HIGH: "#D32F2F",
    Priority.MEDIUM: "#F57C00",
    Priority.LOW: "#388E3C",
}

HABIT_COLORS = ["#1976D2", "#D32F2F", "#388E3C", "#F57C00", "#7B1FA2", "#0097A7"]
DEFAULT_HABIT_COLOR = HABIT_COLORS[0]


# ---- Time helpers ----

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Aware datetime -> ISO-8601 string in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_timestamp(value: Any) -> datetime:
    """Stored timestamp -> aware datetime. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_day(value: Any) -> Optional[date]:
    """Stored calendar day -> date. None and empty strings map to None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        return date.fromisoformat(text[:10])
    raise ValueError(f"Unsupported date value: {value!r}")


def day_key(day: date) -> str:
    return day.isoformat()


def _clean_text(value: Any, name: str, required: bool = True) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    text = value.strip()
    if required and not text:
        raise ValueError(f"{name} must not be empty")
    return text


# ---- Derived values ----

def compute_streak(days: Iterable[str], today: Optional[date] = None) -> int:
    """Length of the run of marked days ending today, or yesterday if today is unmarked."""
    marked = set(days)
    today = today or date.today()
    cursor = today if day_key(today) in marked else today - timedelta(days=1)
    streak = 0
    while day_key(cursor) in marked:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def normalize_days(days: Iterable[Any]) -> list[str]:
    """Validate day strings and drop duplicates, keeping first-seen order."""
    seen: dict[str, None] = {}
    for value in days:
        day = parse_day(value)
        if day is None:
            raise ValueError(f"Invalid completion date: {value!r}")
        seen.setdefault(day_key(day), None)
    return list(seen)


# ---- Entities ----

class Entity:
    """Row mapping shared by all owner-scoped entities.

    Subclasses list their mutable attributes in `columns` (attribute -> column)
    and implement `_normalize_field` / `_column_value` for each of them.
    """

    columns: ClassVar[dict[str, str]] = {}

    id: str
    owner_id: str
    created_at: datetime

    @classmethod
    def normalize(cls, changes: dict[str, Any]) -> dict[str, Any]:
        """Validate a partial update given by attribute name. Raises ValueError."""
        unknown = sorted(set(changes) - set(cls.columns))
        if unknown:
            raise ValueError(f"Unknown {cls.__name__.lower()} field(s): {', '.join(unknown)}")
        return {name: cls._normalize_field(name, value) for name, value in changes.items()}

    @classmethod
    def to_columns(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Normalized attribute values -> persisted column values."""
        return {cls.columns[name]: cls._column_value(name, value) for name, value in values.items()}

    @classmethod
    def _normalize_field(cls, name: str, value: Any) -> Any:
        raise NotImplementedError

    @classmethod
    def _column_value(cls, name: str, value: Any) -> Any:
        return value


@dataclass
class Task(Entity):
    id: str
    owner_id: str
    text: str
    created_at: datetime
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    category: Category = Category.PERSONAL
    due_date: Optional[date] = None

    columns: ClassVar[dict[str, str]] = {
        "text": "text",
        "completed": "completed",
        "priority": "priority",
        "category": "category",
        "due_date": "due_date",
    }

    def is_overdue(self, today: Optional[date] = None) -> bool:
        """Due before today (day granularity) and still open."""
        if self.due_date is None or self.completed:
            return False
        return self.due_date < (today or date.today())

    @property
    def priority_color(self) -> str:
        return PRIORITY_COLORS[self.priority]

    @property
    def category_label(self) -> str:
        return self.category.value.capitalize()

    @classmethod
    def _normalize_field(cls, name: str, value: Any) -> Any:
        if name == "text":
            return _clean_text(value, "Task text")
        if name == "completed":
            if not isinstance(value, bool):
                raise ValueError("completed must be a boolean")
            return value
        if name == "priority":
            return Priority(value)
        if name == "category":
            return Category(value)
        return parse_day(value)

    @classmethod
    def _column_value(cls, name: str, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if name == "due_date":
            return day_key(value) if value is not None else None
        return value

    @classmethod
    def new_row(cls, owner_id: str, fields: dict[str, Any], now: datetime) -> dict[str, Any]:
        if "text" not in fields:
            raise ValueError("Task text is required")
        values = cls.normalize({
            "completed": False,
            "priority": Priority.MEDIUM,
            "category": Category.PERSONAL,
            "due_date": None,
            **fields,
        })
        return {"user_id": owner_id, "created_at": to_iso(now), **cls.to_columns(values)}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Task":
        return cls(
            id=str(row["id"]),
            owner_id=row["user_id"],
            text=row["text"],
            completed=bool(row.get("completed", False)),
            priority=Priority(row.get("priority") or Priority.MEDIUM),
            category=Category(row.get("category") or Category.PERSONAL),
            due_date=parse_day(row.get("due_date")),
            created_at=parse_timestamp(row["created_at"]),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "created_at": to_iso(self.created_at),
            **self.to_columns({name: getattr(self, name) for name in self.columns}),
        }

    def to_export_dict(self, today: Optional[date] = None) -> dict[str, Any]:
        """CamelCase dict for the HTTP API."""
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "priority": self.priority.value,
            "category": self.category.value,
            "dueDate": day_key(self.due_date) if self.due_date else None,
            "createdAt": to_iso(self.created_at),
            "overdue": self.is_overdue(today),
        }


@dataclass
class Note(Entity):
    id: str
    owner_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    content: str = ""

    columns: ClassVar[dict[str, str]] = {
        "title": "title",
        "content": "content",
        "updated_at": "updated_at",
    }

    @classmethod
    def _normalize_field(cls, name: str, value: Any) -> Any:
        if name == "title":
            return _clean_text(value, "Note title")
        if name == "content":
            return _clean_text(value, "Note content", required=False)
        return parse_timestamp(value)

    @classmethod
    def _column_value(cls, name: str, value: Any) -> Any:
        if name == "updated_at":
            return to_iso(value)
        return value

    @classmethod
    def new_row(cls, owner_id: str, fields: dict[str, Any], now: datetime) -> dict[str, Any]:
        if "title" not in fields:
            raise ValueError("Note title is required")
        values = cls.normalize({"content": "", "updated_at": now, **fields})
        return {"user_id": owner_id, "created_at": to_iso(now), **cls.to_columns(values)}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Note":
        return cls(
            id=str(row["id"]),
            owner_id=row["user_id"],
            title=row["title"],
            content=row.get("content") or "",
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "created_at": to_iso(self.created_at),
            **self.to_columns({name: getattr(self, name) for name in self.columns}),
        }

    def to_export_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


@dataclass
class Habit(Entity):
    id: str
    owner_id: str
    name: str
    created_at: datetime
    color: str = DEFAULT_HABIT_COLOR
    completed_dates: list[str] = field(default_factory=list)

    columns: ClassVar[dict[str, str]] = {
        "name": "name",
        "color": "color",
        "completed_dates": "completed_dates",
    }

    def streak(self, today: Optional[date] = None) -> int:
        return compute_streak(self.completed_dates, today)

    def is_done(self, day: date) -> bool:
        return day_key(day) in self.completed_dates

    def toggled_dates(self, day: date) -> list[str]:
        """Completion dates with `day` flipped."""
        key = day_key(day)
        if key in self.completed_dates:
            return [d for d in self.completed_dates if d != key]
        return [*self.completed_dates, key]

    @classmethod
    def _normalize_field(cls, name: str, value: Any) -> Any:
        if name == "name":
            return _clean_text(value, "Habit name")
        if name == "color":
            return _clean_text(value, "Habit color")
        if not isinstance(value, (list, tuple, set)):
            raise ValueError("completed_dates must be a list of days")
        return normalize_days(value)

    @classmethod
    def to_columns(cls, values: dict[str, Any]) -> dict[str, Any]:
        columns = super().to_columns(values)
        # The stored streak column is write-only; it follows the dates it was computed from.
        if "completed_dates" in values:
            columns["streak"] = compute_streak(values["completed_dates"])
        return columns

    @classmethod
    def new_row(cls, owner_id: str, fields: dict[str, Any], now: datetime) -> dict[str, Any]:
        if "name" not in fields:
            raise ValueError("Habit name is required")
        values = cls.normalize({"color": DEFAULT_HABIT_COLOR, "completed_dates": [], **fields})
        return {"user_id": owner_id, "created_at": to_iso(now), **cls.to_columns(values)}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Habit":
        return cls(
            id=str(row["id"]),
            owner_id=row["user_id"],
            name=row["name"],
            color=row.get("color") or DEFAULT_HABIT_COLOR,
            completed_dates=normalize_days(row.get("completed_dates") or []),
            created_at=parse_timestamp(row["created_at"]),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "created_at": to_iso(self.created_at),
            **self.to_columns({name: getattr(self, name) for name in self.columns}),
        }

    def to_export_dict(self, today: Optional[date] = None) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "completedDates": list(self.completed_dates),
            "streak": self.streak(today),
            "createdAt": to_iso(self.created_at),
        }
