"""Reminder data model and JSON blob persistence.

A reminder is either ONCE (fires a single time at ``due_at``) or INTERVAL
(fires every ``period_minutes`` inside a daily ``HH:MM`` window). The mode
payload lives in ``schedule``; records loaded from storage whose payload is
missing or invalid keep ``schedule=None`` and never fire.
"""

import dataclasses
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import uuid4

from miniremind import storage
from miniremind.storage import TZ

STORAGE_KEY = "miniremind_data_v3"

log = logging.getLogger(__name__)

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class Category(Enum):
    GENERAL = "general"
    WATER = "water"
    STRETCH = "stretch"
    EYE = "eye"
    BREAK = "break"


class Mode(Enum):
    ONCE = "once"
    INTERVAL = "interval"


class RepeatScope(Enum):
    EVERY_DAY = "daily"
    WORKDAYS = "workdays"


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class OnceSchedule:
    due_at: datetime


@dataclass(frozen=True, slots=True)
class IntervalSchedule:
    window_start: str  # HH:MM, zero-padded 24h
    window_end: str
    period_minutes: int
    repeat: RepeatScope = RepeatScope.EVERY_DAY

    def __post_init__(self) -> None:
        for value in (self.window_start, self.window_end):
            if not isinstance(value, str) or not _HHMM_RE.match(value):
                raise ValueError(f"Invalid time of day: {value!r} (expected HH:MM)")
        if self.window_start > self.window_end:
            raise ValueError(
                f"Window start {self.window_start} is after window end {self.window_end}"
            )
        if isinstance(self.period_minutes, bool) or not isinstance(self.period_minutes, int):
            raise ValueError(f"Invalid period: {self.period_minutes!r}")
        if self.period_minutes <= 0:
            raise ValueError(f"Period must be positive, got {self.period_minutes}")


Schedule = OnceSchedule | IntervalSchedule


@dataclass(frozen=True, slots=True)
class Reminder:
    id: str
    title: str
    category: Category
    mode: Mode
    schedule: Schedule | None
    created_at: datetime
    last_fired_at: datetime | None = None
    fired_count: int = 0
    is_completed: bool = False
    description: str = ""
    priority: Priority = Priority.MEDIUM
    sound: str | None = None  # URL or path; None = default alert sound

    @property
    def well_formed(self) -> bool:
        """True when the schedule payload matches the mode."""
        if self.mode is Mode.ONCE:
            return isinstance(self.schedule, OnceSchedule)
        return isinstance(self.schedule, IntervalSchedule)

    @staticmethod
    def new_once(
        title: str,
        *,
        due_at: datetime,
        category: Category = Category.GENERAL,
        description: str = "",
        priority: Priority = Priority.MEDIUM,
        sound: str | None = None,
        now: datetime | None = None,
    ) -> "Reminder":
        if due_at.tzinfo is None:
            raise ValueError("due_at must be timezone-aware")
        return _new(
            title,
            mode=Mode.ONCE,
            schedule=OnceSchedule(due_at=due_at),
            category=category,
            description=description,
            priority=priority,
            sound=sound,
            now=now,
        )

    @staticmethod
    def new_interval(
        title: str,
        *,
        window_start: str,
        window_end: str,
        period_minutes: int,
        repeat: RepeatScope = RepeatScope.EVERY_DAY,
        category: Category = Category.GENERAL,
        description: str = "",
        priority: Priority = Priority.MEDIUM,
        sound: str | None = None,
        now: datetime | None = None,
    ) -> "Reminder":
        return _new(
            title,
            mode=Mode.INTERVAL,
            schedule=IntervalSchedule(
                window_start=window_start,
                window_end=window_end,
                period_minutes=period_minutes,
                repeat=repeat,
            ),
            category=category,
            description=description,
            priority=priority,
            sound=sound,
            now=now,
        )


def _new(
    title: str,
    *,
    mode: Mode,
    schedule: Schedule,
    category: Category,
    description: str,
    priority: Priority,
    sound: str | None,
    now: datetime | None,
) -> Reminder:
    title = title.strip()
    if not title:
        raise ValueError("Reminder title must not be empty")
    return Reminder(
        id=uuid4().hex[:8],
        title=title,
        category=category,
        mode=mode,
        schedule=schedule,
        created_at=now or datetime.now(TZ),
        description=description,
        priority=priority,
        sound=sound,
    )


# --- Record helpers ---


def replace_reminder(reminders: list[Reminder], updated: Reminder) -> list[Reminder]:
    """New list with the reminder sharing updated.id swapped in; order preserved."""
    return [updated if r.id == updated.id else r for r in reminders]


def find_reminder(reminders: list[Reminder], reminder_id: str) -> Reminder | None:
    return next((r for r in reminders if r.id == reminder_id), None)


def mark_completed(reminders: list[Reminder], reminder_id: str) -> list[Reminder]:
    """Set is_completed on a ONCE reminder. Interval reminders are left as-is."""
    target = find_reminder(reminders, reminder_id)
    if target is None or target.mode is not Mode.ONCE or target.is_completed:
        return reminders
    return replace_reminder(reminders, dataclasses.replace(target, is_completed=True))


def schedule_changes(
    target: Reminder,
    *,
    due_at: datetime | None = None,
    period_minutes: int | None = None,
    window_start: str | None = None,
    window_end: str | None = None,
    repeat: RepeatScope | None = None,
) -> dict[str, object]:
    """Mode/schedule fields for an edit; empty when no schedule option was given.

    Interval fields left out keep their current value, or the 09:00-18:00
    daily default when the reminder is switching from once mode.
    """
    if due_at is not None:
        if due_at.tzinfo is None:
            raise ValueError("due_at must be timezone-aware")
        return {"mode": Mode.ONCE, "schedule": OnceSchedule(due_at=due_at)}
    if period_minutes is None and window_start is None and window_end is None and repeat is None:
        return {}
    current = target.schedule if isinstance(target.schedule, IntervalSchedule) else None
    if period_minutes is None:
        if current is None:
            raise ValueError("A period is required to make this an interval reminder")
        period_minutes = current.period_minutes
    return {
        "mode": Mode.INTERVAL,
        "schedule": IntervalSchedule(
            window_start=window_start or (current.window_start if current else "09:00"),
            window_end=window_end or (current.window_end if current else "18:00"),
            period_minutes=period_minutes,
            repeat=repeat or (current.repeat if current else RepeatScope.EVERY_DAY),
        ),
    }


def toggle_completed(reminders: list[Reminder], reminder_id: str) -> list[Reminder]:
    """Manual check-off from a list view; applies to both modes."""
    target = find_reminder(reminders, reminder_id)
    if target is None:
        return reminders
    return replace_reminder(
        reminders, dataclasses.replace(target, is_completed=not target.is_completed)
    )


# --- Serialization ---


def _format_instant(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_instant(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=TZ)
    return parsed


def to_record(reminder: Reminder) -> dict[str, object]:
    record: dict[str, object] = {
        "id": reminder.id,
        "title": reminder.title,
        "description": reminder.description,
        "category": reminder.category.value,
        "mode": reminder.mode.value,
        "priority": reminder.priority.value,
        "created_at": _format_instant(reminder.created_at),
        "last_fired_at": _format_instant(reminder.last_fired_at),
        "fired_count": reminder.fired_count,
        "is_completed": reminder.is_completed,
        "sound": reminder.sound,
    }
    schedule = reminder.schedule
    if isinstance(schedule, OnceSchedule):
        record["due_at"] = _format_instant(schedule.due_at)
    elif isinstance(schedule, IntervalSchedule):
        record["window_start"] = schedule.window_start
        record["window_end"] = schedule.window_end
        record["period_minutes"] = schedule.period_minutes
        record["repeat"] = schedule.repeat.value
    return record


def _parse_schedule(mode: Mode, data: dict) -> Schedule:
    if mode is Mode.ONCE:
        return OnceSchedule(due_at=_parse_instant(data["due_at"]))
    return IntervalSchedule(
        window_start=data["window_start"],
        window_end=data["window_end"],
        period_minutes=data["period_minutes"],
        repeat=RepeatScope(data.get("repeat", RepeatScope.EVERY_DAY.value)),
    )


def from_record(data: dict) -> Reminder:
    """Raises on a broken core record; a broken schedule payload yields schedule=None."""
    mode = Mode(data["mode"])
    rid = str(data["id"])
    try:
        schedule: Schedule | None = _parse_schedule(mode, data)
    except (KeyError, TypeError, ValueError):
        log.warning("Reminder %s has a malformed %s schedule", rid, mode.value)
        schedule = None
    last_fired = data.get("last_fired_at")
    return Reminder(
        id=rid,
        title=str(data["title"]),
        category=Category(data.get("category", Category.GENERAL.value)),
        mode=mode,
        schedule=schedule,
        created_at=_parse_instant(data["created_at"]),
        last_fired_at=_parse_instant(last_fired) if last_fired else None,
        fired_count=int(data.get("fired_count", 0)),
        is_completed=bool(data.get("is_completed", False)),
        description=str(data.get("description", "")),
        priority=Priority(data.get("priority", Priority.MEDIUM.value)),
        sound=data.get("sound"),
    )


# --- Persistence ---


def load_reminders() -> list[Reminder]:
    """Skips corrupt records; keeps records with malformed schedules."""
    data = storage.read_blob(STORAGE_KEY)
    if data is None:
        return []
    if not isinstance(data, list):
        log.warning("Reminder blob %s is not a list; ignoring", STORAGE_KEY)
        return []
    result: list[Reminder] = []
    for item in data:
        try:
            result.append(from_record(item))
        except (KeyError, TypeError, ValueError, AttributeError):
            log.warning("Skipping corrupt reminder record: %r", item)
    return result


def save_reminders(reminders: list[Reminder]) -> None:
    storage.write_blob(STORAGE_KEY, [to_record(r) for r in reminders])


def append_reminder(reminder: Reminder) -> None:
    save_reminders([*load_reminders(), reminder])


def list_reminders() -> list[Reminder]:
    return load_reminders()


def remove_reminder(reminder_id: str) -> bool:
    reminders = load_reminders()
    filtered = [r for r in reminders if r.id != reminder_id]
    if len(filtered) == len(reminders):
        return False
    save_reminders(filtered)
    return True


def update_reminders(fn: Callable[[list[Reminder]], list[Reminder]]) -> list[Reminder]:
    """Load, apply fn, save. Returns the new list."""
    updated = fn(load_reminders())
    save_reminders(updated)
    return updated
