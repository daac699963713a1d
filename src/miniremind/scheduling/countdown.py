"""Countdown / urgency projection for display surfaces.

Pure functions of ``(now, reminder)``: safe to call at any cadence, never
mutate records and never raise.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from miniremind.scheduling.evaluator import GRACE_WINDOW, interval_reference
from miniremind.scheduling.reminders import (
    IntervalSchedule,
    Mode,
    OnceSchedule,
    Reminder,
)

PLACEHOLDER = "--:--"
FIRED_MARKER = "!!!"

_URGENT_BELOW = timedelta(seconds=60)
_ALERT_BELOW = timedelta(seconds=300)


class Urgency(Enum):
    CHILL = "chill"
    ALERT = "alert"
    URGENT = "urgent"
    FIRED = "fired"


@dataclass(frozen=True, slots=True)
class Projection:
    display: str
    urgency: Urgency


IDLE = Projection(display=PLACEHOLDER, urgency=Urgency.CHILL)


def next_due(reminder: Reminder) -> datetime | None:
    """None for malformed reminders."""
    schedule = reminder.schedule
    if not reminder.well_formed:
        return None
    if isinstance(schedule, OnceSchedule):
        return schedule.due_at
    assert isinstance(schedule, IntervalSchedule)
    return interval_reference(reminder) + timedelta(minutes=schedule.period_minutes)


def format_remaining(diff: timedelta) -> str:
    total = int(diff.total_seconds())
    mins, secs = divmod(total, 60)
    return f"{mins:02d}:{secs:02d}"


def urgency_for(diff: timedelta) -> Urgency:
    if diff <= timedelta(0):
        return Urgency.FIRED
    if diff < _URGENT_BELOW:
        return Urgency.URGENT
    if diff < _ALERT_BELOW:
        return Urgency.ALERT
    return Urgency.CHILL


def project(now: datetime, reminder: Reminder | None) -> Projection:
    if reminder is None:
        return IDLE
    try:
        due = next_due(reminder)
        if due is None:
            return IDLE
        diff = due - now
    except (TypeError, ValueError, OverflowError):
        return IDLE
    urgency = urgency_for(diff)
    if urgency is Urgency.FIRED:
        return Projection(display=FIRED_MARKER, urgency=urgency)
    return Projection(display=format_remaining(diff), urgency=urgency)


def is_pending(reminder: Reminder) -> bool:
    """Still expected to fire: well-formed and not a finished once reminder."""
    if not reminder.well_formed:
        return False
    if reminder.mode is Mode.ONCE:
        return not reminder.is_completed and reminder.last_fired_at is None
    return True


def next_up(now: datetime, reminders: list[Reminder]) -> Reminder | None:
    """Pending reminder with the earliest next-due instant, for compact widgets."""
    best: Reminder | None = None
    best_due: datetime | None = None
    for reminder in reminders:
        if not is_pending(reminder):
            continue
        try:
            due = next_due(reminder)
            if due is None:
                continue
            # Missed the grace window: a once reminder will never fire now
            if reminder.mode is Mode.ONCE and now - due >= GRACE_WINDOW:
                continue
            if best_due is None or due < best_due:
                best, best_due = reminder, due
        except TypeError:
            continue
    return best
