"""Tick evaluator: decides which reminders fire at a given instant.

One pass evaluates every reminder against a single ``now`` sample and returns
the fired subset plus a new list with updated firing fields. The input list
and its records are never mutated.
"""

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from miniremind.config import INTERVAL_TOLERANCE_SECONDS, ONCE_GRACE_SECONDS
from miniremind.scheduling.reminders import (
    IntervalSchedule,
    Mode,
    OnceSchedule,
    Reminder,
    RepeatScope,
)

log = logging.getLogger(__name__)

GRACE_WINDOW = timedelta(seconds=ONCE_GRACE_SECONDS)
INTERVAL_TOLERANCE = timedelta(seconds=INTERVAL_TOLERANCE_SECONDS)

_SATURDAY = 5

# Malformed records are logged once per id, not on every tick.
_warned_malformed: set[str] = set()


@dataclass(frozen=True, slots=True)
class TickResult:
    to_fire: list[Reminder]
    updated: list[Reminder]

    @property
    def changed(self) -> bool:
        return bool(self.to_fire)


def interval_reference(reminder: Reminder) -> datetime:
    """Baseline an interval period counts from: last firing, else creation."""
    return reminder.last_fired_at or reminder.created_at


def is_weekend(now: datetime) -> bool:
    return now.weekday() >= _SATURDAY


def _once_due(
    schedule: OnceSchedule, reminder: Reminder, now: datetime, grace: timedelta
) -> bool:
    if reminder.last_fired_at is not None:
        return False
    late_by = now - schedule.due_at
    return timedelta(0) <= late_by < grace


def _interval_due(
    schedule: IntervalSchedule, reminder: Reminder, now: datetime, tolerance: timedelta
) -> bool:
    current = now.strftime("%H:%M")
    if not schedule.window_start <= current <= schedule.window_end:
        return False
    elapsed = now - interval_reference(reminder)
    return elapsed >= timedelta(minutes=schedule.period_minutes) - tolerance


def should_fire(
    reminder: Reminder,
    now: datetime,
    *,
    grace: timedelta = GRACE_WINDOW,
    tolerance: timedelta = INTERVAL_TOLERANCE,
) -> bool:
    """Firing decision for one reminder. Raises only on corrupt in-memory data."""
    if not reminder.well_formed:
        if reminder.id not in _warned_malformed:
            _warned_malformed.add(reminder.id)
            log.warning(
                "Reminder %s has no valid %s schedule; not firing",
                reminder.id,
                reminder.mode.value,
            )
        return False
    # Repaired records warn again if they break later.
    _warned_malformed.discard(reminder.id)

    schedule = reminder.schedule
    if isinstance(schedule, OnceSchedule):
        if reminder.is_completed:
            return False
        return _once_due(schedule, reminder, now, grace)

    assert isinstance(schedule, IntervalSchedule)
    # Completion is advisory for interval reminders: they keep firing.
    if schedule.repeat is RepeatScope.WORKDAYS and is_weekend(now):
        return False
    return _interval_due(schedule, reminder, now, tolerance)


def fire(reminder: Reminder, now: datetime) -> Reminder:
    return dataclasses.replace(
        reminder, last_fired_at=now, fired_count=reminder.fired_count + 1
    )


def evaluate(
    now: datetime,
    reminders: list[Reminder],
    *,
    grace: timedelta = GRACE_WINDOW,
    tolerance: timedelta = INTERVAL_TOLERANCE,
) -> TickResult:
    """Evaluate every reminder against one ``now``; fired ones keep input order."""
    to_fire: list[Reminder] = []
    updated: list[Reminder] = []
    for reminder in reminders:
        try:
            due = should_fire(reminder, now, grace=grace, tolerance=tolerance)
        except Exception:
            log.exception("Evaluating reminder %s failed; treating as not due", reminder.id)
            due = False
        if due:
            fired = fire(reminder, now)
            to_fire.append(fired)
            updated.append(fired)
        else:
            updated.append(reminder)
    return TickResult(to_fire=to_fire, updated=updated)
