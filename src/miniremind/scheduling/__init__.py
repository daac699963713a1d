"""Scheduling: reminder model, tick evaluation, alert arbitration, countdowns."""

from miniremind.scheduling.alerts import AlertArbiter, arbitrate
from miniremind.scheduling.countdown import Projection, Urgency, next_up, project
from miniremind.scheduling.evaluator import TickResult, evaluate
from miniremind.scheduling.reminders import (
    Category,
    Mode,
    Priority,
    Reminder,
    RepeatScope,
    append_reminder,
    list_reminders,
    remove_reminder,
)
from miniremind.scheduling.scheduler import (
    ReminderScheduler,
    ReminderStore,
    setup_scheduler,
)

__all__ = [
    "AlertArbiter",
    "Category",
    "Mode",
    "Priority",
    "Projection",
    "Reminder",
    "ReminderScheduler",
    "ReminderStore",
    "RepeatScope",
    "TickResult",
    "Urgency",
    "append_reminder",
    "arbitrate",
    "evaluate",
    "list_reminders",
    "next_up",
    "project",
    "remove_reminder",
    "setup_scheduler",
]
