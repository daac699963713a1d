"""Reminder store and the recurring tick that drives it.

ReminderStore owns the reminder list (load once, save after every change).
ReminderScheduler runs one evaluation pass per tick against a single ``now``,
commits the result, then hands fired reminders to the AlertArbiter.
setup_scheduler wires the tick into an APScheduler IntervalTrigger job.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from miniremind import storage
from miniremind.config import TICK_SECONDS
from miniremind.scheduling.alerts import AlertArbiter
from miniremind.scheduling.countdown import Projection, next_up, project
from miniremind.scheduling.evaluator import (
    GRACE_WINDOW,
    INTERVAL_TOLERANCE,
    TickResult,
    evaluate,
)
from miniremind.scheduling.reminders import (
    STORAGE_KEY,
    OnceSchedule,
    Reminder,
    find_reminder,
    load_reminders,
    replace_reminder,
    save_reminders,
    toggle_completed,
)
from miniremind.storage import TZ

log = logging.getLogger(__name__)

Mutation = Callable[[list[Reminder]], list[Reminder]]

# Authoring fields an edit may change; firing fields stay with the evaluator.
_EDITABLE = frozenset(
    {"title", "category", "mode", "schedule", "description", "priority", "sound"}
)


def _blob_version() -> float | None:
    return storage.blob_mtime(STORAGE_KEY)


class ReminderStore:
    """Single owner of the reminder list. Display surfaces only read via get()."""

    def __init__(
        self,
        load: Callable[[], list[Reminder]] = load_reminders,
        save: Callable[[list[Reminder]], None] = save_reminders,
        version: Callable[[], float | None] | None = _blob_version,
    ) -> None:
        self._load = load
        self._save = save
        self._version = version
        self._reminders: list[Reminder] = []
        self._seen_version: float | None = None
        self.reload()

    def get(self) -> list[Reminder]:
        return list(self._reminders)

    def reload(self) -> None:
        self._reminders = list(self._load())
        self._seen_version = self._version() if self._version else None

    def refresh_if_changed(self) -> bool:
        """Reload when the backing blob was written by someone else (e.g. the CLI)."""
        if self._version is None:
            return False
        current = self._version()
        if current == self._seen_version:
            return False
        log.info("Reminder storage changed on disk; reloading")
        self.reload()
        return True

    def commit(self, updated: list[Reminder]) -> None:
        self._reminders = list(updated)
        self._persist()

    def mutate(self, fn: Mutation) -> list[Reminder]:
        updated = fn(self.get())
        self.commit(updated)
        return self.get()

    def _persist(self) -> None:
        try:
            self._save(self._reminders)
        except Exception:
            log.exception("Saving reminders failed; keeping in-memory state")
            return
        if self._version is not None:
            self._seen_version = self._version()


@dataclass(frozen=True, slots=True)
class TickOutcome:
    result: TickResult
    activated: Reminder | None = None
    body: str | None = None  # alert text chosen at activation


class ReminderScheduler:
    def __init__(
        self,
        store: ReminderStore,
        arbiter: AlertArbiter | None = None,
        *,
        grace: timedelta = GRACE_WINDOW,
        tolerance: timedelta = INTERVAL_TOLERANCE,
    ) -> None:
        self.store = store
        self.arbiter = arbiter or AlertArbiter()
        self.grace = grace
        self.tolerance = tolerance

    def tick(self, now: datetime) -> TickOutcome:
        """One full evaluation pass. Commits before returning; never raises for bad records."""
        if self.store.refresh_if_changed():
            self._drop_vanished_alert()
        result = evaluate(
            now, self.store.get(), grace=self.grace, tolerance=self.tolerance
        )
        if result.changed:
            self.store.commit(result.updated)
            log.info("Fired %s", ", ".join(r.id for r in result.to_fire))
        activated = self.arbiter.on_fired(result.to_fire)
        body = self.arbiter.body if activated is not None else None
        return TickOutcome(result=result, activated=activated, body=body)

    def _drop_vanished_alert(self) -> None:
        active = self.arbiter.active
        if active is not None and find_reminder(self.store.get(), active.id) is None:
            log.info("Active alert %s was deleted externally; clearing", active.id)
            self.arbiter.forget(active.id)

    def get(self) -> list[Reminder]:
        return self.store.get()

    def mutate(self, fn: Mutation) -> list[Reminder]:
        return self.store.mutate(fn)

    # --- User operations ---

    def add(self, reminder: Reminder) -> Reminder:
        self.store.mutate(lambda reminders: [*reminders, reminder])
        return reminder

    def remove(self, reminder_id: str) -> bool:
        if find_reminder(self.store.get(), reminder_id) is None:
            return False
        self.store.mutate(lambda rs: [r for r in rs if r.id != reminder_id])
        self.arbiter.forget(reminder_id)
        return True

    def edit(self, reminder_id: str, **changes: object) -> Reminder | None:
        unknown = set(changes) - _EDITABLE
        if unknown:
            raise ValueError(f"Cannot edit fields: {', '.join(sorted(unknown))}")
        target = find_reminder(self.store.get(), reminder_id)
        if target is None:
            return None
        edited = dataclasses.replace(target, **changes)  # type: ignore[arg-type]
        if isinstance(edited.schedule, OnceSchedule) and edited.schedule != target.schedule:
            # A new due time re-arms the reminder; fired_count stays cumulative.
            edited = dataclasses.replace(edited, last_fired_at=None, is_completed=False)
        if not edited.well_formed:
            raise ValueError(f"Schedule does not match mode {edited.mode.value}")
        if not edited.title.strip():
            raise ValueError("Reminder title must not be empty")
        self.store.mutate(lambda rs: replace_reminder(rs, edited))
        return edited

    def toggle(self, reminder_id: str) -> Reminder | None:
        reminders = self.store.mutate(lambda rs: toggle_completed(rs, reminder_id))
        return find_reminder(reminders, reminder_id)

    def dismiss_active(self) -> Reminder | None:
        return self.arbiter.dismiss()

    def complete_active(self) -> Reminder | None:
        return self.arbiter.complete(self.store)

    # --- Read side ---

    def project(self, now: datetime, reminder_id: str | None = None) -> Projection:
        """Projection for one reminder, or for next_up() when no id is given."""
        reminders = self.store.get()
        if reminder_id is None:
            return project(now, next_up(now, reminders))
        return project(now, find_reminder(reminders, reminder_id))


def setup_scheduler(
    service: ReminderScheduler,
    on_activate: Callable[[Reminder, str], Awaitable[None]] | None = None,
) -> AsyncIOScheduler:
    """Ticks every TICK_SECONDS; on_activate runs as a task so a slow surface never delays a tick."""
    scheduler = AsyncIOScheduler(timezone=TZ)
    _background_tasks: set[asyncio.Task[None]] = set()

    def _log_failure(task: asyncio.Task[None]) -> None:
        _background_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("Alert surface failed", exc_info=task.exception())

    @scheduler.scheduled_job(
        IntervalTrigger(seconds=TICK_SECONDS), max_instances=1, coalesce=True
    )
    async def reminder_tick() -> None:
        outcome = service.tick(datetime.now(TZ))
        if outcome.activated is not None and on_activate is not None:
            task = asyncio.get_running_loop().create_task(
                on_activate(outcome.activated, outcome.body or "")
            )
            _background_tasks.add(task)
            task.add_done_callback(_log_failure)

    return scheduler
