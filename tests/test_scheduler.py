"""Tests for scheduler.py — ReminderStore, ReminderScheduler, and the APScheduler job."""

import asyncio
from datetime import datetime, timedelta

import pytest
from conftest import at

from miniremind.scheduling.alerts import AlertArbiter
from miniremind.scheduling.countdown import PLACEHOLDER, Urgency
from miniremind.scheduling.reminders import (
    OnceSchedule,
    Reminder,
    append_reminder,
    list_reminders,
    remove_reminder,
    save_reminders,
)
from miniremind.scheduling.scheduler import (
    ReminderScheduler,
    ReminderStore,
    setup_scheduler,
)
from miniremind.storage import TZ


def _run(coro):
    # Fresh loop rather than asyncio.run(), which leaves no current loop behind.
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _once(title="stand up", due=None):
    due = due or at(19, 12, 0)
    return Reminder.new_once(title, due_at=due, now=due - timedelta(hours=1))


class _MemoryStore(ReminderStore):
    def __init__(self, reminders, *, fail_save=False):
        self.saves: list[list[Reminder]] = []
        self.fail_save = fail_save
        super().__init__(load=lambda: list(reminders), save=self._save_impl, version=None)

    def _save_impl(self, reminders):
        if self.fail_save:
            raise OSError("disk full")
        self.saves.append(list(reminders))


# --- ReminderStore ---


def test_store_loads_once_from_disk(data_dir):
    reminder = _once()
    append_reminder(reminder)

    store = ReminderStore()

    assert [r.id for r in store.get()] == [reminder.id]


def test_store_get_returns_copy():
    store = _MemoryStore([_once()])

    store.get().clear()

    assert len(store.get()) == 1


def test_store_refreshes_after_external_write(data_dir):
    versions = iter([1.0, 2.0, 2.0, 2.0])
    store = ReminderStore(version=lambda: next(versions))
    append_reminder(_once("from cli"))

    assert store.refresh_if_changed() is True
    assert [r.title for r in store.get()] == ["from cli"]
    assert store.refresh_if_changed() is False


def test_store_save_failure_keeps_memory_state():
    store = _MemoryStore([], fail_save=True)
    reminder = _once()

    store.mutate(lambda rs: [*rs, reminder])

    assert store.get() == [reminder]


# --- ReminderScheduler.tick ---


def test_tick_commits_and_saves_firings(notifier, player):
    due = at(19, 12, 0)
    reminder = _once(due=due)
    store = _MemoryStore([reminder])
    service = ReminderScheduler(store, AlertArbiter(notifier, player))

    outcome = service.tick(due + timedelta(seconds=1))

    assert outcome.activated.id == reminder.id
    assert store.get()[0].fired_count == 1
    assert len(store.saves) == 1
    assert len(notifier.sent) == 1


def test_tick_without_changes_does_not_save():
    store = _MemoryStore([_once(due=at(19, 12, 0))])
    service = ReminderScheduler(store)

    outcome = service.tick(at(19, 11, 0))

    assert outcome.activated is None
    assert outcome.result.to_fire == []
    assert store.saves == []


def test_two_reminders_same_tick_first_becomes_active():
    due = at(19, 12, 0)
    first, second = _once("first", due), _once("second", due)
    service = ReminderScheduler(_MemoryStore([first, second]))

    outcome = service.tick(due + timedelta(seconds=1))

    assert [r.id for r in outcome.result.to_fire] == [first.id, second.id]
    assert service.arbiter.active.id == first.id

    service.dismiss_active()
    later = service.tick(due + timedelta(seconds=5))

    assert later.result.to_fire == []
    assert later.activated is None
    assert all(r.fired_count == 1 for r in service.get())


def test_interval_pending_until_dismissed_then_reevaluated():
    start = at(19, 9, 0)
    once = _once("once", at(19, 9, 30))
    interval = Reminder.new_interval(
        "water", window_start="09:00", window_end="18:00", period_minutes=30, now=start
    )
    service = ReminderScheduler(_MemoryStore([once, interval]))

    service.tick(at(19, 9, 30, 1))
    assert service.arbiter.active.id == once.id

    service.dismiss_active()
    outcome = service.tick(at(19, 10, 0, 1))

    assert outcome.activated.id == interval.id


def test_complete_active_through_scheduler():
    due = at(19, 12, 0)
    reminder = _once(due=due)
    store = _MemoryStore([reminder])
    service = ReminderScheduler(store)
    service.tick(due + timedelta(seconds=1))

    completed = service.complete_active()

    assert completed.id == reminder.id
    assert store.get()[0].is_completed is True


def test_alert_for_externally_deleted_reminder_is_released(data_dir):
    first = _once("first", at(19, 9, 0))
    second = _once("second", at(19, 9, 5))
    append_reminder(first)
    append_reminder(second)
    disk = {"version": 0}
    service = ReminderScheduler(ReminderStore(version=lambda: disk["version"]))

    service.tick(at(19, 9, 0, 1))
    assert service.arbiter.active.id == first.id

    remove_reminder(first.id)
    disk["version"] += 1
    outcome = service.tick(at(19, 9, 5, 1))

    assert [r.id for r in service.get()] == [second.id]
    assert outcome.activated.id == second.id
    assert service.arbiter.active.id == second.id


def test_external_write_keeps_alert_when_reminder_survives(data_dir):
    first = _once("first", at(19, 9, 0))
    append_reminder(first)
    disk = {"version": 0}
    service = ReminderScheduler(ReminderStore(version=lambda: disk["version"]))
    service.tick(at(19, 9, 0, 1))

    append_reminder(_once("added from cli", at(19, 15, 0)))
    disk["version"] += 1
    service.tick(at(19, 9, 0, 5))

    assert service.arbiter.active.id == first.id


def test_tick_outcome_carries_announced_body(notifier, player):
    due = at(19, 12, 0)
    service = ReminderScheduler(_MemoryStore([_once(due=due)]), AlertArbiter(notifier, player))

    outcome = service.tick(due + timedelta(seconds=1))

    assert outcome.body == notifier.sent[0][1]
    assert service.tick(due + timedelta(seconds=2)).body is None


# --- User operations ---


def test_add_and_remove():
    service = ReminderScheduler(_MemoryStore([]))
    reminder = service.add(_once())

    assert service.get() == [reminder]
    assert service.remove(reminder.id) is True
    assert service.remove(reminder.id) is False
    assert service.get() == []


def test_remove_clears_active_alert():
    due = at(19, 12, 0)
    reminder = _once(due=due)
    service = ReminderScheduler(_MemoryStore([reminder]))
    service.tick(due + timedelta(seconds=1))

    service.remove(reminder.id)

    assert service.arbiter.active is None


def test_edit_keeps_firing_fields():
    due = at(19, 12, 0)
    service = ReminderScheduler(_MemoryStore([_once(due=due)]))
    service.tick(due + timedelta(seconds=1))
    rid = service.get()[0].id

    edited = service.edit(rid, title="stand up and stretch")

    assert edited.title == "stand up and stretch"
    assert edited.fired_count == 1
    assert edited.last_fired_at == due + timedelta(seconds=1)


def test_edit_new_due_time_rearms_once_reminder():
    due = at(19, 12, 0)
    service = ReminderScheduler(_MemoryStore([_once(due=due)]))
    service.tick(due + timedelta(seconds=1))
    service.complete_active()
    rid = service.get()[0].id
    later = at(19, 15, 0)

    edited = service.edit(rid, schedule=OnceSchedule(due_at=later))

    assert edited.last_fired_at is None
    assert edited.is_completed is False
    assert edited.fired_count == 1
    assert [r.id for r in service.tick(later + timedelta(seconds=1)).result.to_fire] == [rid]


def test_edit_rejects_firing_fields():
    reminder = _once()
    service = ReminderScheduler(_MemoryStore([reminder]))

    with pytest.raises(ValueError, match="Cannot edit"):
        service.edit(reminder.id, fired_count=5)


def test_edit_rejects_empty_title():
    reminder = _once()
    service = ReminderScheduler(_MemoryStore([reminder]))

    with pytest.raises(ValueError, match="empty"):
        service.edit(reminder.id, title="   ")


def test_edit_unknown_id_returns_none():
    service = ReminderScheduler(_MemoryStore([]))

    assert service.edit("missing", title="x") is None


def test_toggle_flips_completed():
    reminder = _once()
    service = ReminderScheduler(_MemoryStore([reminder]))

    assert service.toggle(reminder.id).is_completed is True
    assert service.toggle(reminder.id).is_completed is False
    assert service.toggle("missing") is None


def test_project_specific_and_next_up():
    due = at(19, 12, 10)
    reminder = _once(due=due)
    service = ReminderScheduler(_MemoryStore([reminder]))
    now = at(19, 12, 7, 30)

    by_id = service.project(now, reminder.id)
    default = service.project(now)

    assert by_id.display == "02:30"
    assert by_id.urgency is Urgency.ALERT
    assert default == by_id
    assert service.project(now, "missing").display == PLACEHOLDER


# --- APScheduler wiring ---


def test_setup_scheduler_registers_tick_job():
    service = ReminderScheduler(_MemoryStore([]))

    scheduler = setup_scheduler(service)

    jobs = scheduler.get_jobs()
    assert len(jobs) == 1
    assert jobs[0].name.endswith("reminder_tick")


def test_tick_job_hands_activated_reminder_to_surface():
    now = datetime.now(TZ)
    reminder = Reminder.new_once(
        "now-ish", due_at=now - timedelta(seconds=1), now=now - timedelta(minutes=5)
    )
    service = ReminderScheduler(_MemoryStore([reminder]))
    surfaced: list[tuple[str, str]] = []

    async def on_activate(r: Reminder, body: str) -> None:
        surfaced.append((r.id, body))

    scheduler = setup_scheduler(service, on_activate)
    job = scheduler.get_jobs()[0]

    async def _drive() -> None:
        await job.func()
        await asyncio.sleep(0)

    _run(_drive())

    assert surfaced == [(reminder.id, service.arbiter.body)]


def test_saved_state_survives_restart(data_dir):
    due = at(19, 12, 0)
    save_reminders([_once(due=due)])
    service = ReminderScheduler(ReminderStore())

    service.tick(due + timedelta(seconds=1))

    reloaded = list_reminders()
    assert reloaded[0].fired_count == 1
    assert reloaded[0].last_fired_at == due + timedelta(seconds=1)
