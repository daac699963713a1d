"""Tests for views.py — Done/Dismiss button handlers."""

import asyncio
from datetime import timedelta

import pytest
from conftest import at

import miniremind.views as views_mod
from miniremind.scheduling.reminders import Reminder
from miniremind.scheduling.scheduler import ReminderScheduler, ReminderStore


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class _FakeResponse:
    def __init__(self):
        self.edits: list[dict] = []
        self.messages: list[tuple[str, dict]] = []

    async def edit_message(self, **kwargs):
        self.edits.append(kwargs)

    async def send_message(self, content, **kwargs):
        self.messages.append((content, kwargs))


class _FakeFollowup:
    def __init__(self):
        self.sent: list[tuple[str, dict]] = []

    async def send(self, content, **kwargs):
        self.sent.append((content, kwargs))


class _FakeInteraction:
    def __init__(self):
        self.response = _FakeResponse()
        self.followup = _FakeFollowup()


@pytest.fixture()
def service():
    due = at(19, 12, 0)
    reminder = Reminder.new_once("take pills", due_at=due, now=due - timedelta(hours=1))
    store = ReminderStore(load=lambda: [reminder], save=lambda _rs: None, version=None)
    svc = ReminderScheduler(store)
    svc.tick(due + timedelta(seconds=1))
    views_mod.init(svc)
    yield svc
    views_mod._service = None


def test_done_completes_active_alert(service):
    rid = service.arbiter.active.id
    interaction = _FakeInteraction()

    _run(views_mod._handle_alert_done(interaction, rid))

    assert interaction.response.edits == [{"content": "done: take pills ✓", "view": None}]
    assert service.arbiter.active is None
    assert service.get()[0].is_completed is True


def test_done_on_stale_alert_is_refused(service):
    rid = service.arbiter.active.id
    service.dismiss_active()
    interaction = _FakeInteraction()

    _run(views_mod._handle_alert_done(interaction, rid))

    assert interaction.response.edits == [{"view": None}]
    assert interaction.followup.sent == [
        ("this alert is no longer active.", {"ephemeral": True})
    ]
    assert service.get()[0].is_completed is False


def test_dismiss_clears_alert_without_completing(service):
    rid = service.arbiter.active.id
    interaction = _FakeInteraction()

    _run(views_mod._handle_alert_dismiss(interaction, rid))

    assert interaction.response.edits == [{"content": "dismissed", "view": None}]
    assert service.arbiter.active is None
    assert service.get()[0].is_completed is False


def test_dismiss_other_alert_leaves_active(service):
    interaction = _FakeInteraction()

    _run(views_mod._handle_alert_dismiss(interaction, "someoneelse"))

    assert service.arbiter.active is not None
