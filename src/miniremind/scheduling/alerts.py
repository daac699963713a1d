"""Alert arbitration: at most one active alert, first fired wins.

State machine: ``Idle`` -> ``Active(reminder_id)`` on fire, back to ``Idle``
on dismiss or complete. A firing while an alert is active never preempts it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from miniremind.scheduling.notify import Notifier, SoundPlayer, alert_text, sound_for
from miniremind.scheduling.reminders import Mode, Reminder, mark_completed

if TYPE_CHECKING:
    from miniremind.scheduling.scheduler import ReminderStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Idle:
    pass


@dataclass(frozen=True, slots=True)
class Active:
    reminder_id: str


AlertState = Idle | Active


def arbitrate(fired: list[Reminder], active: Reminder | None) -> Reminder | None:
    """Existing alert stays; otherwise the first fired reminder (input order)."""
    if active is not None:
        return active
    return fired[0] if fired else None


class AlertArbiter:
    def __init__(
        self,
        notifier: Notifier | None = None,
        player: SoundPlayer | None = None,
    ) -> None:
        self.notifier = notifier
        self.player = player
        self._active: Reminder | None = None
        self._body: str | None = None

    @property
    def active(self) -> Reminder | None:
        return self._active

    @property
    def body(self) -> str | None:
        """Alert body announced for the active reminder; surfaces reuse it verbatim."""
        return self._body

    @property
    def state(self) -> AlertState:
        if self._active is None:
            return Idle()
        return Active(self._active.id)

    def on_fired(self, fired: list[Reminder]) -> Reminder | None:
        """Returns the reminder that just became active, or None if nothing changed."""
        chosen = arbitrate(fired, self._active)
        if chosen is None or chosen is self._active:
            if self._active is not None and fired:
                log.info(
                    "Alert %s still active; %d firing(s) not surfaced",
                    self._active.id,
                    len(fired),
                )
            return None
        self._active = chosen
        log.info("Alert active: %s (%s)", chosen.id, chosen.title)
        self._body = self._announce(chosen)
        return chosen

    def dismiss(self) -> Reminder | None:
        dismissed, self._active, self._body = self._active, None, None
        return dismissed

    def complete(self, store: ReminderStore) -> Reminder | None:
        """Clear the alert; a ONCE reminder is also marked completed in the store."""
        completed, self._active, self._body = self._active, None, None
        if completed is not None and completed.mode is Mode.ONCE:
            store.mutate(lambda reminders: mark_completed(reminders, completed.id))
        return completed

    def forget(self, reminder_id: str) -> None:
        """Drop the alert if its reminder was deleted."""
        if self._active is not None and self._active.id == reminder_id:
            self._active, self._body = None, None

    def _announce(self, reminder: Reminder) -> str:
        # In-app alert is the primary channel; OS-level failures must not block it.
        title, body = alert_text(reminder)
        if self.notifier is not None:
            try:
                self.notifier.notify(title, body)
            except Exception:
                log.exception("Notification for %s failed", reminder.id)
        if self.player is not None:
            try:
                self.player.play(sound_for(reminder))
            except Exception:
                log.exception("Sound for %s failed", reminder.id)
        return body
