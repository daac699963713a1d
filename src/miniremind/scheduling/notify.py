"""Notification and sound collaborators invoked when an alert becomes active.

Both are fire-and-forget: they spawn a process and return. Callers are
expected to swallow failures (see AlertArbiter).
"""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import random
import shlex
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol

from miniremind.config import DEFAULT_SOUND, NOTIFY_COMMAND, SOUND_PLAYER
from miniremind.scheduling.reminders import Category, Reminder

log = logging.getLogger(__name__)

HEADLINES: dict[Category, str] = {
    Category.WATER: "Hydration time",
    Category.STRETCH: "Get off the chair",
    Category.EYE: "Eye care",
    Category.BREAK: "Recharge break",
    Category.GENERAL: "Reminder",
}

NUDGES: dict[Category, tuple[str, ...]] = {
    Category.WATER: (
        "Your core modules need liquid cooling.",
        "H2O reserves running low, please refill manually.",
        "Don't wait until you're thirsty. Drink now.",
    ),
    Category.STRETCH: (
        "Sitting too long throttles your CPU. Stand up and move.",
        "Your spine is sending you an error report.",
        "Stand up and breathe, the air away from the monitor is better.",
    ),
    Category.EYE: (
        "Visual load at 99%, forced rest required.",
        "The view out the window refreshes your eyes better than a spreadsheet.",
        "Focus on something far away for a while.",
    ),
    Category.BREAK: (
        "Entering sleep mode. Pause all threads.",
        "Let your mind catch up with your body. Take a breather.",
        "A short break is not slacking, it's strategy.",
    ),
    Category.GENERAL: (
        "The timeline has reached a checkpoint.",
        "Check your to-do list.",
        "No more procrastinating, this is the final notice.",
    ),
}


def alert_text(reminder: Reminder, *, rng: random.Random | None = None) -> tuple[str, str]:
    """(title, body) for an activated reminder."""
    pick = (rng or random).choice(NUDGES[reminder.category])
    title = f"{HEADLINES[reminder.category]}: {reminder.title}"
    body = f"{reminder.description}\n{pick}" if reminder.description else pick
    return title, body


def sound_for(reminder: Reminder) -> str:
    return reminder.sound or DEFAULT_SOUND


class Notifier(Protocol):
    def notify(self, title: str, body: str) -> None: ...


class SoundPlayer(Protocol):
    def play(self, sound_ref: str) -> None: ...


def _spawn(argv: list[str]) -> None:
    subprocess.Popen(
        argv,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


class DesktopNotifier:
    """Native desktop notification via notify-send (or a compatible command)."""

    def __init__(self, command: str = NOTIFY_COMMAND) -> None:
        self.command = shlex.split(command)

    def notify(self, title: str, body: str) -> None:
        _spawn([*self.command, title, body])


class CommandSoundPlayer:
    """Plays a URL or file path with an external player; returns immediately."""

    def __init__(self, command: str = SOUND_PLAYER) -> None:
        self.command = shlex.split(command)

    def play(self, sound_ref: str) -> None:
        _spawn([*self.command, _materialize(sound_ref)])


def _materialize(sound_ref: str) -> str:
    """Write an embedded ``data:`` sound to a temp file; URLs and paths pass through.

    The file is named by content hash, so replaying the same sound reuses it.
    """
    if not sound_ref.startswith("data:"):
        return sound_ref
    header, _, payload = sound_ref.partition(",")
    raw = base64.b64decode(payload) if header.endswith(";base64") else payload.encode()
    digest = hashlib.sha256(raw).hexdigest()[:16]
    target = Path(tempfile.gettempdir()) / f"miniremind-{digest}.snd"
    if target.exists():
        return str(target)
    fd, tmp = tempfile.mkstemp(dir=target.parent, prefix="miniremind-", suffix=".tmp")
    try:
        os.write(fd, raw)
    finally:
        os.close(fd)
    os.replace(tmp, target)
    return str(target)


class SilentSoundPlayer:
    def play(self, sound_ref: str) -> None:
        log.debug("sound disabled; skipping %s", sound_ref)
