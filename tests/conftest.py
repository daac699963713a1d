"""Shared fixtures for miniremind tests."""

import os

os.environ.setdefault("MINIREMIND_TIMEZONE", "UTC")
os.environ.setdefault("MINIREMIND_ONCE_GRACE_SECONDS", "60")
os.environ.setdefault("MINIREMIND_INTERVAL_TOLERANCE_SECONDS", "2")
os.environ.setdefault("MINIREMIND_DESKTOP_NOTIFY", "0")
os.environ.setdefault("MINIREMIND_SOUND", "0")

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

UTC = ZoneInfo("UTC")


def at(day: int, hh: int, mm: int, ss: int = 0) -> datetime:
    """October 2026 instant in UTC. The 17th is a Saturday, 18th Sunday, 19th Monday."""
    return datetime(2026, 10, day, hh, mm, ss, tzinfo=UTC)


@pytest.fixture()
def data_dir(tmp_path, monkeypatch):
    """Redirect all data file paths to a temp directory."""
    import miniremind.main as main_mod
    import miniremind.storage as storage_mod

    state_dir = tmp_path / "state"
    monkeypatch.setattr(storage_mod, "DATA_DIR", tmp_path)
    monkeypatch.setattr(storage_mod, "STATE_DIR", state_dir)
    monkeypatch.setattr(main_mod, "PID_FILE", state_dir / "bot.pid")
    return tmp_path


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, str]] = []
        self.fail = fail

    def notify(self, title: str, body: str) -> None:
        self.sent.append((title, body))
        if self.fail:
            raise OSError("notify-send not found")


class FakePlayer:
    def __init__(self, fail: bool = False):
        self.played: list[str] = []
        self.fail = fail

    def play(self, sound_ref: str) -> None:
        self.played.append(sound_ref)
        if self.fail:
            raise OSError("no audio device")


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def player():
    return FakePlayer()
