"""User-configurable values loaded from environment variables."""

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()


def _detect_local_tz() -> str:
    """Detect the system's IANA timezone name. Falls back to UTC."""
    # Debian/Ubuntu: plain text file with IANA name
    etc_tz = Path("/etc/timezone")
    if etc_tz.exists():
        name = etc_tz.read_text().strip()
        if name:
            return name

    # Most Linux/WSL: /etc/localtime is a symlink into zoneinfo
    localtime = Path("/etc/localtime")
    if localtime.is_symlink():
        target = str(localtime.resolve())
        marker = "/zoneinfo/"
        idx = target.find(marker)
        if idx != -1:
            return target[idx + len(marker) :]

    return "UTC"


def _int_env(name: str, default: int, *, minimum: int = 0, maximum: int | None = None) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = minimum - 1
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f">= {minimum}" if maximum is None else f"in {minimum}..{maximum}"
        print(f"Invalid {name}={raw!r}: expected an integer {bounds}", file=sys.stderr)
        print("Fix it in .env or your environment.", file=sys.stderr)
        raise SystemExit(1)
    return value


TZ: ZoneInfo = ZoneInfo(os.environ.get("MINIREMIND_TIMEZONE") or _detect_local_tz())

# Host tick cadence. Grace and tolerance below are sized to absorb 1-5s.
TICK_SECONDS: int = _int_env("MINIREMIND_TICK_SECONDS", 1, minimum=1, maximum=5)
ONCE_GRACE_SECONDS: int = _int_env("MINIREMIND_ONCE_GRACE_SECONDS", 60, minimum=1)
INTERVAL_TOLERANCE_SECONDS: int = _int_env("MINIREMIND_INTERVAL_TOLERANCE_SECONDS", 2)

DEFAULT_SOUND: str = os.environ.get(
    "MINIREMIND_DEFAULT_SOUND",
    "https://assets.mixkit.co/active_storage/sfx/2869/2869-preview.mp3",
)
SOUND_PLAYER: str = os.environ.get(
    "MINIREMIND_SOUND_PLAYER", "ffplay -nodisp -autoexit -loglevel quiet"
)
NOTIFY_COMMAND: str = os.environ.get("MINIREMIND_NOTIFY_COMMAND", "notify-send")

# Headless hosts (e.g. a server running only the Discord bot) turn these off.
DESKTOP_NOTIFY: bool = os.environ.get("MINIREMIND_DESKTOP_NOTIFY", "1").lower() not in ("0", "false", "no")
SOUND_ENABLED: bool = os.environ.get("MINIREMIND_SOUND", "1").lower() not in ("0", "false", "no")
