"""Entry point for miniremind."""

from __future__ import annotations

import asyncio
import atexit
import logging
import os
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv

if TYPE_CHECKING:
    from discord.ext.commands import Bot

from miniremind.storage import STATE_DIR

PROJECT_DIR = Path(__file__).resolve().parent.parent.parent
PID_FILE = STATE_DIR / "bot.pid"


HELP = """\
miniremind -- health nudges and reminders, delivered to your Discord DMs

commands:
  miniremind                    Run the Discord bot (ticks reminders)
  miniremind reminder add       Create a once or interval reminder
  miniremind reminder list      Show reminders (--filter, --search)
  miniremind reminder status    Show countdowns for pending reminders
  miniremind reminder stats     Show counts and health-goal progress
  miniremind reminder done      Toggle a reminder's completed flag
  miniremind reminder edit      Change a reminder (title, schedule, priority)
  miniremind reminder cancel    Delete a reminder by ID
  miniremind help               Show this help message

examples:
  miniremind reminder add -t "Drink water" --every 45 --from 09:00 --to 18:00
  miniremind reminder add -t "Stand up" --every 30 --workdays
  miniremind reminder add -t "Call dentist" --delay 20
  miniremind reminder add -t "Standup meeting" --at 2026-03-02T09:55
  miniremind reminder edit abc12345 --every 60 --from 10:00
"""


def _check_already_running() -> None:
    PID_FILE.parent.mkdir(parents=True, exist_ok=True)
    if PID_FILE.exists():
        pid = int(PID_FILE.read_text().strip())
        proc_cmdline = Path(f"/proc/{pid}/cmdline")
        if proc_cmdline.exists() and "miniremind" in proc_cmdline.read_bytes().decode(errors="replace"):
            print(f"miniremind is already running (pid {pid})")
            raise SystemExit(1)
    PID_FILE.write_text(str(os.getpid()))
    atexit.register(PID_FILE.unlink, missing_ok=True)


def _dispatch_subcommand() -> bool:
    """Route CLI subcommands. Returns True if handled."""
    if len(sys.argv) < 2:
        return False
    cmd = sys.argv[1]
    rest = sys.argv[2:]
    if cmd in ("help", "--help", "-h"):
        print(HELP)
        return True
    routes: dict[str, tuple[str, str]] = {
        "reminder": ("miniremind.scheduling.reminder_cmd", "run_reminder_command"),
    }
    if cmd in routes:
        from importlib import import_module

        mod_path, func_name = routes[cmd]
        getattr(import_module(mod_path), func_name)(rest)
        return True
    return False


log = logging.getLogger(__name__)


async def _run(bot: Bot, token: str) -> None:
    """Run the bot; close it cleanly on SIGTERM/SIGINT."""
    loop = asyncio.get_running_loop()
    _background_tasks: set[asyncio.Task[None]] = set()

    def _on_signal(sig_name: str) -> None:
        async def _shutdown() -> None:
            log.info("received %s, shutting down", sig_name)
            if not bot.is_closed():
                await bot.close()

        task = loop.create_task(_shutdown())
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    loop.add_signal_handler(signal.SIGTERM, _on_signal, "SIGTERM")
    loop.add_signal_handler(signal.SIGINT, _on_signal, "SIGINT")

    try:
        await bot.start(token)
    except asyncio.CancelledError:
        pass  # Signal handler already closed the bot
    finally:
        if not bot.is_closed():
            await bot.close()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if _dispatch_subcommand():
        return

    load_dotenv(PROJECT_DIR / ".env")

    token = os.environ.get("DISCORD_TOKEN")
    if not token:
        print("Set DISCORD_TOKEN in .env")
        raise SystemExit(1)

    _check_already_running()

    from miniremind.bot import create_bot

    bot = create_bot()
    asyncio.run(_run(bot, token))


if __name__ == "__main__":
    main()
