"""Discord bot surface: DMs the owner when an alert fires, slash commands for reminders."""

from datetime import datetime, timedelta
from typing import Literal

import discord
from discord import app_commands
from discord.ext import commands

from miniremind.classify import classify
from miniremind.config import DESKTOP_NOTIFY, SOUND_ENABLED
from miniremind.embeds import (
    alert_embed,
    alert_view,
    countdown_embed,
    reminder_list_embed,
    stats_embed,
)
from miniremind.insights import category_progress, count_by_status, filter_reminders
from miniremind.scheduling.notify import (
    CommandSoundPlayer,
    DesktopNotifier,
    SilentSoundPlayer,
)
from miniremind.scheduling import setup_scheduler
from miniremind.scheduling.alerts import AlertArbiter
from miniremind.scheduling.countdown import next_up
from miniremind.scheduling.reminders import (
    Category,
    Priority,
    Reminder,
    RepeatScope,
    find_reminder,
    schedule_changes,
)
from miniremind.scheduling.scheduler import ReminderScheduler, ReminderStore
from miniremind.storage import TZ
from miniremind.views import ActionButton
from miniremind.views import init as init_views

_owner_id: int | None = None


def is_owner(user_id: int) -> bool:
    """Check if user is the bot owner. Allows all when owner not yet resolved."""
    return _owner_id is None or user_id == _owner_id


def _owner_check(interaction: discord.Interaction) -> bool:
    return is_owner(interaction.user.id)


def edit_fields(
    target: Reminder,
    *,
    now: datetime,
    title: str | None = None,
    description: str | None = None,
    minutes: int | None = None,
    every: int | None = None,
    start: str | None = None,
    end: str | None = None,
    priority: str | None = None,
    category: str | None = None,
) -> dict[str, object]:
    """Translate /edit options into ReminderScheduler.edit keyword changes."""
    if minutes is not None and every is not None:
        raise ValueError("Use either minutes or every, not both")
    due_at = now + timedelta(minutes=minutes) if minutes is not None else None
    changes = schedule_changes(
        target, due_at=due_at, period_minutes=every, window_start=start, window_end=end
    )
    if title is not None:
        changes["title"] = title.strip()
    if description is not None:
        changes["description"] = description
    if priority is not None:
        changes["priority"] = Priority(priority)
    if category is not None:
        changes["category"] = Category(category)
    return changes


def build_service() -> ReminderScheduler:
    arbiter = AlertArbiter(
        notifier=DesktopNotifier() if DESKTOP_NOTIFY else None,
        player=CommandSoundPlayer() if SOUND_ENABLED else SilentSoundPlayer(),
    )
    return ReminderScheduler(ReminderStore(), arbiter)


def create_bot(service: ReminderScheduler | None = None) -> commands.Bot:
    intents = discord.Intents.default()

    bot = commands.Bot(
        command_prefix="!",
        intents=intents,
        status=discord.Status.online,
        activity=discord.Activity(type=discord.ActivityType.watching, name="the clock"),
    )
    service = service or build_service()
    _ready_fired = False

    async def _send_alert(owner: discord.User, reminder: Reminder, body: str) -> None:
        dm = await owner.create_dm()
        await dm.send(embed=alert_embed(reminder, body), view=alert_view(reminder.id))

    @bot.tree.command(name="reminders", description="List reminders with time remaining")
    @app_commands.describe(status="Which reminders to show", search="Match title text")
    @app_commands.check(_owner_check)
    async def slash_reminders(
        interaction: discord.Interaction,
        status: Literal["upcoming", "all", "completed"] = "upcoming",
        search: str = "",
    ):
        reminders = filter_reminders(service.get(), status, search)
        embed = reminder_list_embed(
            datetime.now(TZ), reminders, heading=f"Reminders ({status})"
        )
        await interaction.response.send_message(embed=embed)

    @bot.tree.command(name="next", description="Countdown to the next reminder, or to one by ID")
    @app_commands.describe(reminder_id="Reminder ID (omit for whichever is due first)")
    @app_commands.check(_owner_check)
    async def slash_next(interaction: discord.Interaction, reminder_id: str | None = None):
        now = datetime.now(TZ)
        if reminder_id is None:
            reminder = next_up(now, service.get())
        else:
            reminder = find_reminder(service.get(), reminder_id)
            if reminder is None:
                await interaction.response.send_message(
                    f"reminder {reminder_id} not found", ephemeral=True
                )
                return
        projection = service.project(now, reminder.id if reminder else None)
        await interaction.response.send_message(
            embed=countdown_embed(reminder, projection)
        )

    @bot.tree.command(name="remind", description="Fire once in N minutes")
    @app_commands.describe(title="What to do", minutes="Minutes from now")
    @app_commands.check(_owner_check)
    async def slash_remind(
        interaction: discord.Interaction,
        title: str,
        minutes: app_commands.Range[int, 1],
    ):
        try:
            reminder = Reminder.new_once(
                title,
                due_at=datetime.now(TZ) + timedelta(minutes=minutes),
                category=classify(title),
            )
        except ValueError as e:
            await interaction.response.send_message(f"invalid reminder: {e}", ephemeral=True)
            return
        service.add(reminder)
        await interaction.response.send_message(
            f"scheduled `{reminder.id}`: {reminder.title} in {minutes} min"
        )

    @bot.tree.command(name="every", description="Repeat inside a daily window")
    @app_commands.describe(
        title="What to do",
        minutes="Period in minutes",
        start="Window start HH:MM",
        end="Window end HH:MM",
        workdays="Monday to Friday only",
    )
    @app_commands.check(_owner_check)
    async def slash_every(
        interaction: discord.Interaction,
        title: str,
        minutes: app_commands.Range[int, 1],
        start: str = "09:00",
        end: str = "18:00",
        workdays: bool = False,
    ):
        try:
            reminder = Reminder.new_interval(
                title,
                window_start=start,
                window_end=end,
                period_minutes=minutes,
                repeat=RepeatScope.WORKDAYS if workdays else RepeatScope.EVERY_DAY,
                category=classify(title),
            )
        except ValueError as e:
            await interaction.response.send_message(f"invalid reminder: {e}", ephemeral=True)
            return
        service.add(reminder)
        scope = "workdays" if workdays else "daily"
        await interaction.response.send_message(
            f"scheduled `{reminder.id}`: {reminder.title} every {minutes} min, "
            f"{start}-{end} {scope}"
        )

    @bot.tree.command(name="edit", description="Change a reminder; firing history is kept")
    @app_commands.describe(
        reminder_id="Reminder ID",
        title="New title",
        description="New detail text",
        minutes="Reschedule to fire once in N minutes",
        every="Repeat every N minutes instead",
        start="Window start HH:MM",
        end="Window end HH:MM",
        priority="New priority",
        category="New category",
    )
    @app_commands.check(_owner_check)
    async def slash_edit(
        interaction: discord.Interaction,
        reminder_id: str,
        title: str | None = None,
        description: str | None = None,
        minutes: app_commands.Range[int, 1] | None = None,
        every: app_commands.Range[int, 1] | None = None,
        start: str | None = None,
        end: str | None = None,
        priority: Literal["low", "medium", "high"] | None = None,
        category: Literal["general", "water", "stretch", "eye", "break"] | None = None,
    ):
        target = find_reminder(service.get(), reminder_id)
        if target is None:
            await interaction.response.send_message(
                f"reminder {reminder_id} not found", ephemeral=True
            )
            return
        try:
            changes = edit_fields(
                target,
                now=datetime.now(TZ),
                title=title,
                description=description,
                minutes=minutes,
                every=every,
                start=start,
                end=end,
                priority=priority,
                category=category,
            )
            if not changes:
                await interaction.response.send_message("nothing to change", ephemeral=True)
                return
            edited = service.edit(reminder_id, **changes)
        except ValueError as e:
            await interaction.response.send_message(f"invalid edit: {e}", ephemeral=True)
            return
        assert edited is not None
        await interaction.response.send_message(f"updated `{edited.id}`: {edited.title}")

    @bot.tree.command(name="done", description="Complete the active alert, or toggle a reminder")
    @app_commands.describe(reminder_id="Reminder ID (omit for the active alert)")
    @app_commands.check(_owner_check)
    async def slash_done(interaction: discord.Interaction, reminder_id: str | None = None):
        if reminder_id is None:
            completed = service.complete_active()
            msg = f"done: {completed.title} ✓" if completed else "no active alert."
            await interaction.response.send_message(msg)
            return
        toggled = service.toggle(reminder_id)
        if toggled is None:
            await interaction.response.send_message(
                f"reminder {reminder_id} not found", ephemeral=True
            )
            return
        state = "completed" if toggled.is_completed else "reopened"
        await interaction.response.send_message(f"{state}: {toggled.title}")

    @bot.tree.command(name="dismiss", description="Dismiss the active alert")
    @app_commands.check(_owner_check)
    async def slash_dismiss(interaction: discord.Interaction):
        dismissed = service.dismiss_active()
        msg = f"dismissed: {dismissed.title}" if dismissed else "no active alert."
        await interaction.response.send_message(msg)

    @bot.tree.command(name="delete", description="Delete a reminder")
    @app_commands.describe(reminder_id="Reminder ID")
    @app_commands.check(_owner_check)
    async def slash_delete(interaction: discord.Interaction, reminder_id: str):
        if service.remove(reminder_id):
            await interaction.response.send_message(f"deleted {reminder_id}")
        else:
            await interaction.response.send_message(
                f"reminder {reminder_id} not found", ephemeral=True
            )

    @bot.tree.command(name="stats", description="Counts and health-goal progress")
    @app_commands.check(_owner_check)
    async def slash_stats(interaction: discord.Interaction):
        reminders = service.get()
        await interaction.response.send_message(
            embed=stats_embed(count_by_status(reminders), category_progress(reminders))
        )

    @bot.event
    async def on_ready():
        nonlocal _ready_fired
        print(f"miniremind online as {bot.user}")

        # on_ready fires again on every reconnect; init must only happen once
        if _ready_fired:
            return
        _ready_fired = True

        init_views(service)
        bot.add_dynamic_items(ActionButton)

        bot.tree.allowed_installs = app_commands.AppInstallationType(
            guild=False, user=True
        )
        bot.tree.allowed_contexts = app_commands.AppCommandContext(
            guild=False, dm_channel=True, private_channel=True
        )

        synced = await bot.tree.sync()
        print(f"synced {len(synced)} slash commands")

        global _owner_id
        app_info = await bot.application_info()
        owner = app_info.owner
        if not owner:
            print("warning: no owner found; scheduler and DM disabled")
            return

        _owner_id = owner.id

        async def on_activate(reminder: Reminder, body: str) -> None:
            await _send_alert(owner, reminder, body)

        scheduler = setup_scheduler(service, on_activate)
        scheduler.start()
        print(f"scheduler started: {len(service.get())} reminders")

    @bot.tree.error
    async def on_app_command_error(
        interaction: discord.Interaction,
        error: discord.app_commands.AppCommandError,
    ) -> None:
        if isinstance(error, discord.app_commands.CheckFailure):
            if not interaction.response.is_done():
                await interaction.response.send_message(
                    "not authorized", ephemeral=True
                )
            return
        raise error

    return bot
