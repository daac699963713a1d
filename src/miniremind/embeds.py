"""Embed and view builders for the Discord display surface."""

from datetime import datetime

import discord
from discord.ui import Button, View

from miniremind.insights import GoalProgress, StatusCounts, overall_progress
from miniremind.scheduling.notify import HEADLINES
from miniremind.scheduling.countdown import Projection, Urgency, project
from miniremind.scheduling.reminders import Category, Reminder

URGENCY_COLORS: dict[Urgency, discord.Color] = {
    Urgency.CHILL: discord.Color.green(),
    Urgency.ALERT: discord.Color.yellow(),
    Urgency.URGENT: discord.Color.orange(),
    Urgency.FIRED: discord.Color.red(),
}

CATEGORY_COLORS: dict[Category, discord.Color] = {
    Category.WATER: discord.Color.blue(),
    Category.STRETCH: discord.Color.orange(),
    Category.EYE: discord.Color.green(),
    Category.BREAK: discord.Color.gold(),
    Category.GENERAL: discord.Color.dark_grey(),
}

_MAX_FIELDS = 25  # Discord limit


def alert_embed(reminder: Reminder, body: str) -> discord.Embed:
    return discord.Embed(
        title=f"{HEADLINES[reminder.category]}: {reminder.title}",
        description=body,
        color=CATEGORY_COLORS[reminder.category],
    )


def alert_view(reminder_id: str) -> View:
    view = View(timeout=None)
    view.add_item(
        Button(
            label="Done",
            style=discord.ButtonStyle.success,
            custom_id=f"act:alert_done:{reminder_id}",
        )
    )
    view.add_item(
        Button(
            label="Dismiss",
            style=discord.ButtonStyle.secondary,
            custom_id=f"act:alert_dismiss:{reminder_id}",
        )
    )
    return view


def countdown_embed(reminder: Reminder | None, projection: Projection) -> discord.Embed:
    """Compact widget: one reminder's time remaining, colored by urgency."""
    title = reminder.title if reminder is not None else "Nothing scheduled"
    return discord.Embed(
        title=title,
        description=f"`{projection.display}`",
        color=URGENCY_COLORS[projection.urgency],
    )


def reminder_list_embed(
    now: datetime, reminders: list[Reminder], *, heading: str = "Reminders"
) -> discord.Embed:
    embed = discord.Embed(title=heading, color=discord.Color.blue())
    if not reminders:
        embed.description = "Nothing here yet. Add one with /remind or /every."
        return embed
    for r in reminders[:_MAX_FIELDS]:
        proj = project(now, r)
        done = "✓ " if r.is_completed else ""
        embed.add_field(
            name=f"{done}{r.title}",
            value=f"`{r.id}` · {r.category.value} · {proj.display}",
            inline=False,
        )
    if len(reminders) > _MAX_FIELDS:
        embed.set_footer(text=f"+{len(reminders) - _MAX_FIELDS} more")
    return embed


def stats_embed(counts: StatusCounts, progress: list[GoalProgress]) -> discord.Embed:
    overall = overall_progress(progress)
    embed = discord.Embed(
        title="Health goals",
        description=f"{overall:.0f}% · {counts.upcoming} upcoming, {counts.completed} completed",
        color=discord.Color.green() if overall >= 100 else discord.Color.blue(),
    )
    for goal in progress:
        embed.add_field(
            name=goal.category.value,
            value=f"{goal.current}/{goal.target}" + (" ✓" if goal.met else ""),
        )
    return embed
