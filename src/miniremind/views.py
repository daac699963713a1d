"""Discord UI views and persistent button handlers."""

from __future__ import annotations

import re

import discord
from discord.ui import Button, DynamicItem

from miniremind.scheduling.scheduler import ReminderScheduler

# Buttons are reconstructed from custom_id on restart; module-level ref
# is the only way to reach the scheduler from DynamicItem.
_service: ReminderScheduler | None = None


def init(service: ReminderScheduler) -> None:
    """Must be called before any button interaction is processed."""
    global _service
    _service = service


class ActionButton(
    DynamicItem[Button], template=r"act:(?P<action>[a-z_]+):(?P<data>.+)"
):
    def __init__(self, button: Button):
        super().__init__(button)
        self.action: str = ""
        self.data: str = ""

    @classmethod
    async def from_custom_id(
        cls,
        interaction: discord.Interaction,
        item: Button,
        match: re.Match[str],
    ) -> ActionButton:
        inst = cls(item)
        inst.action = match.group("action")
        inst.data = match.group("data")
        return inst

    async def callback(self, interaction: discord.Interaction) -> None:
        handlers = {
            "alert_done": _handle_alert_done,
            "alert_dismiss": _handle_alert_dismiss,
        }
        handler = handlers.get(self.action)
        if handler:
            await handler(interaction, self.data)
        else:
            await interaction.response.send_message("unknown action", ephemeral=True)


def _is_active(reminder_id: str) -> bool:
    assert _service is not None
    active = _service.arbiter.active
    return active is not None and active.id == reminder_id


async def _handle_alert_done(interaction: discord.Interaction, reminder_id: str) -> None:
    if not _is_active(reminder_id):
        await interaction.response.edit_message(view=None)
        await interaction.followup.send("this alert is no longer active.", ephemeral=True)
        return
    assert _service is not None
    reminder = _service.complete_active()
    title = reminder.title if reminder else reminder_id
    await interaction.response.edit_message(content=f"done: {title} ✓", view=None)


async def _handle_alert_dismiss(
    interaction: discord.Interaction, reminder_id: str
) -> None:
    if _is_active(reminder_id):
        assert _service is not None
        _service.dismiss_active()
    await interaction.response.edit_message(content="dismissed", view=None)
