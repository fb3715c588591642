"""Deliver reminder batches to a Discord channel."""

import discord

from logger import logger
from .models import Reminder, TimeType

_LABELS = {
    TimeType.SCHEDULED: "Scheduled",
    TimeType.DEADLINE: "Deadline",
    TimeType.EVENT: "Event",
}

# Discord message length limit
_MAX_MESSAGE = 2000


def format_reminder(reminder: Reminder) -> str:
    """One line per reminder: type, title, notebook and when it is due."""
    payload = reminder.payload
    if payload.timestamp.has_time:
        when = reminder.fire_at.strftime("%a %d %b %H:%M")
    else:
        when = reminder.fire_at.strftime("%a %d %b")
    book = f" ({payload.container_name})" if payload.container_name else ""
    return f"**{_LABELS[payload.time_type]}** {payload.title}{book} - {when}"


def format_batch(reminders: list[Reminder]) -> list[str]:
    """Build the messages for a batch, split to fit Discord's limit."""
    messages = []
    current = "**Reminder**" if len(reminders) == 1 else f"**{len(reminders)} reminders**"
    for reminder in reminders:
        line = "> " + format_reminder(reminder)
        if len(current) + len(line) + 1 > _MAX_MESSAGE:
            messages.append(current)
            current = line
        else:
            current += "\n" + line
    messages.append(current)
    return messages


class DiscordNotificationSink:
    """Posts each batch of reminders to one channel."""

    def __init__(self, bot: discord.Client, channel_id: int):
        self.bot = bot
        self.channel_id = channel_id

    async def show(self, reminders: list[Reminder]) -> None:
        """Send a batch of reminders.

        Errors propagate so the cycle does not commit and the batch is
        shown again by the next cycle.
        """
        if not reminders:
            return

        try:
            channel = self.bot.get_channel(self.channel_id)
            if not channel:
                channel = await self.bot.fetch_channel(self.channel_id)

            for message in format_batch(reminders):
                await channel.send(message)
        except Exception as e:
            logger.error(f"Failed to deliver {len(reminders)} reminder(s): {e}")
            raise

        logger.info(f"Delivered {len(reminders)} reminder(s) to channel {self.channel_id}")
