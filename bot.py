"""Note Reminders - Discord bot host.

Runs the reminder engine for note times: on start-up a boot cycle arms the
next reminder timer, APScheduler fires the timer and the periodic poll,
and reminders are posted to the configured channel.
"""

import discord
from discord import app_commands
from discord.ext import commands
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from logger import logger
from config import DISCORD_TOKEN
from domains.reminders import ReminderService, TimeType, register_reminders

# Initialize bot
intents = discord.Intents.default()
bot = commands.Bot(command_prefix="/", intents=intents)

# Initialize scheduler
scheduler = AsyncIOScheduler()

reminders: ReminderService = None  # Initialized in on_ready


@bot.event
async def on_ready():
    """Called when bot is connected and ready."""
    global reminders
    logger.info(f"Logged in as {bot.user}")

    # Sync slash commands with Discord
    try:
        synced = await bot.tree.sync()
        logger.info(f"Synced {len(synced)} slash commands")
    except Exception as e:
        logger.error(f"Failed to sync slash commands: {e}")

    # on_ready fires again after reconnects
    if reminders is not None:
        await reminders.data_changed()
        return

    reminders = register_reminders(scheduler, bot)

    scheduler.start()
    logger.info(f"Scheduler started with {len(scheduler.get_jobs())} jobs")

    await reminders.boot()


@bot.tree.command(name="reminders-refresh", description="Re-read note times and reschedule reminders")
async def cmd_reminders_refresh(interaction: discord.Interaction):
    """Run a data-changed cycle now."""
    await interaction.response.defer()

    result = await reminders.data_changed() if reminders else None
    if result is None:
        await interaction.followup.send("Reminders could not be rescheduled, see the log.")
    elif result.skipped:
        await interaction.followup.send("All reminder types are turned off.")
    elif result.upcoming:
        first = result.upcoming[0]
        await interaction.followup.send(
            f"Next reminder: {first.payload.title} at {first.fire_at.strftime('%a %d %b %H:%M')}"
        )
    else:
        await interaction.followup.send("No upcoming reminders.")


@bot.tree.command(name="reminders-snooze", description="Show a note's reminder again later")
@app_commands.describe(
    note_id="The note the reminder belongs to",
    time_type="scheduled, deadline or event",
    minutes="How long to wait (default from config)"
)
async def cmd_reminders_snooze(
    interaction: discord.Interaction,
    note_id: int,
    time_type: str = "scheduled",
    minutes: int = None
):
    """Snooze a note's reminder."""
    if reminders is None:
        await interaction.response.send_message("Reminders are not running yet.")
        return

    try:
        kind = TimeType.from_value(time_type)
    except (KeyError, ValueError):
        await interaction.response.send_message(
            f"Unknown time type '{time_type}' - use scheduled, deadline or event."
        )
        return

    request = reminders.snooze(note_id, kind, minutes)
    await interaction.response.send_message(
        f"Snoozed note {note_id} until {request.resume_at.strftime('%a %d %b %H:%M')}"
    )


@bot.event
async def on_error(event, *args, **kwargs):
    """Handle errors."""
    logger.error(f"Bot error in {event}: {args}")


def main():
    """Entry point."""
    if not DISCORD_TOKEN:
        logger.error("DISCORD_TOKEN not set")
        return

    logger.info("Starting Note Reminders...")
    bot.run(DISCORD_TOKEN)


if __name__ == "__main__":
    main()
