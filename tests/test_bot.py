"""Tests for the bot's reminder slash commands."""

import asyncio
import os
import sys
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import bot
from domains.reminders.models import SnoozeRequest, TimeType


@pytest.fixture
def interaction():
    interaction = Mock()
    interaction.response.send_message = AsyncMock()
    return interaction


@pytest.fixture
def service(monkeypatch):
    service = Mock()
    service.snooze.side_effect = lambda note_id, kind, minutes: SnoozeRequest(
        note_id, kind, datetime(2024, 5, 1, 9, 45, tzinfo=timezone.utc)
    )
    monkeypatch.setattr(bot, "reminders", service)
    return service


def snooze(interaction, *args):
    return asyncio.run(bot.cmd_reminders_snooze.callback(interaction, *args))


def test_snooze_command_schedules_snooze(interaction, service):
    snooze(interaction, 42, "deadline", 10)

    service.snooze.assert_called_once_with(42, TimeType.DEADLINE, 10)
    message = interaction.response.send_message.call_args.args[0]
    assert message == "Snoozed note 42 until Wed 01 May 09:45"


def test_snooze_command_defaults_to_scheduled(interaction, service):
    snooze(interaction, 7)
    service.snooze.assert_called_once_with(7, TimeType.SCHEDULED, None)


def test_snooze_command_rejects_unknown_type(interaction, service):
    snooze(interaction, 7, "closed", None)

    service.snooze.assert_not_called()
    assert "Unknown time type" in interaction.response.send_message.call_args.args[0]


def test_snooze_command_before_ready(interaction, monkeypatch):
    monkeypatch.setattr(bot, "reminders", None)
    snooze(interaction, 7)

    assert "not running" in interaction.response.send_message.call_args.args[0]
