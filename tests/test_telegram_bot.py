"""Tests for lunchbot.bot.telegram_bot — Telegram handlers and app wiring.

Telegram objects are mocked; the LunchBot behind them is real.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from lunchbot.bot.telegram_bot import (
    _on_shutdown,
    _sender_name,
    _snapshot_job_callback,
    cmd_help,
    cmd_lb,
    cmd_start,
    handle_text,
)


def _make_update(text, username="alice", first_name="Alice"):
    """Create a mock Update with a text message."""
    update = MagicMock()
    update.message.text = text
    update.effective_user.username = username
    update.effective_user.first_name = first_name
    update.message.reply_text = AsyncMock()
    return update


def _make_context(lunch_bot, args=None):
    """Create a mock context with the LunchBot in bot_data."""
    context = MagicMock()
    context.bot_data = {"lunch_bot": lunch_bot}
    context.args = args or []
    return context


class TestSenderName:
    def test_prefers_username(self):
        assert _sender_name(_make_update("x", username="bob|wfh")) == "bob|wfh"

    def test_falls_back_to_first_name(self):
        assert _sender_name(_make_update("x", username=None, first_name="Bob")) == "Bob"

    def test_no_user(self):
        update = MagicMock()
        update.effective_user = None
        assert _sender_name(update) is None


class TestHandleText:
    @pytest.mark.asyncio
    async def test_prefixed_line_gets_reply(self, lunch_bot):
        update = _make_update("lb group add Lunchers alice,bob")
        await handle_text(update, _make_context(lunch_bot))
        update.message.reply_text.assert_awaited_once_with("New group: Lunchers - alice, bob")

    @pytest.mark.asyncio
    async def test_chatter_is_ignored(self, lunch_bot):
        update = _make_update("who's hungry?")
        await handle_text(update, _make_context(lunch_bot))
        update.message.reply_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sender_goes_to_roster(self, lunch_bot):
        update = _make_update("lb list", username="carol|ooo")
        await handle_text(update, _make_context(lunch_bot))
        assert "carol|ooo" in lunch_bot.roster.get_list_of_users()


class TestCommands:
    @pytest.mark.asyncio
    async def test_lb_command(self, lunch_bot):
        update = _make_update("/lb propose Pizzeria 12:00")
        await cmd_lb(update, _make_context(lunch_bot, args=["propose", "Pizzeria", "12:00"]))
        update.message.reply_text.assert_awaited_once_with("New proposal: Pizzeria at 12:00")

    @pytest.mark.asyncio
    async def test_lb_without_args_shows_usage(self, lunch_bot):
        update = _make_update("/lb")
        await cmd_lb(update, _make_context(lunch_bot))
        assert "Usage:" in update.message.reply_text.call_args[0][0]

    @pytest.mark.asyncio
    async def test_help(self, lunch_bot):
        update = _make_update("/help")
        await cmd_help(update, _make_context(lunch_bot))
        assert update.message.reply_text.call_args[0][0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_start_mentions_prefix(self, lunch_bot):
        update = _make_update("/start")
        await cmd_start(update, _make_context(lunch_bot))
        assert "'lb <command>'" in update.message.reply_text.call_args[0][0]


class TestEditedMessages:
    """Edited messages reach CommandHandlers with update.message set to None."""

    @pytest.mark.asyncio
    async def test_edited_lb_command_is_not_rerun(self, lunch_bot):
        update = _make_update("/lb group add Lunchers alice")
        update.message = None
        await cmd_lb(update, _make_context(lunch_bot, args=["group", "add", "Lunchers", "alice"]))
        assert lunch_bot.groups.list_groups() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("handler", [cmd_start, cmd_help])
    async def test_edited_help_commands_are_ignored(self, lunch_bot, handler):
        update = _make_update("/help")
        update.message = None
        await handler(update, _make_context(lunch_bot))


class TestJobs:
    @pytest.mark.asyncio
    async def test_snapshot_job_saves_dirty_state(self, lunch_bot, snapshot_path):
        lunch_bot.on_message("lb group add Lunchers alice")
        await _snapshot_job_callback(_make_context(lunch_bot))
        assert snapshot_path.exists()

    @pytest.mark.asyncio
    async def test_shutdown_hook_saves(self, lunch_bot, snapshot_path):
        app = MagicMock()
        app.bot_data = {"lunch_bot": lunch_bot}
        await _on_shutdown(app)
        assert snapshot_path.exists()


class TestBuildApp:
    def test_restores_and_schedules_snapshots(self, lunch_bot):
        from lunchbot.bot.telegram_bot import build_app

        app = MagicMock()
        app.bot_data = {}
        builder = MagicMock()
        builder.token.return_value = builder
        builder.post_shutdown.return_value = builder
        builder.build.return_value = app

        with patch("lunchbot.bot.telegram_bot.ApplicationBuilder", return_value=builder), \
             patch.object(lunch_bot, "on_startup") as on_startup:
            result = build_app(lunch_bot)

        assert result is app
        on_startup.assert_called_once()
        assert app.bot_data["lunch_bot"] is lunch_bot
        builder.post_shutdown.assert_called_once_with(_on_shutdown)
        app.job_queue.run_repeating.assert_called_once()
        assert app.job_queue.run_repeating.call_args.kwargs["name"] == "snapshot"

    def test_no_snapshot_job_when_disabled(self, clock):
        from lunchbot.bot.telegram_bot import build_app
        from lunchbot.core.lunch_bot import LunchBot

        app = MagicMock()
        app.bot_data = {}
        builder = MagicMock()
        builder.token.return_value = builder
        builder.post_shutdown.return_value = builder
        builder.build.return_value = app

        with patch("lunchbot.bot.telegram_bot.ApplicationBuilder", return_value=builder):
            build_app(LunchBot(snapshots=None, clock=clock))

        app.job_queue.run_repeating.assert_not_called()
