"""
LunchBot — Telegram Bot.

Thin transport around ``LunchBot``: chat lines in, reply lines out. Lines
must start with the command prefix ("lb propose Pizzeria 12:00"); anything
else in the chat is ignored. ``/lb <command>`` does the same for chats
where privacy mode hides plain messages from bots.

Snapshots are saved by a repeating job and once more on shutdown.
"""

from __future__ import annotations

import asyncio
import logging

from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from lunchbot.config import settings
from lunchbot.core.lunch_bot import LunchBot
from lunchbot.core.parser import USAGE

logger = logging.getLogger(__name__)


def _sender_name(update: Update) -> str | None:
    """The nickname we know the sender by (username, else first name)."""
    user = update.effective_user
    if user is None:
        return None
    return user.username or user.first_name


def _lunch_bot(context: ContextTypes.DEFAULT_TYPE) -> LunchBot:
    return context.bot_data["lunch_bot"]


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    if update.message is None:
        return
    prefix = _lunch_bot(context).prefix
    await update.message.reply_text(
        "Hi, I coordinate lunch.\n"
        f"Address me with '{prefix} <command>', e.g. '{prefix} propose Pizzeria 12:00'.\n\n"
        f"{USAGE}"
    )


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    if update.message is None:
        return
    await update.message.reply_text(USAGE)


async def cmd_lb(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /lb <command> — same as a prefixed text line."""
    if update.message is None:
        return
    bot = _lunch_bot(context)
    line = " ".join(context.args or [])
    reply = bot.on_message(f"{bot.prefix} {line}", sender=_sender_name(update))
    if reply:
        await update.message.reply_text(reply)


# ---------------------------------------------------------------------------
# Message handlers
# ---------------------------------------------------------------------------


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle plain text messages — only prefixed lines get a reply."""
    if update.message is None or not update.message.text:
        return
    reply = _lunch_bot(context).on_message(update.message.text, sender=_sender_name(update))
    if reply is None:
        return
    await update.message.reply_text(reply)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


async def _snapshot_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
    # File I/O runs off the event loop so replies are never held up by disk.
    await asyncio.to_thread(_lunch_bot(context).on_timer_tick)


async def _on_shutdown(app: Application) -> None:
    bot: LunchBot = app.bot_data["lunch_bot"]
    await asyncio.to_thread(bot.on_shutdown)


def _setup_snapshots(app: Application, lunch_bot: LunchBot) -> None:
    """Register the periodic snapshot job."""
    if lunch_bot.snapshots is None:
        logger.info("SNAPSHOT_PATH is empty; periodic snapshots disabled")
        return

    interval = settings.SNAPSHOT_INTERVAL_SECONDS
    app.job_queue.run_repeating(
        _snapshot_job_callback,
        interval=interval,
        first=interval,
        name="snapshot",
    )
    logger.info("Snapshots every %d s to %s", interval, lunch_bot.snapshots.path)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(lunch_bot: LunchBot | None = None) -> Application:
    """Build and configure the Telegram Application with all handlers.

    The last snapshot is restored here, before polling starts, so no
    command is ever handled against a half-restored state.

    Args:
        lunch_bot: Command processor. Defaults to one built from settings.
    """
    if lunch_bot is None:
        lunch_bot = LunchBot.from_settings()
    lunch_bot.on_startup()

    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .post_shutdown(_on_shutdown)
        .build()
    )
    app.bot_data["lunch_bot"] = lunch_bot

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("lb", cmd_lb))

    # Text messages (non-command)
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))

    _setup_snapshots(app, lunch_bot)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting LunchBot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
