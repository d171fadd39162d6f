import asyncio
import logging
from aiogram.types import BotCommand, BotCommandScopeDefault
from aiogram.exceptions import TelegramNetworkError

from app.logging_setup import setup_logging
from app.config import settings as env_settings
from app.ical.errors import FeedError
from app.services.day_index_service import get_feed_client
from app.services.scheduler_service import init_scheduler, ensure_announcement_job, scheduler
from app.bot.dispatcher import bot, dp

async def main():
    # 1. Setup Logging
    setup_logging()
    logging.info("Initializing Bot...")

    # 2. Verify bot token
    try:
        bot_info = await bot.get_me()
        logging.info(f"Bot verified: @{bot_info.username} (id={bot_info.id})")
    except TelegramNetworkError as e:
        logging.error(f"Failed to verify bot token due to network error: {e}")
        logging.error("If api.telegram.org is blocked, set TELEGRAM_PROXY in .env.")
    except Exception as e:
        logging.error(f"Failed to verify bot token: {e}")
        logging.error("Please check your BOT_TOKEN in .env file")
        raise

    # 3. Warm the calendar cache; a failure here is not fatal.
    try:
        events = await get_feed_client().fetch_events()
        logging.info("Calendar reachable, %d events loaded.", len(events))
    except FeedError:
        logging.exception("Initial calendar fetch failed; will retry on demand.")

    # 4. Bot commands (shows up in UI)
    commands = [
        BotCommand(command="edt", description="Emploi du temps d'un groupe (ex: /edt 3-INFO-21)"),
        BotCommand(command="help", description="Aide"),
    ]
    try:
        await bot.set_my_commands(commands, scope=BotCommandScopeDefault())
        logging.info("Bot commands updated.")
    except Exception:
        logging.exception("Failed to set bot commands.")

    # 5. Daily announcement
    init_scheduler(timezone=env_settings.TZ)
    if env_settings.ANNOUNCE_CHAT_ID:
        ensure_announcement_job()
        logging.info("Daily announcement scheduled at %s (%s).", env_settings.ANNOUNCE_TIME, env_settings.TZ)
    else:
        logging.warning("ANNOUNCE_CHAT_ID is not set; daily announcement disabled.")
    scheduler.start()

    # 6. Start Polling
    logging.info("Starting polling...")
    await bot.delete_webhook(drop_pending_updates=True)
    await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Bot stopped by user!")
    except SystemExit:
        logging.info("Bot stopped!")
    except Exception as e:
        logging.error(f"Fatal error: {e}", exc_info=True)
        raise
