import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings as env_settings
from app.ical.errors import FeedError
from app.services.date_service import get_today, parse_hhmm
from app.services.day_index_service import build_day_index, get_feed_client
from app.services.message_builder import ParseMode, build_day_message, split_telegram

scheduler = AsyncIOScheduler()

ANNOUNCE_JOB_ID = "daily_announcement"


def init_scheduler(timezone: str = "Europe/Paris"):
    """
    Initialize the scheduler configuration.
    """
    if not scheduler.running:
        scheduler.configure(timezone=timezone)


async def announce_today(chat_id: int | None = None, bot=None) -> int:
    """
    Posts today's timetable of every group to the announcement chat.
    Returns the number of group messages sent.
    """
    chat_id = chat_id or env_settings.ANNOUNCE_CHAT_ID
    if not chat_id:
        logging.warning("Daily announcement skipped: ANNOUNCE_CHAT_ID is not set.")
        return 0

    today = get_today(env_settings.TZ)
    # The morning post always reads the current feed, not a cached copy.
    get_feed_client().invalidate()
    try:
        index = await build_day_index(today)
    except FeedError:
        logging.exception("Daily announcement for %s failed: calendar unavailable.", today.isoformat())
        return 0

    if bot is None:
        # Lazy import: the bot is only built once settings are loaded.
        from app.bot.dispatcher import bot

    sent = 0
    for promo in sorted(index, key=str):
        text = build_day_message(promo, today, index[promo])
        try:
            for chunk in split_telegram(text):
                await bot.send_message(chat_id=chat_id, text=chunk, parse_mode=ParseMode.HTML)
        except Exception:
            logging.exception("Failed to announce %s to chat_id=%s", promo, chat_id)
            continue
        sent += 1

    logging.info("Daily announcement for %s sent for %d groups.", today.isoformat(), sent)
    return sent


def ensure_announcement_job() -> None:
    hour, minute = parse_hhmm(env_settings.ANNOUNCE_TIME)
    scheduler.add_job(
        announce_today,
        CronTrigger(hour=hour, minute=minute, timezone=env_settings.TZ),
        id=ANNOUNCE_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=300,
    )
