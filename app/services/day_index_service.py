import logging
from datetime import date
from typing import Iterable, Optional

from app.ical.client import FeedClient
from app.schedule.expansion import DayIndex, expand_event
from app.schedule.models import Event, Promo

logger = logging.getLogger(__name__)

_client: Optional[FeedClient] = None


def get_feed_client() -> FeedClient:
    """Process-wide client built from env settings on first use."""
    global _client
    if _client is None:
        from app.config import settings as env_settings

        _client = FeedClient(
            url=env_settings.CALENDAR_URL,
            timezone=env_settings.TZ,
            ttl_seconds=env_settings.CALENDAR_CACHE_TTL_SECONDS,
            timeout=env_settings.CALENDAR_FETCH_TIMEOUT_SECONDS,
        )
    return _client


def is_on_day(event: Event, day: date) -> bool:
    """
    Day-local filter: an event belongs to the day its local start falls on.

    An event running past midnight stays on its start day; one that started
    the previous evening is not listed on the following day.
    """
    return event.start.date() == day


def index_events(events: Iterable[Event], day: date) -> DayIndex:
    index: DayIndex = {}
    kept = 0
    for event in events:
        if not is_on_day(event, day):
            continue
        kept += 1
        expand_event(event, event.group, index)
    logger.info("Day index for %s: %d events across %d groups", day.isoformat(), kept, len(index))
    return index


async def build_day_index(day: date, client: Optional[FeedClient] = None) -> DayIndex:
    client = client or get_feed_client()
    events = await client.fetch_events()
    return index_events(events, day)


async def build_promo_day(promo: Promo, day: date, client: Optional[FeedClient] = None) -> list[Event]:
    index = await build_day_index(day, client)
    return index.get(promo, [])
