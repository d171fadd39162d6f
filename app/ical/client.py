import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from app.ical.errors import FeedFetchError
from app.ical.fetcher import fetch_ical
from app.ical.parser import DEFAULT_TZ, parse_feed
from app.schedule.models import Event

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 10 * 60
DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class CacheEntry:
    fetched_at: float  # clock() reading when the fetch completed
    events: tuple[Event, ...]


class FeedClient:
    """
    Fetches and parses the feed, caching the result for `ttl_seconds`.

    Concurrent callers that miss the cache share one in-flight fetch. The
    cache entry is only replaced by a complete, successfully parsed result;
    a failed fetch leaves the previous entry untouched.
    """

    def __init__(
        self,
        url: str,
        timezone: str = DEFAULT_TZ,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        fetcher: Callable[[str, float], str] = fetch_ical,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self.tz = ZoneInfo(timezone)
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self._fetcher = fetcher
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._inflight: Optional[asyncio.Task] = None

    @property
    def cached_at(self) -> Optional[float]:
        entry = self._entry
        return entry.fetched_at if entry else None

    def is_fresh(self, entry: Optional[CacheEntry]) -> bool:
        if entry is None:
            return False
        return self._clock() - entry.fetched_at < self.ttl_seconds

    def invalidate(self) -> None:
        self._entry = None

    async def fetch_events(self) -> list[Event]:
        entry = self._entry
        if self.is_fresh(entry):
            logger.debug("Calendar cache hit (%d events)", len(entry.events))
            return list(entry.events)

        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(self._refresh())
            self._inflight = task
            task.add_done_callback(self._clear_inflight)
        else:
            logger.debug("Joining in-flight calendar fetch")

        # shield: a cancelled caller must not cancel the fetch other callers wait on.
        entry = await asyncio.shield(task)
        return list(entry.events)

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # Mark the exception retrieved even if every waiter went away.
            task.exception()

    async def _refresh(self) -> CacheEntry:
        logger.info("Fetching calendar from %s", self.url)
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self._fetcher, self.url, self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Calendar fetch timed out after %ss", self.timeout)
            raise FeedFetchError("Timed out while fetching calendar.", url=self.url) from exc

        events = await asyncio.to_thread(parse_feed, text, self.tz)
        entry = CacheEntry(fetched_at=self._clock(), events=tuple(events))
        self._entry = entry
        logger.info("Calendar cache refreshed (%d events)", len(events))
        return entry
