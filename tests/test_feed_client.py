import asyncio
import threading
import time

import pytest

from app.ical.client import FeedClient
from app.ical.errors import FeedFetchError, FeedParseError

ICS = (
    "BEGIN:VCALENDAR\n"
    "VERSION:2.0\n"
    "BEGIN:VEVENT\n"
    "SUMMARY:R1.01-TD Algorithmique\n"
    "DTSTART:20261019T060000Z\n"
    "DTEND:20261019T080000Z\n"
    "LOCATION:B204\n"
    "DESCRIPTION:Algorithmique\\n\\n3-INFO-21\\nM. Dupont\n"
    "END:VEVENT\n"
    "END:VCALENDAR\n"
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeFetcher:
    def __init__(self, text: str = ICS, delay: float = 0.0, error: Exception | None = None):
        self.text = text
        self.delay = delay
        self.error = error
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, url: str, timeout: float) -> str:
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


def _client(fetcher, clock=None, **kwargs) -> FeedClient:
    return FeedClient(
        "http://example.com/edt.ics",
        fetcher=fetcher,
        clock=clock or FakeClock(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_cache_hit_within_window_skips_network():
    fetcher = FakeFetcher()
    clock = FakeClock()
    client = _client(fetcher, clock)

    first = await client.fetch_events()
    clock.now += 599
    second = await client.fetch_events()

    assert fetcher.calls == 1
    assert first == second
    assert first is not second
    assert first[0].group == "3-INFO-21"


@pytest.mark.asyncio
async def test_expired_entry_is_replaced():
    fetcher = FakeFetcher()
    clock = FakeClock()
    client = _client(fetcher, clock)

    await client.fetch_events()
    clock.now += 600
    await client.fetch_events()

    assert fetcher.calls == 2
    assert client.cached_at == clock.now


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_fetch():
    fetcher = FakeFetcher(delay=0.05)
    client = _client(fetcher)

    results = await asyncio.gather(*(client.fetch_events() for _ in range(10)))

    assert fetcher.calls == 1
    assert all(result == results[0] for result in results)


@pytest.mark.asyncio
async def test_concurrent_failure_is_shared_and_retried_later():
    fetcher = FakeFetcher(delay=0.05, error=FeedFetchError("boom"))
    client = _client(fetcher)

    results = await asyncio.gather(*(client.fetch_events() for _ in range(5)), return_exceptions=True)

    assert fetcher.calls == 1
    assert all(isinstance(result, FeedFetchError) for result in results)
    assert client.cached_at is None

    fetcher.error = None
    fetcher.delay = 0.0
    events = await client.fetch_events()

    assert fetcher.calls == 2
    assert len(events) == 1


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_entry():
    fetcher = FakeFetcher()
    clock = FakeClock()
    client = _client(fetcher, clock)

    await client.fetch_events()
    fetched_at = client.cached_at
    clock.now += 601
    fetcher.error = FeedFetchError("down")

    with pytest.raises(FeedFetchError):
        await client.fetch_events()

    assert client.cached_at == fetched_at


@pytest.mark.asyncio
async def test_parse_failure_is_reported_as_parse_error():
    client = _client(FakeFetcher(text="not-ical"))

    with pytest.raises(FeedParseError):
        await client.fetch_events()

    assert client.cached_at is None


@pytest.mark.asyncio
async def test_slow_fetch_times_out_as_transport_error():
    client = _client(FakeFetcher(delay=0.3), timeout=0.05)

    with pytest.raises(FeedFetchError) as excinfo:
        await client.fetch_events()

    assert "Timed out" in str(excinfo.value)
    assert client.cached_at is None


@pytest.mark.asyncio
async def test_invalidate_forces_refetch():
    fetcher = FakeFetcher()
    client = _client(fetcher)

    await client.fetch_events()
    client.invalidate()
    await client.fetch_events()

    assert fetcher.calls == 2


@pytest.mark.asyncio
async def test_events_are_converted_to_client_timezone():
    client = _client(FakeFetcher(), timezone="Europe/Paris")

    [event] = await client.fetch_events()

    assert event.start.strftime("%Y-%m-%d %H:%M") == "2026-10-19 08:00"
