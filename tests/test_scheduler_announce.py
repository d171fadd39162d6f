from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.ical.errors import FeedParseError
from app.schedule.models import Department, Promo
from app.services import scheduler_service
from app.services.scheduler_service import ANNOUNCE_JOB_ID, ensure_announcement_job, init_scheduler, scheduler

TODAY = date(2026, 10, 19)


class FakeClient:
    def __init__(self):
        self.invalidated = 0

    def invalidate(self):
        self.invalidated += 1


@pytest.fixture
def feed_client(monkeypatch):
    client = FakeClient()
    monkeypatch.setattr(scheduler_service, "get_feed_client", lambda: client)
    return client


@pytest.fixture
def today(monkeypatch, feed_client):
    monkeypatch.setattr(scheduler_service, "get_today", lambda _tz: TODAY)


@pytest.mark.asyncio
async def test_announce_today_refetches_the_feed(monkeypatch, today, feed_client):
    async def fake_build_day_index(day):
        assert feed_client.invalidated == 1
        return {}

    monkeypatch.setattr(scheduler_service, "build_day_index", fake_build_day_index)
    bot = SimpleNamespace(send_message=AsyncMock())

    assert await scheduler_service.announce_today(chat_id=-100, bot=bot) == 0
    assert feed_client.invalidated == 1


@pytest.mark.asyncio
async def test_announce_today_posts_one_message_per_group(monkeypatch, today, make_event):
    index = {
        Promo(3, Department.INFO, 22): [make_event(group="3-INFO-22")],
        Promo(1, Department.RT, 11): [make_event(group="1-RT-11")],
    }
    build = AsyncMock(return_value=index)
    monkeypatch.setattr(scheduler_service, "build_day_index", build)
    bot = SimpleNamespace(send_message=AsyncMock())

    sent = await scheduler_service.announce_today(chat_id=-100, bot=bot)

    assert sent == 2
    build.assert_awaited_once_with(TODAY)
    texts = [call.kwargs["text"] for call in bot.send_message.await_args_list]
    assert "1-RT-11" in texts[0]
    assert "3-INFO-22" in texts[1]
    assert all(call.kwargs["chat_id"] == -100 for call in bot.send_message.await_args_list)


@pytest.mark.asyncio
async def test_announce_today_survives_feed_errors(monkeypatch, today):
    monkeypatch.setattr(scheduler_service, "build_day_index", AsyncMock(side_effect=FeedParseError("bad")))
    bot = SimpleNamespace(send_message=AsyncMock())

    sent = await scheduler_service.announce_today(chat_id=-100, bot=bot)

    assert sent == 0
    bot.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_announce_today_continues_after_send_failure(monkeypatch, today, make_event):
    index = {
        Promo(1, Department.RT, 11): [make_event(group="1-RT-11")],
        Promo(1, Department.RT, 12): [make_event(group="1-RT-12")],
    }
    monkeypatch.setattr(scheduler_service, "build_day_index", AsyncMock(return_value=index))
    bot = SimpleNamespace(send_message=AsyncMock(side_effect=[RuntimeError("flood"), None]))

    sent = await scheduler_service.announce_today(chat_id=-100, bot=bot)

    assert sent == 1


@pytest.mark.asyncio
async def test_announce_today_requires_chat(monkeypatch):
    monkeypatch.setattr(scheduler_service.env_settings, "ANNOUNCE_CHAT_ID", None)

    assert await scheduler_service.announce_today() == 0


def test_ensure_announcement_job_registers_cron_job():
    scheduler.remove_all_jobs()
    init_scheduler("Europe/Paris")

    ensure_announcement_job()

    job = scheduler.get_job(ANNOUNCE_JOB_ID)
    assert job is not None
    assert "hour='7'" in str(job.trigger)
    assert "minute='0'" in str(job.trigger)
