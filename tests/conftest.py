import os
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from app.schedule.models import Event, EventType

# Make sure importing app.config doesn't fail during test collection.
os.environ.setdefault("BOT_TOKEN", "123456789:TEST_TOKEN")
os.environ.setdefault("CALENDAR_URL", "http://example.com/edt.ics")
os.environ.setdefault("TZ", "Europe/Paris")

PARIS = ZoneInfo("Europe/Paris")


@pytest.fixture
def make_event():
    def _make(
        group: str = "3-INFO-21",
        start: datetime = datetime(2026, 10, 19, 8, 0, tzinfo=PARIS),
        duration: timedelta = timedelta(hours=2),
        summary: str = "R1.01-TD Algorithmique",
        lesson: str = "Algorithmique",
        teacher: str | None = "M. Dupont",
        event_type: EventType = EventType.TD,
    ) -> Event:
        return Event(
            summary=summary,
            start=start,
            end=start + duration,
            location="B204",
            lesson=lesson,
            group=group,
            teacher=teacher,
            event_type=event_type,
        )

    return _make
