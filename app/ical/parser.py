"""
Decoding of the timetable feed into Event values.

The feed is an iCalendar export where every VEVENT carries SUMMARY, DTSTART,
DTEND, LOCATION and DESCRIPTION. DESCRIPTION is laid out as:

    <lesson>\\n\\n<group label>\\n<teacher>\\n...

Any VEVENT missing one of those properties fails the whole parse: a
malformed component usually means the producer changed its export format.
"""
import logging
import re
from datetime import date, datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from icalendar import Calendar

from app.ical.errors import FeedParseError, MissingPropertyError
from app.schedule.models import Event, EventType

logger = logging.getLogger(__name__)

DEFAULT_TZ = "Europe/Paris"

REQUIRED_PROPERTIES = ("SUMMARY", "DTSTART", "DTEND", "LOCATION", "DESCRIPTION")

# Module codes look like "R1.01-TD" or "S2.05_CM" at the start of SUMMARY.
_CLASS_TYPE_RE = re.compile(r"(S|R)[1-9].[0-9][0-9](-|_)(CM|TD|TP)")
# Position of the CM/TD/TP code when the module code opens the summary.
# Tied to the producer's fixed-width naming; anything else reads as OTHER.
_CLASS_TYPE_SLICE = slice(6, 8)

_EVENT_TYPES = {
    "CM": EventType.CM,
    "TD": EventType.TD,
    "TP": EventType.TP,
}


def classify_summary(summary: str) -> EventType:
    if not _CLASS_TYPE_RE.search(summary):
        return EventType.OTHER
    return _EVENT_TYPES.get(summary[_CLASS_TYPE_SLICE], EventType.OTHER)


def split_description(description: str) -> tuple[str, str, Optional[str]]:
    """Returns (lesson, group label, teacher) from a DESCRIPTION value."""
    # icalendar unescapes "\n"; normalize any escape that survived decoding.
    text = description.replace("\r\n", "\n").replace("\\n", "\n")
    sections = text.split("\n\n")
    if len(sections) < 2:
        raise FeedParseError("DESCRIPTION has no group section", description)

    lines = sections[1].split("\n")
    lesson = sections[0].strip()
    group = lines[0].strip()
    teacher = lines[1].strip() if len(lines) > 1 else ""
    return lesson, group, teacher or None


def _component_text(component) -> str:
    try:
        return component.to_ical().decode("utf-8", errors="replace")
    except Exception:
        return repr(component)


def _require(component, name: str):
    value = component.get(name)
    if value is None:
        raise MissingPropertyError(name, _component_text(component))
    if isinstance(value, list):
        # icalendar returns every occurrence of a repeated property as a list.
        raise FeedParseError(f"Duplicate {name}", _component_text(component))
    return value


def _to_local(component, name: str, tz: ZoneInfo) -> datetime:
    value = _require(component, name).dt
    if not isinstance(value, datetime):
        kind = "date-only" if isinstance(value, date) else type(value).__name__
        raise FeedParseError(f"{name} is {kind}, expected a UTC date-time", _component_text(component))
    if value.tzinfo is None:
        # Feed times are UTC ("...Z"); a floating value is read the same way.
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


def _build_event(component, tz: ZoneInfo) -> Event:
    for name in REQUIRED_PROPERTIES:
        _require(component, name)

    errors = getattr(component, "errors", None)
    if errors:
        names = ", ".join(str(prop) for prop, _ in errors)
        raise FeedParseError(f"Malformed properties ({names})", _component_text(component))

    summary = str(component.get("SUMMARY"))
    lesson, group, teacher = split_description(str(component.get("DESCRIPTION")))

    return Event(
        summary=summary,
        start=_to_local(component, "DTSTART", tz),
        end=_to_local(component, "DTEND", tz),
        location=str(component.get("LOCATION")),
        lesson=lesson,
        group=group,
        teacher=teacher,
        event_type=classify_summary(summary),
    )


def parse_feed(ical_text: str, tz: Union[str, ZoneInfo] = DEFAULT_TZ) -> list[Event]:
    """
    Parses a feed document into events, in feed order.

    Folded lines are unfolded by icalendar before decoding. Raises
    FeedParseError (or MissingPropertyError) on the first bad component.
    """
    if isinstance(tz, str):
        tz = ZoneInfo(tz)

    if not ical_text or not ical_text.strip():
        raise FeedParseError("Empty calendar document")

    try:
        cal = Calendar.from_ical(ical_text)
    except Exception as exc:
        raise FeedParseError(f"Failed to parse VCALENDAR ({exc})", ical_text) from exc

    events = [_build_event(component, tz) for component in cal.walk("VEVENT")]
    logger.debug("Parsed %d events from feed", len(events))
    return events
