from datetime import datetime, date, timedelta
import zoneinfo

def get_local_now(tz: str) -> datetime:
    return datetime.now(zoneinfo.ZoneInfo(tz))

def get_today(tz: str) -> date:
    return get_local_now(tz).date()

def shift_day(day: date, direction: str) -> date:
    """
    Moves `day` one step for the navigation buttons.
    direction: "prev" | "next"; anything else keeps the day.
    """
    if direction == "prev":
        return day - timedelta(days=1)
    if direction == "next":
        return day + timedelta(days=1)
    return day

def parse_iso_day(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None

def parse_hhmm(hhmm: str) -> tuple[int, int]:
    parsed = datetime.strptime(hhmm, "%H:%M")
    return parsed.hour, parsed.minute
