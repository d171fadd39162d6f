import logging
import urllib.error
import urllib.request
from typing import Optional

from app.ical.errors import FeedFetchError

logger = logging.getLogger(__name__)

USER_AGENT = "EdtBot/1.0"


def _decode_ics(data: bytes, content_type: Optional[str]) -> str:
    charset = None
    if content_type and "charset=" in content_type:
        charset = content_type.split("charset=")[-1].split(";")[0].strip() or None

    candidates = []
    if charset:
        candidates.append(charset)
    candidates.extend(["utf-8", "utf-8-sig", "cp1252", "latin-1"])

    for enc in candidates:
        try:
            return data.decode(enc)
        except (LookupError, UnicodeDecodeError):
            continue

    return data.decode("utf-8", errors="replace")


def fetch_ical(url: str, timeout: float = 10.0) -> str:
    """Blocking GET of the calendar document. Expects a 2xx, non-empty body."""
    if not url or not isinstance(url, str):
        raise FeedFetchError("URL is required for calendar fetch.", url=url)

    request = urllib.request.Request(
        url,
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "text/calendar, text/plain, */*",
        },
        method="GET",
    )

    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            status = getattr(response, "status", None)
            if status and not 200 <= status < 300:
                logger.error("Calendar fetch failed with status=%s for url=%s", status, url)
                raise FeedFetchError(f"Unexpected HTTP status: {status}", url=url, status=status)
            data = response.read()
            if not data:
                logger.error("Calendar fetch returned empty body for url=%s", url)
                raise FeedFetchError("Empty calendar response", url=url, status=status)
            content_type = response.headers.get("Content-Type")
            return _decode_ics(data, content_type)
    except FeedFetchError:
        raise
    except urllib.error.HTTPError as exc:
        logger.error("Calendar HTTP error for url=%s status=%s reason=%s", url, exc.code, exc.reason)
        raise FeedFetchError(f"HTTP error: {exc.code}", url=url, status=exc.code) from exc
    except urllib.error.URLError as exc:
        logger.error("Calendar URL error for url=%s reason=%s", url, exc.reason)
        raise FeedFetchError("Network error while fetching calendar.", url=url) from exc
    except TimeoutError as exc:
        logger.error("Calendar fetch timed out after %ss for url=%s", timeout, url)
        raise FeedFetchError("Timed out while fetching calendar.", url=url) from exc
    except Exception as exc:
        logger.exception("Unexpected calendar fetch error for url=%s", url)
        raise FeedFetchError("Unexpected error while fetching calendar.", url=url) from exc
