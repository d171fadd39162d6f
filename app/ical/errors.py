from typing import Optional

FRAGMENT_LIMIT = 200


def _fragment(text: Optional[str]) -> str:
    if not text:
        return ""
    text = text.strip()
    if len(text) <= FRAGMENT_LIMIT:
        return text
    return text[:FRAGMENT_LIMIT] + "..."


class FeedError(RuntimeError):
    pass


class FeedFetchError(FeedError):
    """Network/HTTP failure or timeout. Retryable on the next call."""

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class FeedParseError(FeedError):
    """The feed body could not be decoded. Not retryable until the feed changes."""

    def __init__(self, message: str, fragment: Optional[str] = None):
        self.fragment = _fragment(fragment)
        if self.fragment:
            message = f"{message}: {self.fragment!r}"
        super().__init__(message)


class MissingPropertyError(FeedParseError):
    def __init__(self, property_name: str, component_text: Optional[str] = None):
        super().__init__(f"Event is missing {property_name}", component_text)
        self.property_name = property_name
