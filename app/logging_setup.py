import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_DIR = Path("data")
LOG_FILE = LOG_DIR / "bot.log"

_TELEGRAM_TOKEN_RE = re.compile(r"\b\d{8,12}:[A-Za-z0-9_-]{20,}\b")
_KEY_VALUE_RE = re.compile(
    r"(?i)\b(BOT_TOKEN|TELEGRAM_TOKEN|CALENDAR_URL|SECRET|PASSWORD|ACCESS_TOKEN)\s*[:=]\s*([^\s]+)"
)
# Calendar export links carry their access key in the query string.
_URL_QUERY_RE = re.compile(r"(https?://[^\s?#]+)\?[^\s#]+")


def _redact(text: str) -> str:
    redacted = _TELEGRAM_TOKEN_RE.sub("[REDACTED]", text)
    redacted = _KEY_VALUE_RE.sub(lambda match: f"{match.group(1)}=[REDACTED]", redacted)
    redacted = _URL_QUERY_RE.sub(lambda match: f"{match.group(1)}?[REDACTED]", redacted)
    return redacted


class RedactingFormatter(logging.Formatter):
    def formatException(self, ei):
        return _redact(super().formatException(ei))

    def formatStack(self, stack_info):
        return _redact(super().formatStack(stack_info))


class RedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        record.msg = _redact(message)
        record.args = ()
        return True


def setup_logging(level: int = logging.INFO, log_file: Path | None = LOG_FILE):
    """
    Configures logging for the application.
    output: stdout + rotating file (data/bot.log unless log_file is None)
    """
    formatter = RedactingFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=2, encoding="utf-8")
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(RedactingFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in handlers:
        root_logger.addHandler(handler)

    logging.getLogger("aiogram").setLevel(logging.INFO)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
