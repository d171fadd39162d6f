import logging
from aiogram import BaseMiddleware
from aiogram.types import Message

BOT_COMMANDS = {"/edt", "/start", "/help"}


def _is_bot_command(message: Message) -> bool:
    text = message.text or message.caption
    if not text:
        return False
    command = text.strip().split()[0]
    command_base = command.split("@", 1)[0].lower()
    return command_base in BOT_COMMANDS


class LoggingMiddleware(BaseMiddleware):
    async def __call__(self, handler, event, data):
        logger = logging.getLogger(__name__)
        logger.debug("Incoming event: %s", type(event).__name__)
        if isinstance(event, Message):
            # Group chats: only react to our own commands.
            if event.chat.type in ("group", "supergroup") and not _is_bot_command(event):
                return
        return await handler(event, data)
