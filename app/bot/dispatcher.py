from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.client.session.aiohttp import AiohttpSession
from aiogram.fsm.storage.memory import MemoryStorage

from app.bot.handlers import edt
from app.bot.middlewares import LoggingMiddleware
from app.config import settings

if settings.TELEGRAM_PROXY:
    session = AiohttpSession(proxy=settings.TELEGRAM_PROXY)
    bot = Bot(token=settings.BOT_TOKEN, default=DefaultBotProperties(parse_mode="HTML"), session=session)
else:
    bot = Bot(token=settings.BOT_TOKEN, default=DefaultBotProperties(parse_mode="HTML"))
storage = MemoryStorage()
dp = Dispatcher(storage=storage)

dp.message.middleware(LoggingMiddleware())

dp.include_router(edt.router)
