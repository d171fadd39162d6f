import html
import logging
from datetime import date

from aiogram import Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command
from aiogram.filters.callback_data import CallbackData
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message

from app.config import settings as env_settings
from app.ical.errors import FeedError
from app.schedule.models import Promo
from app.schedule.names import PromoNameError, parse_promo_name, require_promo
from app.services.date_service import get_today, parse_iso_day, shift_day
from app.services.day_index_service import build_promo_day
from app.services.message_builder import build_day_message, split_telegram

logger = logging.getLogger(__name__)

router = Router()

USAGE_TEXT = "Indiquez votre groupe, par exemple: /edt 3-INFO-21"
FEED_ERROR_TEXT = "Impossible de récupérer l'emploi du temps pour le moment, réessayez plus tard."
EXPIRED_TEXT = "Ce message n'est plus valide, relancez /edt."

STATE_GROUP_KEY = "edt_group"


class DayNav(CallbackData, prefix="edt"):
    group: str
    day: str
    direction: str


def extract_command_arg(text: str | None) -> str | None:
    if not text:
        return None
    parts = text.split(maxsplit=1)
    if len(parts) < 2:
        return None
    return parts[1].strip()


def nav_keyboard(label: str, day: date) -> InlineKeyboardMarkup:
    def button(text: str, direction: str) -> InlineKeyboardButton:
        data = DayNav(group=label, day=day.isoformat(), direction=direction)
        return InlineKeyboardButton(text=text, callback_data=data.pack())

    return InlineKeyboardMarkup(inline_keyboard=[[button("⏪", "prev"), button("⏩", "next")]])


async def render_day(promo: Promo, day: date) -> str:
    try:
        events = await build_promo_day(promo, day)
    except FeedError as exc:
        logger.error("Calendar unavailable for %s on %s: %s", promo, day.isoformat(), exc)
        return FEED_ERROR_TEXT
    return build_day_message(promo, day, events)


@router.message(Command("edt"))
async def edt_command(message: Message, state: FSMContext) -> None:
    label = extract_command_arg(message.text)
    if not label:
        data = await state.get_data()
        label = data.get(STATE_GROUP_KEY)
    if not label:
        await message.answer(USAGE_TEXT)
        return

    try:
        promo = require_promo(label)
    except PromoNameError as exc:
        await message.answer(f"Groupe invalide: {html.escape(exc.label)}. {USAGE_TEXT}")
        return

    label = label.strip()
    await state.update_data(**{STATE_GROUP_KEY: label})

    today = get_today(env_settings.TZ)
    chunks = split_telegram(await render_day(promo, today))
    for chunk in chunks[:-1]:
        await message.answer(chunk)
    await message.answer(chunks[-1], reply_markup=nav_keyboard(label, today))


@router.callback_query(DayNav.filter())
async def edt_navigate(callback: CallbackQuery, callback_data: DayNav) -> None:
    promo = parse_promo_name(callback_data.group)
    day = parse_iso_day(callback_data.day)
    if promo is None or day is None or callback.message is None:
        await callback.answer(EXPIRED_TEXT)
        return

    day = shift_day(day, callback_data.direction)
    chunks = split_telegram(await render_day(promo, day))
    keyboard = nav_keyboard(callback_data.group, day)
    try:
        await callback.message.edit_text(
            chunks[0],
            reply_markup=keyboard if len(chunks) == 1 else None,
        )
    except TelegramBadRequest as exc:
        # Editing to identical content is rejected by Telegram; nothing to do.
        logger.debug("Timetable message not edited: %s", exc)

    # Overflow goes out as new messages; the buttons follow the last one.
    for index, chunk in enumerate(chunks[1:], start=2):
        await callback.message.answer(chunk, reply_markup=keyboard if index == len(chunks) else None)
    await callback.answer()


@router.message(Command("start", "help"))
async def help_command(message: Message) -> None:
    await message.answer(
        "Je publie l'emploi du temps de chaque groupe.\n"
        f"{USAGE_TEXT}\n"
        "Sans argument, /edt reprend le dernier groupe demandé. "
        "Les boutons ⏪ et ⏩ changent de jour."
    )
