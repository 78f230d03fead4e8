from __future__ import annotations

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from modbot.core.config import Settings


def build_bot(token: str) -> Bot:
    return Bot(
        token=token,
        default=DefaultBotProperties(parse_mode=ParseMode.MARKDOWN),
    )


def build_bots(settings: Settings) -> list[Bot]:
    """One connection per configured token, all served by the same dispatcher."""
    return [build_bot(token) for token in settings.all_bot_tokens()]
