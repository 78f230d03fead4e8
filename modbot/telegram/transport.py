from __future__ import annotations

from aiogram import Bot


class AiogramTransport:
    """Chat lookups the permission checks need, answered by the Bot API."""

    def __init__(self, bot: Bot) -> None:
        self.bot = bot

    async def get_member_status(self, chat_id: int, user_id: int) -> str:
        member = await self.bot.get_chat_member(chat_id=chat_id, user_id=user_id)
        return str(getattr(member.status, "value", member.status))
