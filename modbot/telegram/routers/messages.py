from __future__ import annotations

from aiogram import Bot, Router
from aiogram.types import Message

from modbot.telegram.mapper import to_inbound
from modbot.telegram.response import Response
from modbot.telegram.transport import AiogramTransport


def router(container: object) -> Router:  # type: ignore[type-arg]
    """Every message goes through the command pipeline; there are no per-command handlers here."""
    r = Router(name="messages")

    @r.message()
    async def on_message(message: Message, bot: Bot) -> None:
        inbound = to_inbound(message)
        response = Response(bot, message.chat.id, chat_type=inbound.chat.type, message_id=message.message_id)
        await container.dispatcher.handle_message(  # type: ignore[attr-defined]
            inbound, response, bot=bot, transport=AiogramTransport(bot)
        )

    return r
