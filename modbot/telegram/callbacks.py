from __future__ import annotations

from aiogram import Bot, Router
from aiogram.types import CallbackQuery, Message

from modbot.telegram.mapper import to_callback_event
from modbot.telegram.response import Response
from modbot.telegram.transport import AiogramTransport


def callbacks_router(container: object) -> Router:  # type: ignore[type-arg]
    """The single button-press listener; routing by payload happens in CallbackDispatcher."""
    r = Router(name="callbacks")

    @r.callback_query()
    async def on_callback(callback: CallbackQuery, bot: Bot) -> None:
        event = to_callback_event(callback)
        origin = callback.message
        response = Response(
            bot,
            origin.chat.id if origin is not None else None,
            chat_type=origin.chat.type if isinstance(origin, Message) else None,
            message_id=origin.message_id if origin is not None else None,
        )
        await container.callback_dispatcher.handle(  # type: ignore[attr-defined]
            event, response, bot=bot, transport=AiogramTransport(bot)
        )

    return r
