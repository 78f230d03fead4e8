from __future__ import annotations

from typing import Optional

from aiogram.types import CallbackQuery, Chat, Message, User

from modbot.core.models import CallbackEvent, ChatInfo, InboundMessage, Sender


def to_sender(user: Optional[User]) -> Optional[Sender]:
    if user is None:
        return None
    return Sender(
        id=user.id,
        is_bot=user.is_bot,
        first_name=user.first_name,
        last_name=user.last_name,
        username=user.username,
    )


def to_chat(chat: Chat) -> ChatInfo:
    return ChatInfo(id=chat.id, type=str(getattr(chat.type, "value", chat.type)), title=chat.title)


def to_inbound(message: Message, *, depth: int = 1) -> InboundMessage:
    """Map an aiogram message; ``depth`` bounds how many reply levels are followed."""
    reply_to = None
    if message.reply_to_message is not None and depth > 0:
        reply_to = to_inbound(message.reply_to_message, depth=depth - 1)
    return InboundMessage(
        message_id=message.message_id,
        chat=to_chat(message.chat),
        sender=to_sender(message.from_user),
        text=message.text,
        reply_to=reply_to,
        new_members=tuple(to_sender(u) for u in message.new_chat_members or ()),
        left_member=to_sender(message.left_chat_member),
        raw=message,
    )


def to_callback_event(query: CallbackQuery) -> CallbackEvent:
    # inaccessible (too old) messages still carry chat and id
    message = query.message if isinstance(query.message, Message) else None
    inbound = to_inbound(message, depth=0) if message is not None else None
    if inbound is None and query.message is not None:
        inbound = InboundMessage(
            message_id=query.message.message_id,
            chat=to_chat(query.message.chat),
            sender=None,
            raw=query.message,
        )
    return CallbackEvent(
        id=query.id,
        sender=to_sender(query.from_user),  # type: ignore[arg-type]
        data=query.data,
        message=inbound,
        inline_message_id=query.inline_message_id,
        game_short_name=query.game_short_name,
        raw=query,
    )
