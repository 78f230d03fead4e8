from __future__ import annotations

from typing import Any, Awaitable, Callable

import structlog
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Update

from modbot.core.logging import bind_update_context, clear_update_context


class ErrorHandlerMiddleware(BaseMiddleware):
    """Outermost update middleware: per-update log context and the last-resort error net."""

    def __init__(self, logger: structlog.BoundLogger) -> None:
        self.logger = logger

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        if isinstance(event, Update):
            user = data.get("event_from_user")
            chat = data.get("event_chat")
            bind_update_context(
                update_id=event.update_id,
                user_id=getattr(user, "id", None),
                chat_id=getattr(chat, "id", None),
            )
        try:
            return await handler(event, data)
        except Exception as exc:
            self.logger.exception(
                "unhandled_bot_error",
                error=str(exc),
                update_id=getattr(event, "update_id", None),
            )
            if isinstance(event, Update) and event.message:
                try:
                    await event.message.answer("⚠️ Internal error. Please try again later.")
                except Exception as send_exc:
                    self.logger.warning("error_notice_failed", error=str(send_exc))
            return None
        finally:
            clear_update_context()
