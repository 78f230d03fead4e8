from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import orjson

from modbot.core.errors import CallbackMalformed, HandlerRuntimeError
from modbot.core.logging import get_logger
from modbot.core.models import CallbackContext, CallbackEvent, ChatTransport, Responder
from modbot.core.state import RuntimeState
from modbot.services.dispatcher import invoke_handler

logger = get_logger(__name__)


class CallbackOutcome(str, Enum):
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    HANDLED = "handled"
    FAILED = "failed"


def decode_payload(data: Optional[str]) -> Optional[dict[str, Any]]:
    """JSON object with a ``command`` key, else ``command:arg1:arg2``; None when neither fits."""
    if not data:
        return None
    try:
        decoded = orjson.loads(data)
    except orjson.JSONDecodeError:
        parts = data.split(":")
        command = parts[0].strip()
        if not command:
            return None
        return {"command": command, "args": parts[1:]}
    if isinstance(decoded, dict) and isinstance(decoded.get("command"), str) and decoded["command"]:
        return decoded
    return None


@dataclass
class CallbackDispatcher:
    state: RuntimeState
    container: Any = None

    async def handle(
        self,
        event: CallbackEvent,
        response: Responder,
        *,
        bot: Any,
        transport: ChatTransport | None = None,
    ) -> CallbackOutcome:
        if event.game_short_name and not event.data:
            await self._ack(event, response, "Games are not supported.", show_alert=True)
            return CallbackOutcome.INVALID

        payload = decode_payload(event.data)
        if payload is None:
            logger.warning("callback_invalid_payload", user_id=event.sender.id, data=event.data)
            await self._ack(event, response, "Invalid callback format.", show_alert=True)
            return CallbackOutcome.INVALID

        command = str(payload["command"]).casefold()
        module = self.state.registry.resolve(command)
        if module is None or module.on_callback is None:
            logger.warning("callback_command_not_found", command=command, user_id=event.sender.id)
            await self._ack(event, response, "Command not found.", show_alert=True)
            return CallbackOutcome.NOT_FOUND

        try:
            chat_id, message_id, inline_id = self._origin(event)
        except CallbackMalformed as e:
            logger.error("callback_malformed", command=module.name, user_id=event.sender.id, error=str(e))
            await self._ack(event, response, "Invalid callback context.", show_alert=True)
            return CallbackOutcome.MALFORMED

        args = payload.get("args") or []
        ctx = CallbackContext(
            bot=bot,
            event=event,
            payload=payload,
            args=[str(a) for a in args] if isinstance(args, list) else [str(args)],
            response=response,
            chat_id=chat_id,
            message_id=message_id,
            inline_message_id=inline_id,
            module=module,
            transport=transport,
            container=self.container,
            state=self.state,
        )

        try:
            await invoke_handler(module.on_callback, ctx, command=module.name)
        except HandlerRuntimeError as e:
            logger.error(
                "callback_failed",
                command=e.command,
                user_id=event.sender.id,
                error=str(e.original),
                exc_info=e.original,
            )
            await self._ack(event, response, "An error occurred. Please try again.", show_alert=True)
            return CallbackOutcome.FAILED

        await self._ack(event, response)
        return CallbackOutcome.HANDLED

    @staticmethod
    def _origin(event: CallbackEvent) -> tuple[Optional[int], Optional[int], Optional[str]]:
        chat_id = event.message.chat.id if event.message is not None else None
        message_id = event.message.message_id if event.message is not None else None
        if chat_id is None and not event.inline_message_id:
            raise CallbackMalformed("neither chat id nor inline message id in callback")
        return chat_id, message_id, event.inline_message_id

    async def _ack(
        self,
        event: CallbackEvent,
        response: Responder,
        text: Optional[str] = None,
        *,
        show_alert: bool = False,
    ) -> None:
        # one acknowledgment per click, whoever sends it first
        if response.is_answered(event):
            return
        try:
            await response.answer_callback(event, text, show_alert=show_alert)
        except Exception as e:
            logger.warning("callback_ack_failed", query_id=event.id, error=str(e))
