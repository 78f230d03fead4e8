from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from aiogram import Bot
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import (
    BufferedInputFile,
    InlineKeyboardMarkup,
    InputMediaAnimation,
    InputMediaAudio,
    InputMediaDocument,
    InputMediaPhoto,
    InputMediaVideo,
    Message,
    ReplyParameters,
)

from modbot.core.logging import get_logger
from modbot.core.models import GROUP_CHAT_TYPES, CallbackEvent, InboundMessage
from modbot.utils.text import markdown_bold

logger = get_logger(__name__)

_MEDIA_TYPES: dict[str, type] = {
    "photo": InputMediaPhoto,
    "video": InputMediaVideo,
    "audio": InputMediaAudio,
    "document": InputMediaDocument,
    "animation": InputMediaAnimation,
}

_CAPTIONED = {"photo", "audio", "document", "video", "animation", "voice"}
_UPLOAD_KINDS = _CAPTIONED | {"sticker", "video_note"}


def _is_parse_error(exc: TelegramBadRequest) -> bool:
    return "can't parse entities" in exc.message.lower()


def _markup(value: Any) -> Any:
    if isinstance(value, dict):
        return InlineKeyboardMarkup.model_validate(value)
    return value


def _media(value: Any) -> Any:
    if isinstance(value, dict):
        item = dict(value)
        kind = item.pop("type", "photo")
        if item.get("caption"):
            item["caption"] = markdown_bold(item["caption"])
        item.setdefault("parse_mode", ParseMode.MARKDOWN)
        return _MEDIA_TYPES[kind](**item)
    return value


class Response:
    """Outbound verbs bound to one chat (and the message that triggered the update).

    Text goes out as Markdown with ``**bold**`` rewritten to Telegram's ``*bold*``.
    In groups ``reply``/``upload`` quote the triggering message unless ``no_reply=True``.
    """

    def __init__(
        self,
        bot: Bot,
        chat_id: Optional[int],
        *,
        chat_type: Optional[str] = None,
        message_id: Optional[int] = None,
    ) -> None:
        self.bot = bot
        self.chat_id = chat_id
        self.chat_type = chat_type
        self.message_id = message_id
        self._answered: set[str] = set()

    # --- options ---------------------------------------------------------

    def _finalize(self, options: dict[str, Any]) -> dict[str, Any]:
        opts = dict(options)
        opts.pop("no_reply", None)
        opts.setdefault("parse_mode", ParseMode.MARKDOWN)
        if "reply_markup" in opts:
            opts["reply_markup"] = _markup(opts["reply_markup"])
        return opts

    def _with_reply(self, options: dict[str, Any]) -> dict[str, Any]:
        auto = (
            self.chat_type in GROUP_CHAT_TYPES
            and self.message_id is not None
            and not options.get("no_reply")
            and "reply_parameters" not in options
        )
        opts = self._finalize(options)
        reply_to = opts.pop("reply_to", None)
        if reply_to is not None:
            opts["reply_parameters"] = ReplyParameters(message_id=int(reply_to), allow_sending_without_reply=True)
        elif auto:
            opts["reply_parameters"] = ReplyParameters(message_id=self.message_id, allow_sending_without_reply=True)
        return opts

    async def _call(self, method: Callable[..., Awaitable[Any]], text_key: Optional[str], raw: Optional[str], **kwargs: Any) -> Any:
        try:
            return await method(**kwargs)
        except TelegramBadRequest as e:
            if text_key is None or kwargs.get("parse_mode") is None or not _is_parse_error(e):
                raise
            # resend as plain text when the markup does not parse
            logger.warning("markdown_parse_failed", error=e.message)
            kwargs["parse_mode"] = None
            kwargs[text_key] = raw
            return await method(**kwargs)

    def _require_chat(self) -> int:
        if self.chat_id is None:
            raise RuntimeError("response has no chat bound")
        return self.chat_id

    # --- sending ---------------------------------------------------------

    async def send(self, text: str, **options: Any) -> Message:
        opts = self._finalize(options)
        opts.pop("reply_to", None)
        return await self._call(
            self.bot.send_message, "text", text, chat_id=self._require_chat(), text=markdown_bold(text), **opts
        )

    async def reply(self, text: str, **options: Any) -> Message:
        opts = self._with_reply(options)
        return await self._call(
            self.bot.send_message, "text", text, chat_id=self._require_chat(), text=markdown_bold(text), **opts
        )

    async def upload(self, kind: str, content: Any, **options: Any) -> Any:
        kind = kind.lower()
        opts = self._with_reply(options)
        chat_id = self._require_chat()

        if kind == "media_group":
            opts.pop("parse_mode", None)
            opts.pop("reply_markup", None)
            return await self.bot.send_media_group(chat_id=chat_id, media=[_media(m) for m in content], **opts)
        if kind not in _UPLOAD_KINDS:
            raise ValueError(f"unknown upload type: {kind}")

        if isinstance(content, (bytes, bytearray)):
            content = BufferedInputFile(bytes(content), filename=options.get("filename", kind))
        opts.pop("filename", None)

        raw_caption = opts.get("caption")
        if kind in _CAPTIONED:
            if raw_caption:
                opts["caption"] = markdown_bold(raw_caption)
        else:
            opts.pop("parse_mode", None)
            opts.pop("caption", None)

        method = getattr(self.bot, f"send_{kind}")
        text_key = "caption" if raw_caption and kind in _CAPTIONED else None
        return await self._call(method, text_key, raw_caption, chat_id=chat_id, **{kind: content}, **opts)

    # --- editing ---------------------------------------------------------

    def resolve_target(self, target: Any) -> dict[str, Any]:
        """Message | message id | InboundMessage | dict | inline message id -> Bot API address."""
        if target is None:
            return {"chat_id": self.chat_id, "message_id": None}
        if isinstance(target, bool):
            raise TypeError("invalid message target")
        if isinstance(target, int):
            return {"chat_id": self.chat_id, "message_id": target}
        if isinstance(target, str):
            return {"inline_message_id": target}
        if isinstance(target, (Message, InboundMessage)):
            return {"chat_id": target.chat.id, "message_id": target.message_id}
        if isinstance(target, dict):
            if target.get("inline_message_id"):
                return {"inline_message_id": target["inline_message_id"]}
            return {"chat_id": target.get("chat_id", self.chat_id), "message_id": target.get("message_id")}
        message_id = getattr(target, "message_id", None)
        if isinstance(message_id, int):
            chat = getattr(target, "chat", None)
            return {"chat_id": getattr(chat, "id", self.chat_id), "message_id": message_id}
        raise TypeError(f"cannot address message from {type(target).__name__}")

    async def edit(self, kind: str, target: Any, content: Any, **options: Any) -> Any:
        kind = kind.lower()
        address = self.resolve_target(target)
        opts = self._finalize(options)
        opts.pop("reply_to", None)

        if kind == "text":
            return await self._call(
                self.bot.edit_message_text, "text", content, text=markdown_bold(content), **address, **opts
            )
        if kind == "caption":
            return await self._call(
                self.bot.edit_message_caption, "caption", content, caption=markdown_bold(content), **address, **opts
            )
        if kind == "media":
            opts.pop("parse_mode", None)
            return await self.bot.edit_message_media(media=_media(content), **address, **opts)
        if kind == "markup":
            opts.pop("parse_mode", None)
            opts.pop("reply_markup", None)
            return await self.bot.edit_message_reply_markup(reply_markup=_markup(content), **address, **opts)
        raise ValueError(f"unknown edit type: {kind}")

    async def delete(self, target: Any) -> bool:
        address = self.resolve_target(target)
        if address.get("message_id") is None:
            raise ValueError("delete needs a chat message")
        return await self.bot.delete_message(chat_id=address["chat_id"], message_id=address["message_id"])

    async def action(self, kind: str = "typing") -> bool:
        return await self.bot.send_chat_action(chat_id=self._require_chat(), action=kind)

    # --- callbacks -------------------------------------------------------

    def is_answered(self, event: CallbackEvent) -> bool:
        return event.id in self._answered

    async def answer_callback(
        self, event: CallbackEvent, text: Optional[str] = None, *, show_alert: bool = False, **options: Any
    ) -> bool:
        """Acknowledge a button press once; later calls for the same press are no-ops returning False."""
        if event.id in self._answered:
            return False
        self._answered.add(event.id)
        await self.bot.answer_callback_query(
            callback_query_id=event.id, text=text, show_alert=show_alert, **options
        )
        return True
