from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol

GROUP_CHAT_TYPES = ("group", "supergroup")


@dataclass(frozen=True)
class Sender:
    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()


@dataclass(frozen=True)
class ChatInfo:
    id: int
    type: str
    title: Optional[str] = None

    @property
    def is_group(self) -> bool:
        return self.type in GROUP_CHAT_TYPES

    @property
    def is_private(self) -> bool:
        return self.type == "private"


@dataclass(frozen=True)
class InboundMessage:
    message_id: int
    chat: ChatInfo
    sender: Optional[Sender]
    text: Optional[str] = None
    reply_to: Optional["InboundMessage"] = None
    new_members: tuple[Sender, ...] = ()
    left_member: Optional[Sender] = None
    raw: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class CallbackEvent:
    id: str
    sender: Sender
    data: Optional[str]
    message: Optional[InboundMessage] = None
    inline_message_id: Optional[str] = None
    game_short_name: Optional[str] = None
    raw: Any = field(default=None, compare=False, repr=False)


class Responder(Protocol):
    """Outbound verbs the core depends on; implemented over aiogram in ``modbot.telegram.response``."""

    async def reply(self, text: str, **options: Any) -> Any: ...

    async def send(self, text: str, **options: Any) -> Any: ...

    async def upload(self, kind: str, content: Any, **options: Any) -> Any: ...

    async def edit(self, kind: str, target: Any, content: Any, **options: Any) -> Any: ...

    async def delete(self, target: Any) -> Any: ...

    async def action(self, kind: str = "typing") -> Any: ...

    async def answer_callback(
        self, event: CallbackEvent, text: Optional[str] = None, *, show_alert: bool = False, **options: Any
    ) -> bool: ...

    def is_answered(self, event: CallbackEvent) -> bool: ...


class ChatTransport(Protocol):
    async def get_member_status(self, chat_id: int, user_id: int) -> str: ...


@dataclass
class CommandContext:
    bot: Any
    message: InboundMessage
    args: list[str]
    response: Responder
    command_name: str
    prefix: str
    module: Any
    usage: Callable[[], Awaitable[Any]]
    is_registered: Callable[[], Awaitable[bool]]
    transport: Optional[ChatTransport] = None
    users: Any = None
    groups: Any = None
    container: Any = None
    state: Any = None

    @property
    def user_id(self) -> int:
        return self.message.sender.id if self.message.sender else 0

    @property
    def chat_id(self) -> int:
        return self.message.chat.id

    def open_callback_session(self, *, owner_only: bool = True, **data: Any) -> str:
        """Store button state; the returned token goes into the callback payload."""
        owner = self.user_id if owner_only else None
        return self.state.callbacks.create(self.module.name, owner_id=owner, data=data)

    def expect_reply(self, sent: Any, **data: Any) -> None:
        """Route a later reply to ``sent`` back into this module's ``on_reply``."""
        message_id = getattr(sent, "message_id", sent)
        self.state.replies.create(
            self.module.name,
            owner_id=self.user_id,
            data=data,
            key=(self.chat_id, int(message_id)),
        )


@dataclass
class CallbackContext:
    bot: Any
    event: CallbackEvent
    payload: dict[str, Any]
    args: list[str]
    response: Responder
    chat_id: Optional[int]
    message_id: Optional[int]
    inline_message_id: Optional[str]
    module: Any
    transport: Optional[ChatTransport] = None
    container: Any = None
    state: Any = None

    @property
    def user_id(self) -> int:
        return self.event.sender.id


@dataclass
class ChatContext:
    bot: Any
    message: InboundMessage
    args: list[str]
    response: Responder
    container: Any = None
    state: Any = None


@dataclass
class EventContext:
    bot: Any
    message: InboundMessage
    chat_id: int
    response: Responder
    container: Any = None
    state: Any = None


@dataclass
class ReplyContext:
    bot: Any
    message: InboundMessage
    args: list[str]
    response: Responder
    command_name: str
    data: dict[str, Any]
    reply_to: InboundMessage
    owner_id: Optional[int] = None
    container: Any = None
    state: Any = None
