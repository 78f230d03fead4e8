from __future__ import annotations

from datetime import datetime, timezone

from aiogram.types import Chat, Message, User

from modbot.telegram.mapper import to_inbound


def _message(**fields: object) -> Message:
    return Message(
        message_id=3,
        date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        chat=Chat(id=-100, type="supergroup", title="Team"),
        from_user=User(id=5, is_bot=False, first_name="Ann", last_name="Lee"),
        **fields,
    )


def test_text_message_maps_sender_and_chat() -> None:
    inbound = to_inbound(_message(text="/help 2"))

    assert inbound.text == "/help 2"
    assert inbound.sender.id == 5 and inbound.sender.full_name == "Ann Lee"
    assert inbound.chat.type == "supergroup" and inbound.chat.is_group
    assert inbound.chat.title == "Team"


def test_media_caption_is_not_command_text() -> None:
    inbound = to_inbound(_message(caption="/cmd unloadall"))

    assert inbound.text is None


def test_reply_depth_is_bounded() -> None:
    inner = _message(text="first")
    middle = _message(text="second", reply_to_message=inner)

    inbound = to_inbound(_message(text="third", reply_to_message=middle))

    assert inbound.reply_to.text == "second"
    assert inbound.reply_to.reply_to is None
