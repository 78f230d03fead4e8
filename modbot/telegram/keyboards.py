from __future__ import annotations

from typing import Any

import orjson
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup


def callback_data(command: str, **fields: Any) -> str:
    """JSON button payload routed by the ``command`` key; Telegram caps it at 64 bytes."""
    data = orjson.dumps({"command": command, **fields}).decode("utf-8")
    if len(data.encode("utf-8")) > 64:
        raise ValueError(f"callback payload too long ({len(data)} bytes)")
    return data


def page_nav_kb(command: str, token: str, current: int, total_pages: int) -> InlineKeyboardMarkup | None:
    """◀️ Prev / Next ▶️ row; None when there is only one page."""
    row: list[InlineKeyboardButton] = []
    if current > 1:
        row.append(InlineKeyboardButton(text="◀️ Prev", callback_data=callback_data(command, i=token, p=current - 1)))
    if current < total_pages:
        row.append(InlineKeyboardButton(text="Next ▶️", callback_data=callback_data(command, i=token, p=current + 1)))
    if not row:
        return None
    return InlineKeyboardMarkup(inline_keyboard=[row])
