from __future__ import annotations

from aiogram.exceptions import TelegramBadRequest

from modbot.core.models import CallbackContext, CommandContext
from modbot.services.rbac import PermissionContext
from modbot.telegram.keyboards import page_nav_kb

meta = {
    "name": "help",
    "version": "3.6.0",
    "aliases": ["h", "menu", "?"],
    "description": "Access the system command interface.",
    "category": "system",
    "type": "anyone",
    "cooldown": 3,
    "guide": ["[command | page | all]"],
    "prefix": "both",
}

_ALL = ("all", "-all")


async def _permissions(ctx, *, user_id: int, chat_id: int, chat_type: str, prefix: str) -> PermissionContext:
    return await ctx.container.rbac.build_context(
        user_id=user_id,
        chat_id=chat_id,
        chat_type=chat_type,
        transport=ctx.transport,
        prefix=prefix,
    )


async def on_start(ctx: CommandContext) -> None:
    prefix = ctx.prefix or ctx.state.settings.current.prefix
    pctx = await _permissions(
        ctx, user_id=ctx.user_id, chat_id=ctx.chat_id, chat_type=ctx.message.chat.type, prefix=prefix
    )
    help_service = ctx.container.help_service
    query = ctx.args[0].casefold() if ctx.args else None

    if query and query not in _ALL and not query.isdigit():
        module = help_service.find(query, pctx)
        if module is not None:
            await ctx.response.reply(help_service.command_info(module, prefix))
            return

    visible = help_service.visible_commands(pctx)
    if query in _ALL:
        await ctx.response.reply(help_service.tree(visible, prefix))
        return

    page = help_service.paginate(visible, int(query) if query and query.isdigit() else 1, prefix)
    if page.total_pages == 1:
        await ctx.response.reply(page.text)
        return
    token = ctx.open_callback_session(prefix=prefix)
    await ctx.response.reply(page.text, reply_markup=page_nav_kb("help", token, page.current, page.total_pages))


async def on_callback(ctx: CallbackContext) -> None:
    token = ctx.payload.get("i")
    session = ctx.state.callbacks.get(token) if isinstance(token, str) else None
    if session is None:
        await ctx.response.answer_callback(ctx.event, "❌ Session expired.", show_alert=True)
        return
    if not session.allows(ctx.user_id):
        await ctx.response.answer_callback(ctx.event, "⛔ Access denied.", show_alert=True)
        return

    origin = ctx.event.message
    pctx = await _permissions(
        ctx,
        user_id=ctx.user_id,
        chat_id=ctx.chat_id or ctx.user_id,
        chat_type=origin.chat.type if origin is not None else "private",
        prefix=session.data.get("prefix", "/"),
    )
    help_service = ctx.container.help_service
    try:
        requested = int(ctx.payload.get("p", 1))
    except (TypeError, ValueError):
        requested = 1
    page = help_service.paginate(help_service.visible_commands(pctx), requested, pctx.prefix)
    markup = page_nav_kb("help", token, page.current, page.total_pages)

    target = origin if origin is not None else ctx.inline_message_id
    try:
        await ctx.response.edit("text", target, page.text, reply_markup=markup)
    except TelegramBadRequest as e:
        if "message is not modified" not in e.message:
            raise
    ctx.state.callbacks.touch(token)
    await ctx.response.answer_callback(ctx.event, f"Page {page.current}")
