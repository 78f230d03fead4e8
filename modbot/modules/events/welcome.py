"""Greets members joining a group, and the group itself when the bot is added."""

from __future__ import annotations

from modbot.core.models import EventContext
from modbot.services.rbac import ADMIN_STATUSES

meta = {
    "name": "welcome",
    "version": "1.0.0",
    "description": "Handles new members joining and sends welcome messages.",
    "author": "modbot",
}


async def on_event(ctx: EventContext) -> None:
    members = ctx.message.new_members
    if not members:
        return

    me = await ctx.bot.get_me()
    title = ctx.message.chat.title or "this group"

    if any(m.id == me.id for m in members):
        member = await ctx.bot.get_chat_member(chat_id=ctx.chat_id, user_id=me.id)
        status = str(getattr(member.status, "value", member.status))
        if status in ADMIN_STATUSES:
            note = "I am ready to serve."
        else:
            note = "⚠️ **Note:** For full functionality, please grant me **Admin** privileges."
        await ctx.response.send(f"🎉 **System Online!**\n\nThanks for inviting **{me.first_name}** to _{title}_!\n{note}")
        return

    count = await ctx.bot.get_chat_member_count(chat_id=ctx.chat_id)
    for member in members:
        if member.is_bot:
            continue
        await ctx.response.send(
            f"👋 **Welcome, {member.full_name}!**\n\n"
            f"Welcome to **{title}**! We hope you enjoy your stay.\n"
            f"👥 You are member **#{count}**."
        )
