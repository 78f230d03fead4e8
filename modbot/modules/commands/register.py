from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from modbot.core.logging import get_logger
from modbot.core.models import CommandContext

logger = get_logger(__name__)

STARTER_BONUS = 1000

meta = {
    "name": "register",
    "version": "1.0.0",
    "description": "Register yourself in the global database to start using bot features.",
    "author": "modbot",
    "category": "system",
    "type": "anyone",
    "cooldown": 10,
    "guide": ["(Run to sign up)"],
}


async def on_start(ctx: CommandContext) -> None:
    user = await ctx.users.get(ctx.user_id)
    if user.registered:
        await ctx.response.reply("✅ **You are already registered!**\nYou can use all commands.")
        return

    try:
        await ctx.users.set(
            ctx.user_id,
            registered=True,
            money=STARTER_BONUS,
            exp=0,
            data={"joined_at": datetime.now(timezone.utc).isoformat()},
        )
    except SQLAlchemyError as e:
        logger.error("register_failed", user_id=ctx.user_id, error=str(e))
        await ctx.response.reply("⚠️ **Registration Failed**: Database error.")
        return

    await ctx.response.reply(
        "📝 **Registration Complete!**\n\n"
        "🎉 Welcome aboard!\n"
        f"You have received a **${STARTER_BONUS:,}** starter bonus."
    )
