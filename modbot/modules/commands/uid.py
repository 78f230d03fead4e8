from modbot.core.models import CommandContext

meta = {
    "name": "uid",
    "version": "1.1.0",
    "aliases": ["id", "userid", "whoami"],
    "description": "Get your user ID or the ID of the replied user.",
    "author": "modbot",
    "prefix": "both",
    "category": "utility",
    "type": "anyone",
    "cooldown": 3,
}


async def on_start(ctx: CommandContext) -> None:
    replied = ctx.message.reply_to
    target = replied.sender if replied is not None and replied.sender is not None else ctx.message.sender
    name = target.full_name or "Unknown User"
    await ctx.response.reply(f"🆔 **User ID Lookup**\n\n👤 **User:** {name}\n🔢 **ID:** `{target.id}`")
