from __future__ import annotations

from modbot.core.models import CommandContext

meta = {
    "name": "devmode",
    "version": "1.1.0",
    "aliases": ["maintenance", "maintenancemode"],
    "description": "Toggle Global Maintenance Mode.",
    "author": "modbot",
    "prefix": "both",
    "category": "system",
    "type": "developer",
    "cooldown": 5,
    "guide": ["[on | off]"],
}


async def on_start(ctx: CommandContext) -> None:
    settings = ctx.state.settings
    state = ctx.args[0].casefold() if ctx.args else ""

    if state in ("on", "enable"):
        if settings.current.maintenance:
            await ctx.response.reply("🚧 **Maintenance is already ACTIVE.**")
            return
        settings.update(maintenance=True)
        await ctx.response.reply(
            "🚧 **Maintenance Mode Enabled**\n\n"
            "The bot is now locked for regular users.\n"
            "Only developers can execute commands."
        )
        return

    if state in ("off", "disable"):
        if not settings.current.maintenance:
            await ctx.response.reply("🟢 **System is already ONLINE.**")
            return
        settings.update(maintenance=False)
        await ctx.response.reply("🟢 **Maintenance Mode Disabled**\n\nThe bot is now available for all users.")
        return

    status = "🚧 ACTIVE" if settings.current.maintenance else "🟢 INACTIVE"
    await ctx.response.reply(f"🛠️ **Maintenance Status:** {status}")
