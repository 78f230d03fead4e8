from __future__ import annotations

from modbot.core.models import CommandContext

meta = {
    "name": "devbypass",
    "version": "1.0.0",
    "aliases": ["ignoremaintenance", "devwhitelist"],
    "description": "Whitelist commands to bypass Maintenance Mode.",
    "author": "modbot",
    "prefix": "both",
    "category": "developer",
    "type": "developer",
    "cooldown": 3,
    "guide": [
        "add <command>: Allow a command during maintenance",
        "del <command>: Remove a command",
        "list: View allowed commands",
    ],
}


async def on_start(ctx: CommandContext) -> None:
    settings = ctx.state.settings
    sub = ctx.args[0].casefold() if ctx.args else ""
    target = ctx.args[1].casefold() if len(ctx.args) > 1 else None
    bypass = list(settings.current.maintenance_bypass)

    if sub in ("add", "allow"):
        if not target:
            await ctx.response.reply("⚠️ **Missing Argument**\nPlease specify the command name to whitelist.")
            return
        if ctx.state.registry.resolve(target) is None:
            await ctx.response.reply(f"⚠️ **Unknown Command**\n`{target}` does not exist in the bot's system.")
            return
        if target in bypass:
            await ctx.response.reply(f"ℹ️ `{target}` is already whitelisted.")
            return
        settings.update(maintenance_bypass=[*bypass, target])
        await ctx.response.reply(f"✅ **Whitelisted**\nEveryone can now use `{target}` during Maintenance.")
        return

    if sub in ("del", "remove", "rm"):
        if not target:
            await ctx.response.reply("⚠️ **Missing Argument**\nPlease specify the command name to remove.")
            return
        if target not in bypass:
            await ctx.response.reply(f"ℹ️ `{target}` is not in the whitelist.")
            return
        settings.update(maintenance_bypass=[c for c in bypass if c != target])
        await ctx.response.reply(f"🗑️ **Removed**\n`{target}` is now blocked during Maintenance.")
        return

    if sub in ("list", "show"):
        if not bypass:
            await ctx.response.reply("📂 **Whitelist Empty**\nNo exceptions set. Maintenance Mode blocks everything.")
            return
        listing = "\n".join(f"• `{c}`" for c in bypass)
        await ctx.response.reply(
            "🚧 **Maintenance Exceptions**\nThese commands work even when Maintenance is ON:\n\n" + listing
        )
        return

    await ctx.response.reply(f"❓ **Usage:** {ctx.prefix}devbypass [add | del | list]")
