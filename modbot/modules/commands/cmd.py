"""Developer module manager: install, reload, unload and delete command plugins at runtime."""

from __future__ import annotations

from modbot.core.errors import ModuleInstallError
from modbot.core.models import CommandContext

meta = {
    "name": "cmd",
    "version": "1.2.1",
    "aliases": ["command", "module"],
    "description": "Manage bot commands (Install, Load, Delete, Reload).",
    "author": "modbot",
    "prefix": "both",
    "category": "developer",
    "type": "developer",
    "cooldown": 0,
    "guide": [
        "install <filename.py> <url>: Install new command",
        "load <command>: Reload a command",
        "unload <command>: Unload a command",
        "delete <command>: Permanently delete a command file",
        "loadall: Reload all commands",
        "unloadall: Clear all commands",
    ],
}


async def on_start(ctx: CommandContext) -> None:
    admin = ctx.container.module_admin
    action = ctx.args[0].casefold() if ctx.args else ""
    target = ctx.args[1] if len(ctx.args) > 1 else None

    if action == "install":
        url = ctx.args[2] if len(ctx.args) > 2 else None
        if not target or not url:
            await ctx.response.reply(f"⚠️ **Usage:** `{ctx.prefix}cmd install <filename.py> <raw_url>`")
            return
        if not target.endswith(".py"):
            await ctx.response.reply("⚠️ Filename must end with `.py`")
            return
        sent = await ctx.response.reply(f"📥 **Downloading** `{target}`...")
        try:
            name = await admin.install(target, url)
        except ModuleInstallError as e:
            await ctx.response.reply(f"❌ **Install Failed:**\n`{e}`")
            return
        await ctx.response.edit("text", sent, f"✅ **Installed & Loaded:** `{name}`")
        return

    if action == "load":
        if not target:
            await ctx.response.reply("⚠️ Provide a command name to load.")
            return
        try:
            name = admin.reload(target)
        except ModuleInstallError as e:
            await ctx.response.reply(f"❌ **Load Failed:**\n`{e}`")
            return
        await ctx.response.reply(f"🔄 **Reloaded:** `{name}`")
        return

    if action == "unload":
        if not target:
            await ctx.response.reply("⚠️ Provide a command name to unload.")
            return
        if admin.unload(target):
            await ctx.response.reply(f"🗑️ **Unloaded:** `{target}`")
        else:
            await ctx.response.reply(f"ℹ️ Command `{target}` is not loaded.")
        return

    if action in ("delete", "del", "remove", "rm"):
        if not target:
            await ctx.response.reply("⚠️ Provide a command name or filename to delete.")
            return
        try:
            path = admin.delete(target)
        except ModuleInstallError as e:
            await ctx.response.reply(f"❌ {e}")
            return
        await ctx.response.reply(
            "🗑️ **Deleted Permanently**\n"
            f"File: `{path.name}`\n"
            "Module unloaded and file removed from disk."
        )
        return

    if action == "loadall":
        sent = await ctx.response.reply("🔄 **Reloading System...**")
        report = admin.reload_all()
        text = f"✅ **System Reloaded**\nCommands: {ctx.state.registry.command_count}"
        if report.failed:
            text += "\n" + "\n".join(f"❌ `{f}`: {err}" for f, err in sorted(report.failed.items()))
        await ctx.response.edit("text", sent, text)
        return

    if action == "unloadall":
        size = admin.unload_all()
        await ctx.response.reply(f"🗑️ **Unloaded All** ({size} commands).")
        return

    await ctx.usage()
