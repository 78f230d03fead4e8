from modbot.core.models import CommandContext

meta = {
    "name": "prefix",
    "version": "1.0.0",
    "description": "Show the active command prefixes.",
    "author": "modbot",
    "category": "utility",
    "type": "anyone",
    "cooldown": 5,
    # also answers a plain "prefix" typed without any prefix
    "prefix": "both",
}


async def on_start(ctx: CommandContext) -> None:
    current = ctx.state.settings.current
    secondary = ", ".join(f"`{p}`" for p in current.secondary_prefixes if p != current.prefix) or "None"
    await ctx.response.reply(
        "⚙️ **Prefix Settings**\n\n"
        f"▫️ **Primary:** `{current.prefix}`\n"
        f"▫️ **Secondary:** {secondary}\n\n"
        f"Type `{current.prefix}help` to see commands."
    )
