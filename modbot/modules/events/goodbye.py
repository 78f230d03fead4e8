from modbot.core.models import EventContext

meta = {
    "name": "goodbye",
    "version": "1.0.0",
    "description": "Says farewell when a member leaves the group.",
    "author": "modbot",
}


async def on_event(ctx: EventContext) -> None:
    left = ctx.message.left_member
    if left is None or left.is_bot:
        return
    await ctx.response.send(f"👋 **{left.full_name or 'A member'}** has left the group. Farewell!")
