from __future__ import annotations

import math
from dataclasses import dataclass

from modbot.core.module_registry import AccessLevel, CommandModule, ModuleRegistry, PrefixPolicy
from modbot.services.rbac import PermissionContext

PAGE_SIZE = 10
HIDDEN_CATEGORY = "hidden"


@dataclass(frozen=True, slots=True)
class HelpPage:
    text: str
    current: int
    total_pages: int


def _markers(module: CommandModule) -> set[str]:
    return {module.access.value, module.category.casefold()}


def can_see(module: CommandModule, pctx: PermissionContext) -> bool:
    """Visibility of a command in help listings; chat-type limits apply to developers too."""
    markers = _markers(module)
    if module.category.casefold() == HIDDEN_CATEGORY:
        return False
    if AccessLevel.GROUP.value in markers and pctx.is_private:
        return False
    if AccessLevel.PRIVATE.value in markers and pctx.is_group:
        return False
    if AccessLevel.DEVELOPER.value in markers:
        return pctx.is_developer
    if AccessLevel.ADMINISTRATOR.value in markers:
        return pctx.is_admin or pctx.is_developer
    if AccessLevel.VIP.value in markers:
        return pctx.is_vip
    return True


@dataclass(frozen=True, slots=True)
class HelpService:
    registry: ModuleRegistry

    def visible_commands(self, pctx: PermissionContext) -> list[CommandModule]:
        return self.registry.list(lambda m: can_see(m, pctx))

    def find(self, token: str, pctx: PermissionContext) -> CommandModule | None:
        module = self.registry.resolve(token)
        if module is None or not can_see(module, pctx):
            return None
        return module

    def command_info(self, module: CommandModule, prefix: str) -> str:
        shown = "" if module.prefix is PrefixPolicy.FORBIDDEN else prefix
        aliases = ", ".join(f"`{a}`" for a in module.aliases) or "None"
        usage = "\n".join(f"{shown}{module.name} {g}".rstrip() for g in (module.guide or ("",)))
        return (
            "🛠️ **COMMAND INTERFACE**\n\n"
            f"▫️ **ID:** `{module.name}`\n"
            f"▫️ **Category:** `{module.category.upper()}`\n"
            f"▫️ **Cooldown:** {module.cooldown:g}s\n"
            f"▫️ **Aliases:** {aliases}\n\n"
            "📝 **Description:**\n"
            f"{module.description}\n\n"
            "🕹️ **Usage:**\n"
            f"```text\n{usage}\n```"
        )

    def paginate(self, commands: list[CommandModule], page: int, prefix: str) -> HelpPage:
        total = len(commands)
        total_pages = max(1, math.ceil(total / PAGE_SIZE))
        current = min(max(page, 1), total_pages)
        start = (current - 1) * PAGE_SIZE
        items = "\n\n".join(f"`{prefix}{m.name}`\n{m.description}" for m in commands[start : start + PAGE_SIZE])
        text = (
            "📑 **List of Commands**\n\n"
            f"{items}\n\n"
            f"▫️ Page {current} of {total_pages}\n"
            f"▫️ Total Commands: {total}\n"
            f"▫️ Type `{prefix}help <command>` for details."
        )
        return HelpPage(text=text, current=current, total_pages=total_pages)

    def tree(self, commands: list[CommandModule], prefix: str) -> str:
        categories: dict[str, list[str]] = {}
        for m in commands:
            categories.setdefault(m.category.upper(), []).append(m.name)

        lines = ["📂 ROOT_SYSTEM"]
        names = sorted(categories)
        for i, cat in enumerate(names):
            last_cat = i == len(names) - 1
            lines.append(f"{'└──' if last_cat else '├──'} 📁 {cat}")
            indent = "    " if last_cat else "│   "
            cmds = sorted(categories[cat])
            for j, name in enumerate(cmds):
                lines.append(f"{indent}{'└──' if j == len(cmds) - 1 else '├──'} {prefix}{name}")
            if not last_cat:
                lines.append("│")
        body = "\n".join(lines)
        return f"```text\n{body}\n\n[ Total Modules: {len(commands)} ]```"
