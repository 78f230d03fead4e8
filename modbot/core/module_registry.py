from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Literal, Optional, Union

from modbot.core.errors import ModuleValidationError

Handler = Callable[[Any], Any]


class AccessLevel(str, Enum):
    ANYONE = "anyone"
    VIP = "vip"
    ADMINISTRATOR = "administrator"
    DEVELOPER = "developer"
    GROUP = "group"
    PRIVATE = "private"


class PrefixPolicy(str, Enum):
    REQUIRED = "required"
    FORBIDDEN = "forbidden"
    EITHER = "either"


@dataclass(frozen=True)
class CommandModule:
    name: str
    description: str
    on_start: Handler
    aliases: tuple[str, ...] = ()
    category: str = "general"
    access: AccessLevel = AccessLevel.ANYONE
    prefix: PrefixPolicy = PrefixPolicy.REQUIRED
    cooldown: float = 0
    guide: tuple[str, ...] = ()
    version: str = "1.0.0"
    author: str = ""
    on_chat: Optional[Handler] = None
    on_reply: Optional[Handler] = None
    on_callback: Optional[Handler] = None
    source: Optional[Path] = field(default=None, compare=False)

    kind: Literal["command"] = "command"

    @property
    def tokens(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


@dataclass(frozen=True)
class EventModule:
    name: str
    description: str
    on_event: Handler
    version: str = "1.0.0"
    author: str = ""
    source: Optional[Path] = field(default=None, compare=False)

    kind: Literal["event"] = "event"


ModuleDescriptor = Union[CommandModule, EventModule]


class ModuleRegistry:
    def __init__(self) -> None:
        self._commands: dict[str, CommandModule] = {}
        self._events: dict[str, EventModule] = {}
        self._aliases: dict[str, str] = {}

    def load(self, descriptor: ModuleDescriptor) -> str:
        """Insert or replace ``descriptor`` by name. Collisions leave the registry untouched."""
        self._check_name_free(descriptor)
        if isinstance(descriptor, EventModule):
            self._events[descriptor.name] = descriptor
            return descriptor.name

        aliases = self._build_alias_index(descriptor)
        self._commands[descriptor.name] = descriptor
        self._aliases = aliases
        return descriptor.name

    def unload(self, name: str, kind: Literal["command", "event"] = "command") -> bool:
        key = name.casefold()
        if kind == "event":
            return self._events.pop(key, None) is not None
        if key not in self._commands:
            return False
        del self._commands[key]
        self._aliases = {a: n for a, n in self._aliases.items() if n != key}
        return True

    def resolve(self, token: str) -> CommandModule | None:
        key = token.casefold()
        found = self._commands.get(key)
        if found is not None:
            return found
        name = self._aliases.get(key)
        return self._commands.get(name) if name is not None else None

    def get_event(self, name: str) -> EventModule | None:
        return self._events.get(name.casefold())

    def list(self, predicate: Callable[[CommandModule], bool] | None = None) -> list[CommandModule]:
        items = sorted(self._commands.values(), key=lambda c: c.name)
        if predicate is None:
            return items
        return [c for c in items if predicate(c)]

    def events(self) -> list[EventModule]:
        return sorted(self._events.values(), key=lambda e: e.name)

    def with_handler(self, slot: str) -> list[CommandModule]:
        return [c for c in self.list() if getattr(c, slot) is not None]

    def clear(self, kind: Literal["command", "event"] = "command") -> int:
        if kind == "event":
            size = len(self._events)
            self._events.clear()
            return size
        size = len(self._commands)
        self._commands.clear()
        self._aliases.clear()
        return size

    @property
    def command_count(self) -> int:
        return len(self._commands)

    @property
    def event_count(self) -> int:
        return len(self._events)

    def _check_name_free(self, descriptor: ModuleDescriptor) -> None:
        # commands and events share one namespace
        if isinstance(descriptor, EventModule):
            clash = descriptor.name if descriptor.name in self._commands or descriptor.name in self._aliases else None
        else:
            clash = next((t for t in descriptor.tokens if t in self._events), None)
        if clash is not None:
            raise ModuleValidationError(
                f"'{clash}' is already used by a module of the other kind",
                source=str(descriptor.source) if descriptor.source else None,
            )

    def _build_alias_index(self, descriptor: CommandModule) -> dict[str, str]:
        others: Iterable[CommandModule] = (c for c in self._commands.values() if c.name != descriptor.name)
        aliases: dict[str, str] = {}
        names = {descriptor.name}
        for other in others:
            names.add(other.name)
            for alias in other.aliases:
                aliases[alias] = other.name

        if descriptor.name in aliases:
            raise ModuleValidationError(
                f"name '{descriptor.name}' is already an alias of '{aliases[descriptor.name]}'",
                source=str(descriptor.source) if descriptor.source else None,
            )
        for alias in descriptor.aliases:
            if alias in names:
                raise ModuleValidationError(
                    f"alias '{alias}' collides with a command name",
                    source=str(descriptor.source) if descriptor.source else None,
                )
            owner = aliases.get(alias)
            if owner is not None:
                raise ModuleValidationError(
                    f"alias '{alias}' is already used by '{owner}'",
                    source=str(descriptor.source) if descriptor.source else None,
                )
            aliases[alias] = descriptor.name
        return aliases
