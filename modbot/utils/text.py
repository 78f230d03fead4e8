from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

_ws_re = re.compile(r"\s+", flags=re.UNICODE)
_bold_re = re.compile(r"\*\*(.*?)\*\*", flags=re.DOTALL)


@dataclass(frozen=True)
class ParsedInput:
    body: str
    prefix: Optional[str]
    command: str
    args: list[str] = field(default_factory=list)

    @property
    def is_prefixed(self) -> bool:
        return self.prefix is not None

    @property
    def is_bare_prefix(self) -> bool:
        return self.prefix is not None and self.body == self.prefix


def split_args(text: Optional[str]) -> list[str]:
    s = (text or "").strip()
    return _ws_re.split(s) if s else []


def match_prefix(body: str, prefixes: Sequence[str]) -> Optional[str]:
    """First configured prefix the body starts with; configuration order, not length, wins."""
    for p in prefixes:
        if p and body.startswith(p):
            return p
    return None


def parse_input(text: str, prefixes: Sequence[str]) -> ParsedInput:
    """
    Splits a message into prefix / command / args:
    - trims the body
    - strips the first matching prefix
    - case-folds the command token and drops a trailing @botname on prefixed input
    """
    body = (text or "").strip()
    prefix = match_prefix(body, prefixes)
    rest = body[len(prefix):] if prefix is not None else body
    parts = split_args(rest)
    if not parts:
        return ParsedInput(body=body, prefix=prefix, command="", args=[])
    command = parts[0].casefold()
    if prefix is not None and "@" in command:
        command = command.split("@", 1)[0]
    return ParsedInput(body=body, prefix=prefix, command=command, args=parts[1:])


def markdown_bold(text: str) -> str:
    """``**bold**`` as written by modules, rendered as Telegram legacy Markdown ``*bold*``."""
    return _bold_re.sub(r"*\1*", text)

