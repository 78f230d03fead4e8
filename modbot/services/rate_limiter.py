from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True, slots=True)
class CooldownResult:
    on_cooldown: bool
    remaining: float = 0.0


class CooldownTracker:
    """Per (actor, command) cooldowns.

    Entries hold an expiry timestamp and are evicted lazily on read, plus a bulk
    sweep once the map grows past ``sweep_threshold``. ``check`` never suspends,
    so a check and its record cannot be interleaved by another coroutine.
    Developer exemption is the caller's business.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time, sweep_threshold: int = 1024) -> None:
        self._clock = clock
        self._sweep_threshold = sweep_threshold
        self._expires: dict[tuple[str, str], float] = {}

    def check(self, actor_id: int | str, module_name: str, duration: Optional[float]) -> CooldownResult:
        if not duration or duration <= 0:
            return CooldownResult(on_cooldown=False)

        now = self._clock()
        key = (str(actor_id), module_name)
        expires_at = self._expires.get(key)
        if expires_at is not None and now < expires_at:
            return CooldownResult(on_cooldown=True, remaining=expires_at - now)

        self._expires[key] = now + float(duration)
        if len(self._expires) > self._sweep_threshold:
            self.sweep(now)
        return CooldownResult(on_cooldown=False)

    def reset(self, actor_id: int | str, module_name: str) -> bool:
        return self._expires.pop((str(actor_id), module_name), None) is not None

    def sweep(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        expired = [k for k, exp in self._expires.items() if exp <= now]
        for k in expired:
            del self._expires[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._expires)
