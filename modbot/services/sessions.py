from __future__ import annotations

import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Optional


@dataclass
class Session:
    command: str
    owner_id: Optional[int]
    expires_at: float
    data: dict[str, Any] = field(default_factory=dict)

    def allows(self, user_id: int) -> bool:
        """``owner_id`` of None means any clicker may use the session."""
        return self.owner_id is None or int(self.owner_id) == int(user_id)


class SessionStore:
    """Short-lived interaction state with a TTL and a capacity bound.

    Keys are opaque tokens embedded in button payloads, or any hashable such as
    ``(chat_id, message_id)``. When full, the oldest session is evicted.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float,
        capacity: int,
        clock: Callable[[], float] = time.time,
        token_bytes: int = 6,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.capacity = capacity
        self._clock = clock
        self._token_bytes = token_bytes
        self._items: OrderedDict[Hashable, Session] = OrderedDict()

    def create(
        self,
        command: str,
        *,
        owner_id: Optional[int] = None,
        data: Optional[dict[str, Any]] = None,
        key: Optional[Hashable] = None,
    ) -> Any:
        if key is None:
            # telegram caps callback_data at 64 bytes, keep tokens short
            key = secrets.token_urlsafe(self._token_bytes)
            while key in self._items:
                key = secrets.token_urlsafe(self._token_bytes)
        self._items.pop(key, None)
        self._items[key] = Session(
            command=command,
            owner_id=owner_id,
            expires_at=self._clock() + self.ttl_seconds,
            data=dict(data or {}),
        )
        self._evict_overflow()
        return key

    def get(self, key: Hashable) -> Optional[Session]:
        session = self._items.get(key)
        if session is None:
            return None
        if session.expires_at <= self._clock():
            del self._items[key]
            return None
        return session

    def update(self, key: Hashable, **data: Any) -> bool:
        session = self.get(key)
        if session is None:
            return False
        session.data.update(data)
        return True

    def touch(self, key: Hashable) -> bool:
        session = self.get(key)
        if session is None:
            return False
        session.expires_at = self._clock() + self.ttl_seconds
        self._items.move_to_end(key)
        return True

    def discard(self, key: Hashable) -> Optional[Session]:
        return self._items.pop(key, None)

    def sweep(self) -> int:
        now = self._clock()
        expired = [k for k, s in self._items.items() if s.expires_at <= now]
        for k in expired:
            del self._items[k]
        return len(expired)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._items)

    def _evict_overflow(self) -> None:
        if len(self._items) <= self.capacity:
            return
        self.sweep()
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)
