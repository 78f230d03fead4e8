from __future__ import annotations

from dataclasses import dataclass, field

from modbot.core.module_registry import ModuleRegistry
from modbot.services.rate_limiter import CooldownTracker
from modbot.services.sessions import SessionStore
from modbot.services.settings_service import SettingsService


@dataclass
class RuntimeState:
    """Everything the pipelines share across updates and bot connections."""

    settings: SettingsService
    registry: ModuleRegistry = field(default_factory=ModuleRegistry)
    cooldowns: CooldownTracker = field(default_factory=CooldownTracker)
    callbacks: SessionStore = field(default_factory=lambda: SessionStore(ttl_seconds=3600, capacity=5000))
    replies: SessionStore = field(default_factory=lambda: SessionStore(ttl_seconds=1800, capacity=5000))
