from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import orjson
from pydantic import BaseModel, Field, ValidationError, field_validator

from modbot.core.logging import get_logger

logger = get_logger(__name__)


class RuntimeSettings(BaseModel):
    maintenance: bool = False
    maintenance_bypass: list[str] = Field(default_factory=list)
    prefix: str = Field(default="/", min_length=1)
    secondary_prefixes: list[str] = Field(default_factory=lambda: ["+", "-", "."])
    developers: list[str] = Field(default_factory=list)
    vip: list[str] = Field(default_factory=list)

    @field_validator("developers", "vip", mode="before")
    @classmethod
    def _ids_as_str(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return [str(x).strip() for x in v if str(x).strip()]
        return v

    @field_validator("maintenance_bypass", mode="before")
    @classmethod
    def _bypass_lower(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return [str(x).strip().casefold() for x in v if str(x).strip()]
        return v

    @field_validator("secondary_prefixes")
    @classmethod
    def _no_empty_prefix(cls, v: list[str]) -> list[str]:
        return [p for p in v if p]

    def all_prefixes(self) -> list[str]:
        out = [self.prefix]
        for p in self.secondary_prefixes:
            if p not in out:
                out.append(p)
        return out


def overlapping_prefixes(prefixes: list[str]) -> list[tuple[str, str]]:
    """Pairs (a, b) where a is a substring of b; first-match order decides between them."""
    pairs: list[tuple[str, str]] = []
    for i, a in enumerate(prefixes):
        for b in prefixes[i + 1 :]:
            if a != b and (a in b or b in a):
                pairs.append((a, b))
    return pairs


class SettingsService:
    """Process-wide mutable settings. Reads hit memory; writes merge and persist to disk."""

    def __init__(self, path: Optional[Path] = None, *, initial: Optional[RuntimeSettings] = None) -> None:
        self.path = Path(path) if path is not None else None
        self._current = initial or RuntimeSettings()

    @property
    def current(self) -> RuntimeSettings:
        return self._current

    def load(self) -> RuntimeSettings:
        if self.path is None:
            return self._current
        if not self.path.exists():
            self._write(self.path, self._current)
            logger.info("runtime_settings_created", path=str(self.path))
        else:
            try:
                raw = orjson.loads(self.path.read_bytes())
                self._current = RuntimeSettings.model_validate(raw)
            except (orjson.JSONDecodeError, ValidationError) as e:
                raise RuntimeError(f"Failed to load settings from {self.path}: {e}") from e
        self._warn_overlaps()
        return self._current

    def update(self, **changes: Any) -> RuntimeSettings:
        merged = self._current.model_dump()
        merged.update(changes)
        updated = RuntimeSettings.model_validate(merged)
        if self.path is not None:
            self._write(self.path, updated)
        self._current = updated
        if "prefix" in changes or "secondary_prefixes" in changes:
            self._warn_overlaps()
        logger.info("runtime_settings_updated", keys=sorted(changes))
        return updated

    def is_developer(self, user_id: int | str) -> bool:
        return str(user_id) in self._current.developers

    def is_vip(self, user_id: int | str) -> bool:
        return self.is_developer(user_id) or str(user_id) in self._current.vip

    @staticmethod
    def _write(path: Path, settings: RuntimeSettings) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_bytes(orjson.dumps(settings.model_dump(), option=orjson.OPT_INDENT_2))
        os.replace(tmp, path)

    def _warn_overlaps(self) -> None:
        for a, b in overlapping_prefixes(self._current.all_prefixes()):
            logger.warning("prefix_overlap", first=a, second=b, note="earlier prefix in config order wins")
