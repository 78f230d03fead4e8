from __future__ import annotations

import importlib.util
import itertools
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from modbot.core.errors import ModuleValidationError
from modbot.core.logging import get_logger
from modbot.core.module_registry import (
    AccessLevel,
    CommandModule,
    EventModule,
    ModuleDescriptor,
    ModuleRegistry,
    PrefixPolicy,
)

logger = get_logger(__name__)

ModuleKind = Literal["command", "event"]

HANDLER_SLOTS = ("on_start", "on_chat", "on_reply", "on_callback", "on_event")
REQUIRED_HANDLER: dict[str, str] = {"command": "on_start", "event": "on_event"}

_import_counter = itertools.count(1)


class ModuleMeta(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    description: str
    aliases: list[str] = Field(default_factory=list)
    category: str = "general"
    access: AccessLevel = Field(default=AccessLevel.ANYONE, alias="type")
    prefix: Union[bool, str] = True
    cooldown: float = Field(default=0, ge=0)
    guide: Union[str, list[str]] = Field(default_factory=list)
    version: str = "1.0.0"
    author: str = ""

    @field_validator("name")
    @classmethod
    def _name_is_token(cls, v: str) -> str:
        v = v.strip().casefold()
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("name must be a single word")
        return v

    @field_validator("aliases")
    @classmethod
    def _aliases_are_tokens(cls, v: list[str]) -> list[str]:
        out: list[str] = []
        for alias in v:
            alias = alias.strip().casefold()
            if not alias or any(ch.isspace() for ch in alias):
                raise ValueError("aliases must be single words")
            if alias not in out:
                out.append(alias)
        return out

    @field_validator("access", mode="before")
    @classmethod
    def _access_lower(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("prefix")
    @classmethod
    def _prefix_policy(cls, v: Union[bool, str]) -> Union[bool, str]:
        if isinstance(v, bool):
            return v
        if v.lower() not in ("both", "either", "required", "forbidden"):
            raise ValueError("prefix must be true, false or 'both'")
        return v.lower()

    def prefix_policy(self) -> PrefixPolicy:
        if self.prefix is True or self.prefix == "required":
            return PrefixPolicy.REQUIRED
        if self.prefix is False or self.prefix == "forbidden":
            return PrefixPolicy.FORBIDDEN
        return PrefixPolicy.EITHER

    def guide_lines(self) -> tuple[str, ...]:
        if isinstance(self.guide, str):
            return (self.guide,) if self.guide else ()
        return tuple(self.guide)


class EventMeta(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    description: str
    version: str = "1.0.0"
    author: str = ""

    @field_validator("name")
    @classmethod
    def _name_lower(cls, v: str) -> str:
        return v.strip().casefold()


@dataclass
class LoadReport:
    loaded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def _import_file(path: Path) -> ModuleType:
    # a fresh module name per import so a reload never sees the cached old code
    module_name = f"modbot_plugin_{path.stem}_{next(_import_counter)}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ModuleValidationError(f"cannot import {path.name}", source=str(path))
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def build_descriptor(namespace: Any, kind: ModuleKind, source: Optional[Path] = None) -> ModuleDescriptor:
    """Validate a plugin namespace (``meta`` dict + handler functions) into a descriptor."""
    where = source.name if source else "<memory>"
    raw_meta = getattr(namespace, "meta", None)
    if not isinstance(raw_meta, dict):
        raise ModuleValidationError(f"{where}: missing 'meta' dict", source=str(source) if source else None)

    handlers = {slot: getattr(namespace, slot, None) for slot in HANDLER_SLOTS}
    for slot, fn in handlers.items():
        if fn is not None and not callable(fn):
            raise ModuleValidationError(f"{where}: '{slot}' is not callable", source=str(source) if source else None)
    required = REQUIRED_HANDLER[kind]
    if handlers[required] is None:
        raise ModuleValidationError(f"{where}: invalid or missing '{required}'", source=str(source) if source else None)

    try:
        if kind == "event":
            emeta = EventMeta.model_validate(raw_meta)
            return EventModule(
                name=emeta.name,
                description=emeta.description,
                on_event=handlers["on_event"],
                version=emeta.version,
                author=emeta.author,
                source=source,
            )
        cmeta = ModuleMeta.model_validate(raw_meta)
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ())) or "meta"
        raise ModuleValidationError(
            f"{where}: invalid '{loc}': {first.get('msg')}", source=str(source) if source else None
        ) from e

    return CommandModule(
        name=cmeta.name,
        description=cmeta.description,
        on_start=handlers["on_start"],
        aliases=tuple(a for a in cmeta.aliases if a != cmeta.name),
        category=cmeta.category,
        access=cmeta.access,
        prefix=cmeta.prefix_policy(),
        cooldown=cmeta.cooldown,
        guide=cmeta.guide_lines(),
        version=cmeta.version,
        author=cmeta.author,
        on_chat=handlers["on_chat"],
        on_reply=handlers["on_reply"],
        on_callback=handlers["on_callback"],
        source=source,
    )


class ModuleLoader:
    """Scans plugin directories and turns files into registry descriptors."""

    excluded_dirs = {"__pycache__", ".git", ".venv"}

    def __init__(self, commands_dir: Path, events_dir: Path) -> None:
        self.dirs: dict[str, Path] = {"command": Path(commands_dir), "event": Path(events_dir)}

    def directory(self, kind: ModuleKind) -> Path:
        return self.dirs[kind]

    def discover(self, kind: ModuleKind) -> list[Path]:
        root = self.dirs[kind]
        if not root.is_dir():
            return []
        files: list[Path] = []
        for path in sorted(root.rglob("*.py")):
            rel = path.relative_to(root)
            if any(part in self.excluded_dirs or part.startswith(".") for part in rel.parts):
                continue
            if path.name.startswith("_"):
                continue
            files.append(path)
        return files

    def load(self, path: Path, kind: ModuleKind) -> ModuleDescriptor:
        try:
            module = _import_file(path)
        except ModuleValidationError:
            raise
        except Exception as e:
            raise ModuleValidationError(f"error importing {path.name}: {e}", source=str(path)) from e
        return build_descriptor(module, kind, source=path)

    def load_into(self, registry: ModuleRegistry, path: Path, kind: ModuleKind) -> str:
        descriptor = self.load(path, kind)
        name = registry.load(descriptor)
        logger.info("module_deployed", kind=kind, module=name, file=path.name)
        return name

    def load_all(self, registry: ModuleRegistry, kind: ModuleKind) -> LoadReport:
        report = LoadReport()
        files = self.discover(kind)
        if not files:
            logger.warning("module_dir_empty", kind=kind, path=str(self.dirs[kind]))
            return report

        # scan everything first, deploy only what validated
        valid: list[ModuleDescriptor] = []
        for path in files:
            try:
                valid.append(self.load(path, kind))
                logger.debug("module_scanned", kind=kind, file=path.name)
            except ModuleValidationError as e:
                report.failed[path.name] = e.message
                logger.error("module_scan_failed", kind=kind, file=path.name, error=e.message)

        for descriptor in valid:
            try:
                registry.load(descriptor)
            except ModuleValidationError as e:
                name = descriptor.source.name if descriptor.source else descriptor.name
                report.failed[name] = e.message
                logger.error("module_deploy_failed", kind=kind, module=descriptor.name, error=e.message)
                continue
            report.loaded.append(descriptor.name)

        logger.info("modules_loaded", kind=kind, loaded=len(report.loaded), failed=len(report.failed))
        return report

    def find_file(self, name: str, kind: ModuleKind, registry: ModuleRegistry | None = None) -> Path | None:
        key = name.casefold()
        if registry is not None:
            descriptor = registry.resolve(key) if kind == "command" else registry.get_event(key)
            if descriptor is not None and descriptor.source is not None and descriptor.source.exists():
                return descriptor.source

        files = self.discover(kind)
        for path in files:
            if path.stem.casefold() == key:
                return path
        for path in files:
            if key in path.stem.casefold():
                return path
        return None
