from __future__ import annotations

import asyncio
import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path

import aiohttp

from modbot.core.errors import ModuleInstallError, ModuleValidationError
from modbot.core.logging import get_logger
from modbot.core.module_loader import LoadReport, ModuleKind, ModuleLoader
from modbot.core.module_registry import ModuleRegistry

logger = get_logger(__name__)

MAX_MODULE_BYTES = 1024 * 1024


@dataclass
class ModuleAdminService:
    """Runtime install/reload/unload/delete of plugin files."""

    registry: ModuleRegistry
    loader: ModuleLoader
    fetch_timeout: float = 15.0

    async def fetch(self, url: str) -> str:
        try:
            async with aiohttp.ClientSession() as s:
                async with s.get(url, timeout=aiohttp.ClientTimeout(total=self.fetch_timeout)) as r:
                    if r.status != 200:
                        raise ModuleInstallError(f"HTTP {r.status}")
                    content = await r.read()
        except aiohttp.ClientError as e:
            raise ModuleInstallError(f"download failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise ModuleInstallError("download timed out") from e

        if len(content) > MAX_MODULE_BYTES:
            raise ModuleInstallError("file is larger than 1MB")
        text = content.decode("utf-8", errors="replace")
        if text.lstrip().startswith(("<!DOCTYPE", "<html")):
            raise ModuleInstallError("got an HTML page instead of Python source")
        return text

    async def install(self, filename: str, url: str, kind: ModuleKind = "command") -> str:
        if not filename.endswith(".py"):
            raise ModuleInstallError("filename must end with .py")
        if "/" in filename or "\\" in filename or filename.startswith((".", "_")):
            raise ModuleInstallError("filename must be a plain file name")

        source = await self.fetch(url)
        return self.install_source(filename, source, kind)

    def install_source(self, filename: str, source: str, kind: ModuleKind = "command") -> str:
        """Validate ``source`` in a hidden staging file, then move it into place and deploy."""
        root = self.loader.directory(kind)
        root.mkdir(parents=True, exist_ok=True)
        final = root / filename
        staged = root / f".{final.stem}.installing.py"

        staged.write_text(source, encoding="utf-8")
        try:
            descriptor = self.loader.load(staged, kind)
            descriptor = dataclasses.replace(descriptor, source=final)
            self.registry.load(descriptor)
        except ModuleValidationError as e:
            staged.unlink(missing_ok=True)
            logger.warning("module_install_rejected", file=filename, error=e.message)
            raise ModuleInstallError(e.message) from e

        os.replace(staged, final)
        logger.info("module_installed", kind=kind, module=descriptor.name, file=filename)
        return descriptor.name

    def reload(self, name: str, kind: ModuleKind = "command") -> str:
        path = self.loader.find_file(name, kind, self.registry)
        if path is None:
            raise ModuleInstallError(f"could not locate file for '{name}'")
        try:
            return self.loader.load_into(self.registry, path, kind)
        except ModuleValidationError as e:
            raise ModuleInstallError(e.message) from e

    def unload(self, name: str, kind: ModuleKind = "command") -> bool:
        key = self._registered_name(name, kind)
        if key is None:
            return False
        self.registry.unload(key, kind)
        logger.info("module_unloaded", kind=kind, module=key)
        return True

    def delete(self, name: str, kind: ModuleKind = "command") -> Path:
        path = self.loader.find_file(name, kind, self.registry)
        if path is None:
            raise ModuleInstallError(f"file not found for '{name}'")
        owner = self._loaded_from(path, kind)
        if owner is not None:
            self.registry.unload(owner, kind)
        path.unlink()
        logger.info("module_deleted", kind=kind, file=path.name)
        return path

    def reload_all(self, kind: ModuleKind = "command") -> LoadReport:
        self.registry.clear(kind)
        return self.loader.load_all(self.registry, kind)

    def unload_all(self, kind: ModuleKind = "command") -> int:
        size = self.registry.clear(kind)
        logger.info("modules_unloaded", kind=kind, count=size)
        return size

    def _loaded_from(self, path: Path, kind: ModuleKind) -> str | None:
        descriptors = self.registry.events() if kind == "event" else self.registry.list()
        target = path.resolve()
        for descriptor in descriptors:
            if descriptor.source is not None and descriptor.source.resolve() == target:
                return descriptor.name
        return None

    def _registered_name(self, name: str, kind: ModuleKind) -> str | None:
        if kind == "event":
            event = self.registry.get_event(name)
            return event.name if event else None
        module = self.registry.resolve(name)
        return module.name if module else None
