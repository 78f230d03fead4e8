from __future__ import annotations

import textwrap
from pathlib import Path
from types import SimpleNamespace

import pytest

from modbot.core.errors import ModuleValidationError
from modbot.core.module_loader import ModuleLoader, build_descriptor
from modbot.core.module_registry import AccessLevel, ModuleRegistry, PrefixPolicy

GOOD_COMMAND = """
meta = {
    "name": "Ping",
    "description": "Replies with pong.",
    "aliases": ["p"],
    "type": "VIP",
    "prefix": "both",
    "cooldown": 2,
    "guide": "[count]",
}

async def on_start(ctx):
    await ctx.response.reply("pong")
"""


def _write(root: Path, name: str, body: str) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    path = root / name
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def _loader(tmp_path: Path) -> ModuleLoader:
    return ModuleLoader(tmp_path / "commands", tmp_path / "events")


def test_load_command_file_normalizes_meta(tmp_path: Path) -> None:
    path = _write(tmp_path / "commands", "ping.py", GOOD_COMMAND)

    descriptor = _loader(tmp_path).load(path, "command")

    assert descriptor.name == "ping"
    assert descriptor.aliases == ("p",)
    assert descriptor.access is AccessLevel.VIP
    assert descriptor.prefix is PrefixPolicy.EITHER
    assert descriptor.cooldown == 2
    assert descriptor.guide == ("[count]",)
    assert descriptor.source == path


def test_missing_on_start_is_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "commands", "broken.py", 'meta = {"name": "broken", "description": "x"}\n')

    with pytest.raises(ModuleValidationError) as exc:
        _loader(tmp_path).load(path, "command")
    assert "on_start" in exc.value.message


def test_negative_cooldown_is_rejected() -> None:
    ns = SimpleNamespace(meta={"name": "x", "description": "d", "cooldown": -1}, on_start=lambda ctx: None)

    with pytest.raises(ModuleValidationError):
        build_descriptor(ns, "command")


def test_unknown_access_level_is_rejected() -> None:
    ns = SimpleNamespace(meta={"name": "x", "description": "d", "type": "owner"}, on_start=lambda ctx: None)

    with pytest.raises(ModuleValidationError):
        build_descriptor(ns, "command")


def test_multi_word_name_is_rejected() -> None:
    ns = SimpleNamespace(meta={"name": "two words", "description": "d"}, on_start=lambda ctx: None)

    with pytest.raises(ModuleValidationError):
        build_descriptor(ns, "command")


def test_prefix_false_means_forbidden() -> None:
    ns = SimpleNamespace(meta={"name": "hi", "description": "d", "prefix": False}, on_start=lambda ctx: None)

    assert build_descriptor(ns, "command").prefix is PrefixPolicy.FORBIDDEN


def test_event_requires_on_event() -> None:
    ns = SimpleNamespace(meta={"name": "welcome", "description": "d"}, on_start=lambda ctx: None)

    with pytest.raises(ModuleValidationError):
        build_descriptor(ns, "event")


def test_import_error_becomes_validation_error(tmp_path: Path) -> None:
    path = _write(tmp_path / "commands", "boom.py", "raise RuntimeError('nope')\n")

    with pytest.raises(ModuleValidationError):
        _loader(tmp_path).load(path, "command")


def test_load_all_deploys_valid_and_reports_failures(tmp_path: Path) -> None:
    commands = tmp_path / "commands"
    _write(commands, "ping.py", GOOD_COMMAND)
    _write(commands, "bad.py", 'meta = {"name": "bad"}\n')
    _write(commands, "_helper.py", "raise SystemExit('must not be imported')\n")
    _write(commands / "nested", "echo.py", 'meta = {"name": "echo", "description": "e"}\ndef on_start(ctx):\n    pass\n')
    registry = ModuleRegistry()

    report = _loader(tmp_path).load_all(registry, "command")

    assert sorted(report.loaded) == ["echo", "ping"]
    assert list(report.failed) == ["bad.py"]
    assert registry.resolve("p").name == "ping"


def test_load_all_on_missing_directory_is_empty(tmp_path: Path) -> None:
    registry = ModuleRegistry()

    report = _loader(tmp_path).load_all(registry, "event")

    assert report.loaded == [] and report.failed == {}


def test_reload_picks_up_changed_source(tmp_path: Path) -> None:
    loader = _loader(tmp_path)
    registry = ModuleRegistry()
    path = _write(tmp_path / "commands", "ping.py", GOOD_COMMAND)
    loader.load_into(registry, path, "command")

    path.write_text(GOOD_COMMAND.replace("Replies with pong.", "Changed."), encoding="utf-8")
    loader.load_into(registry, path, "command")

    assert registry.resolve("ping").description == "Changed."


def test_find_file_prefers_registered_source(tmp_path: Path) -> None:
    loader = _loader(tmp_path)
    registry = ModuleRegistry()
    path = _write(tmp_path / "commands", "pinger_impl.py", GOOD_COMMAND)
    loader.load_into(registry, path, "command")

    assert loader.find_file("p", "command", registry) == path
    assert loader.find_file("pinger", "command") == path
    assert loader.find_file("missing", "command") is None
