from __future__ import annotations

import pytest

from fakes import command
from modbot.core.errors import ModuleValidationError
from modbot.core.module_registry import EventModule, ModuleRegistry


async def _noop(ctx: object) -> None:
    return None


def test_resolve_by_name_and_alias_returns_same_descriptor() -> None:
    registry = ModuleRegistry()
    foo = command("foo", aliases=("bar", "baz"))
    registry.load(foo)

    assert registry.resolve("foo") is foo
    assert registry.resolve("bar") is foo
    assert registry.resolve("BAZ") is foo
    assert registry.resolve("qux") is None


def test_reload_replaces_descriptor_and_alias_index() -> None:
    registry = ModuleRegistry()
    registry.load(command("foo", aliases=("bar",)))
    replacement = command("foo", aliases=("zed",))
    registry.load(replacement)

    assert registry.command_count == 1
    assert registry.resolve("foo") is replacement
    assert registry.resolve("zed") is replacement
    assert registry.resolve("bar") is None


def test_alias_colliding_with_other_module_name_is_rejected() -> None:
    registry = ModuleRegistry()
    first = command("foo")
    registry.load(first)

    with pytest.raises(ModuleValidationError):
        registry.load(command("other", aliases=("foo",)))
    assert registry.resolve("other") is None
    assert registry.resolve("foo") is first


def test_alias_already_owned_is_rejected() -> None:
    registry = ModuleRegistry()
    registry.load(command("foo", aliases=("f",)))

    with pytest.raises(ModuleValidationError):
        registry.load(command("fan", aliases=("f",)))
    assert registry.resolve("f").name == "foo"


def test_name_that_is_another_modules_alias_is_rejected() -> None:
    registry = ModuleRegistry()
    registry.load(command("foo", aliases=("bar",)))

    with pytest.raises(ModuleValidationError):
        registry.load(command("bar"))


def test_unload_drops_aliases() -> None:
    registry = ModuleRegistry()
    registry.load(command("foo", aliases=("bar",)))

    assert registry.unload("FOO") is True
    assert registry.resolve("bar") is None
    assert registry.unload("foo") is False


def test_list_is_sorted_and_filterable() -> None:
    registry = ModuleRegistry()
    for name in ("zeta", "alpha", "mid"):
        registry.load(command(name, category="utility" if name != "mid" else "system"))

    assert [c.name for c in registry.list()] == ["alpha", "mid", "zeta"]
    assert [c.name for c in registry.list(lambda c: c.category == "utility")] == ["alpha", "zeta"]


def test_events_are_stored_apart_from_commands() -> None:
    registry = ModuleRegistry()
    registry.load(EventModule(name="welcome", description="hi", on_event=_noop))
    registry.load(command("greet"))

    assert registry.event_count == 1
    assert registry.command_count == 1
    assert registry.get_event("welcome").kind == "event"
    assert registry.resolve("welcome") is None
    assert registry.clear("event") == 1
    assert registry.resolve("greet") is not None


def test_names_are_unique_across_commands_and_events() -> None:
    registry = ModuleRegistry()
    registry.load(EventModule(name="welcome", description="hi", on_event=_noop))
    registry.load(command("hello", aliases=("hi",)))

    with pytest.raises(ModuleValidationError):
        registry.load(command("welcome"))
    with pytest.raises(ModuleValidationError):
        registry.load(command("greet", aliases=("welcome",)))
    with pytest.raises(ModuleValidationError):
        registry.load(EventModule(name="hi", description="x", on_event=_noop))

    assert registry.command_count == 1
    assert registry.event_count == 1


def test_unload_only_touches_the_requested_kind() -> None:
    registry = ModuleRegistry()
    registry.load(EventModule(name="welcome", description="hi", on_event=_noop))
    registry.load(command("ping"))

    assert registry.unload("welcome") is False
    assert registry.unload("ping", "event") is False
    assert registry.get_event("welcome") is not None
    assert registry.resolve("ping") is not None

    assert registry.unload("WELCOME", "event") is True
    assert registry.get_event("welcome") is None
    assert registry.resolve("ping") is not None


def test_with_handler_lists_only_modules_with_that_slot() -> None:
    registry = ModuleRegistry()
    registry.load(command("plain"))
    registry.load(command("chatty", on_chat=_noop))

    assert [c.name for c in registry.with_handler("on_chat")] == ["chatty"]
