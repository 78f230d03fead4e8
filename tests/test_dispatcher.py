from __future__ import annotations

import asyncio
import dataclasses
from typing import Any

import pytest

from fakes import (
    DEV_ID,
    FakeClock,
    FakeResponder,
    FakeTransport,
    FakeUsers,
    command,
    make_rbac,
    make_state,
    message,
)
from modbot.core.module_registry import AccessLevel, EventModule, PrefixPolicy
from modbot.services.dispatcher import CommandDispatcher, DispatchOutcome, format_usage


class Recorder:
    def __init__(self, result: Any = None) -> None:
        self.calls: list[Any] = []
        self.result = result

    async def __call__(self, ctx: Any) -> Any:
        self.calls.append(ctx)
        return self.result


def _setup(clock: FakeClock | None = None, users: Any = None, **settings: Any):
    state = make_state(clock, **settings)
    dispatcher = CommandDispatcher(state=state, rbac=make_rbac(state), users=users)
    return state, dispatcher


def _run(dispatcher: CommandDispatcher, msg, transport: FakeTransport | None = None):
    response = FakeResponder()
    outcome = asyncio.run(
        dispatcher.handle_message(msg, response, bot=None, transport=transport or FakeTransport())
    )
    return outcome, response


def test_vip_command_denied_for_regular_user_in_private() -> None:
    state, dispatcher = _setup()
    handler = Recorder()
    state.registry.load(command("perk", handler, access=AccessLevel.VIP))

    outcome, response = _run(dispatcher, message("/perk", user_id=1))

    assert outcome is DispatchOutcome.DENIED
    assert handler.calls == []
    assert response.texts == ["⚠️ Access Restricted: VIP"]


def test_alias_with_prefix_runs_primary_handler() -> None:
    state, dispatcher = _setup()
    handler = Recorder()
    state.registry.load(command("foo", handler, aliases=("bar",)))

    outcome, _ = _run(dispatcher, message("/bar one two"))

    assert outcome is DispatchOutcome.EXECUTED
    ctx = handler.calls[0]
    assert ctx.module.name == "foo"
    assert ctx.args == ["one", "two"]
    assert ctx.prefix == "/"


def test_cooldown_scenario_through_pipeline() -> None:
    clock = FakeClock()
    state, dispatcher = _setup(clock)
    handler = Recorder()
    state.registry.load(command("slow", handler, cooldown=5))

    assert _run(dispatcher, message("/slow"))[0] is DispatchOutcome.EXECUTED

    clock.now = 2
    outcome, response = _run(dispatcher, message("/slow"))
    assert outcome is DispatchOutcome.COOLDOWN
    assert response.texts == ["⏳ Wait **3.0s** before using this again."]

    clock.now = 6
    assert _run(dispatcher, message("/slow"))[0] is DispatchOutcome.EXECUTED
    assert len(handler.calls) == 2


def test_developers_skip_cooldowns() -> None:
    state, dispatcher = _setup()
    handler = Recorder()
    state.registry.load(command("slow", handler, cooldown=60))

    for _ in range(3):
        assert _run(dispatcher, message("/slow", user_id=DEV_ID))[0] is DispatchOutcome.EXECUTED
    assert len(handler.calls) == 3


def test_plain_chat_text_is_ignored_silently() -> None:
    _, dispatcher = _setup()

    outcome, response = _run(dispatcher, message("hello there"))

    assert outcome is DispatchOutcome.NOT_A_COMMAND
    assert response.outbound_count == 0


def test_maintenance_blocks_regular_users() -> None:
    state, dispatcher = _setup(maintenance=True)
    handler = Recorder()
    state.registry.load(command("foo", handler))

    outcome, response = _run(dispatcher, message("/foo"))

    assert outcome is DispatchOutcome.MAINTENANCE
    assert handler.calls == []
    assert "Maintenance Mode" in response.texts[0]


def test_maintenance_lets_developers_and_bypass_through() -> None:
    state, dispatcher = _setup(maintenance=True, maintenance_bypass=["bar"])
    handler = Recorder()
    state.registry.load(command("foo", handler, aliases=("bar",)))
    state.registry.load(command("other", Recorder()))

    assert _run(dispatcher, message("/foo"))[0] is DispatchOutcome.EXECUTED
    assert _run(dispatcher, message("/other"))[0] is DispatchOutcome.MAINTENANCE
    assert _run(dispatcher, message("/other", user_id=DEV_ID))[0] is DispatchOutcome.EXECUTED


def test_unknown_commands_resolve_before_maintenance() -> None:
    _, dispatcher = _setup(maintenance=True)

    outcome, response = _run(dispatcher, message("/nope"))

    assert outcome is DispatchOutcome.UNKNOWN
    assert "not found" in response.texts[0]


@pytest.mark.parametrize("text, shown", [("/", "/help"), ("+", "+help"), ("  .  ", ".help")])
def test_bare_prefix_reports_online(text: str, shown: str) -> None:
    _, dispatcher = _setup()

    outcome, response = _run(dispatcher, message(text))

    assert outcome is DispatchOutcome.ONLINE
    assert f"`{shown}`" in response.texts[0]


def test_unknown_prefixed_command() -> None:
    _, dispatcher = _setup()

    outcome, response = _run(dispatcher, message("/nope arg"))

    assert outcome is DispatchOutcome.UNKNOWN
    assert response.texts == ["❓ **Unknown Command**\n`nope` not found."]


def test_reserved_start_token_is_silent() -> None:
    _, dispatcher = _setup()

    outcome, response = _run(dispatcher, message("/start"))

    assert outcome is DispatchOutcome.IGNORED
    assert response.outbound_count == 0


def test_developer_commands_stay_silent_for_others() -> None:
    state, dispatcher = _setup()
    state.registry.load(command("secret", Recorder(), access=AccessLevel.DEVELOPER))

    outcome, response = _run(dispatcher, message("/secret", chat_type="group"))

    assert outcome is DispatchOutcome.DENIED_SILENT
    assert response.outbound_count == 0


def test_administrator_command_in_group() -> None:
    state, dispatcher = _setup()
    handler = Recorder()
    state.registry.load(command("ban", handler, access=AccessLevel.ADMINISTRATOR))
    transport = FakeTransport({(-100, 5): "administrator"})

    assert _run(dispatcher, message("/ban", user_id=5, chat_type="group"), transport)[0] is DispatchOutcome.EXECUTED
    outcome, response = _run(dispatcher, message("/ban", user_id=6, chat_type="group"), transport)
    assert outcome is DispatchOutcome.DENIED
    assert response.texts == ["⚠️ Access Restricted: ADMINISTRATOR"]


def test_handler_exception_becomes_system_error_reply() -> None:
    state, dispatcher = _setup()

    async def explode(ctx: Any) -> None:
        raise ValueError("boom")

    state.registry.load(command("bad", explode))

    outcome, response = _run(dispatcher, message("/bad"))

    assert outcome is DispatchOutcome.FAILED
    assert "System Error" in response.texts[0]


def test_sync_handlers_are_supported() -> None:
    state, dispatcher = _setup()
    seen: list[str] = []
    state.registry.load(command("sync", lambda ctx: seen.append(ctx.command_name)))

    assert _run(dispatcher, message("/sync"))[0] is DispatchOutcome.EXECUTED
    assert seen == ["sync"]


def test_prefix_policies() -> None:
    state, dispatcher = _setup()
    bare = Recorder()
    strict = Recorder()
    state.registry.load(command("hi", bare, prefix=PrefixPolicy.FORBIDDEN))
    state.registry.load(command("foo", strict, prefix=PrefixPolicy.REQUIRED))

    assert _run(dispatcher, message("hi there"))[0] is DispatchOutcome.EXECUTED
    assert _run(dispatcher, message("/hi"))[0] is DispatchOutcome.PREFIX_MISMATCH
    outcome, response = _run(dispatcher, message("foo"))
    assert outcome is DispatchOutcome.PREFIX_MISMATCH
    assert response.outbound_count == 0
    assert len(bare.calls) == 1 and strict.calls == []


def test_either_policy_accepts_both_forms() -> None:
    state, dispatcher = _setup()
    handler = Recorder()
    state.registry.load(command("ping", handler, prefix=PrefixPolicy.EITHER))

    assert _run(dispatcher, message("ping"))[0] is DispatchOutcome.EXECUTED
    assert _run(dispatcher, message("-ping"))[0] is DispatchOutcome.EXECUTED
    assert handler.calls[0].prefix == ""
    assert handler.calls[1].prefix == "-"


def test_first_configured_prefix_wins_over_longer_match() -> None:
    state, dispatcher = _setup(prefix="!", secondary_prefixes=["!!"])
    state.registry.load(command("ping", Recorder()))

    outcome, response = _run(dispatcher, message("!!ping"))

    assert outcome is DispatchOutcome.UNKNOWN
    assert "`!ping` not found" in response.texts[0]


def test_bot_mention_suffix_is_dropped() -> None:
    state, dispatcher = _setup()
    handler = Recorder()
    state.registry.load(command("foo", handler))

    assert _run(dispatcher, message("/FOO@SomeBot x"))[0] is DispatchOutcome.EXECUTED
    assert handler.calls[0].args == ["x"]


def test_bot_senders_only_reach_events() -> None:
    state, dispatcher = _setup()
    handler = Recorder()
    chat = Recorder()
    event = Recorder()
    state.registry.load(command("foo", handler, on_chat=chat))
    state.registry.load(EventModule(name="watch", description="w", on_event=event))

    outcome, response = _run(dispatcher, message("/foo", is_bot=True))

    assert outcome is DispatchOutcome.IGNORED
    assert handler.calls == [] and chat.calls == []
    assert len(event.calls) == 1
    assert response.outbound_count == 0


def test_chat_scan_stops_when_a_handler_returns_false() -> None:
    state, dispatcher = _setup()
    first = Recorder(result=False)
    second = Recorder()
    state.registry.load(command("aaa", on_chat=first))
    state.registry.load(command("bbb", on_chat=second))

    _run(dispatcher, message("anything at all"))

    assert len(first.calls) == 1
    assert first.calls[0].args == ["anything", "at", "all"]
    assert second.calls == []


def test_failing_event_does_not_stop_other_events() -> None:
    state, dispatcher = _setup()

    async def broken(ctx: Any) -> None:
        raise RuntimeError("nope")

    ok = Recorder()
    state.registry.load(EventModule(name="a_broken", description="x", on_event=broken))
    state.registry.load(EventModule(name="b_ok", description="x", on_event=ok))

    outcome, response = _run(dispatcher, message("hi"))

    assert len(ok.calls) == 1
    assert ok.calls[0].chat_id == 1
    assert response.outbound_count == 0


def test_reply_routing_round_trip() -> None:
    state, dispatcher = _setup()
    answers = Recorder()

    async def ask(ctx: Any) -> None:
        sent = await ctx.response.reply("What is 6 x 7?")
        ctx.expect_reply(sent, answer="42")

    state.registry.load(command("quiz", ask, on_reply=answers))

    _, first = _run(dispatcher, message("/quiz"))
    question = first.replies[0]
    reply_to = message("What is 6 x 7?", user_id=1, message_id=question.message_id)
    _run(dispatcher, message("42", reply_to=reply_to))

    assert len(answers.calls) == 1
    ctx = answers.calls[0]
    assert ctx.data == {"answer": "42"}
    assert ctx.owner_id == 1
    assert ctx.args == ["42"]


def test_reply_to_unknown_message_is_ignored() -> None:
    _, dispatcher = _setup()

    _, response = _run(dispatcher, message("hey", reply_to=message("old", message_id=3)))

    assert response.outbound_count == 0


def test_reply_session_for_missing_or_replyless_module() -> None:
    state, dispatcher = _setup()
    state.registry.load(command("plain"))
    state.replies.create("plain", owner_id=1, key=(1, 70))
    state.replies.create("gone", owner_id=1, key=(1, 71))

    _, response = _run(dispatcher, message("x", reply_to=message("q", message_id=70)))
    assert response.texts == ["Command **plain** doesn't support replies"]

    _, response = _run(dispatcher, message("x", reply_to=message("q", message_id=71)))
    assert response.texts == ["Cannot find command: `gone`"]


def test_registration_gate_helper() -> None:
    state, dispatcher = _setup(users=FakeUsers(registered={2}))
    results: list[bool] = []

    async def gated(ctx: Any) -> None:
        results.append(await ctx.is_registered())

    state.registry.load(command("bank", gated))

    _, response = _run(dispatcher, message("/bank", user_id=1))
    _run(dispatcher, message("/bank", user_id=2))

    assert results == [False, True]
    assert "Registration Required" in response.texts[0]
    assert "`/register`" in response.texts[0]


def test_usage_helper_renders_guide() -> None:
    state, dispatcher = _setup()

    async def show(ctx: Any) -> None:
        await ctx.usage()

    state.registry.load(command("cmd", show, guide=("install <file>", "loadall")))

    _, response = _run(dispatcher, message("+cmd"))

    assert "`+cmd install <file>`" in response.texts[0]
    assert "`+cmd loadall`" in response.texts[0]


def test_format_usage_without_guide_is_none() -> None:
    assert format_usage(command("x"), "/") is None
    assert "`x go`" in format_usage(command("x", guide=("go",), prefix=PrefixPolicy.FORBIDDEN), "/")


def test_message_without_sender_runs_no_command() -> None:
    state, dispatcher = _setup()
    handler = Recorder()
    state.registry.load(command("ping", handler))

    outcome, response = _run(dispatcher, dataclasses.replace(message("/ping"), sender=None))

    assert outcome is DispatchOutcome.IGNORED
    assert handler.calls == []
    assert response.outbound_count == 0


def test_handler_context_carries_sender_identity() -> None:
    state, dispatcher = _setup()
    handler = Recorder()
    state.registry.load(command("ping", handler, access=AccessLevel.GROUP))

    _run(dispatcher, message("/ping", user_id=7, chat_type="group"))

    assert handler.calls[0].user_id == 7
    assert handler.calls[0].chat_id == -100
