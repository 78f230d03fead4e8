from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from modbot.core.errors import (
    CooldownActive,
    GateError,
    HandlerRuntimeError,
    MaintenanceBlocked,
    PermissionDenied,
    PrefixMismatch,
    ResolutionError,
)
from modbot.core.logging import get_logger
from modbot.core.models import (
    ChatContext,
    ChatTransport,
    CommandContext,
    EventContext,
    InboundMessage,
    ReplyContext,
    Responder,
)
from modbot.core.module_registry import AccessLevel, CommandModule, PrefixPolicy
from modbot.core.state import RuntimeState
from modbot.services.rbac import RBACService
from modbot.services.settings_service import RuntimeSettings
from modbot.utils.text import ParsedInput, parse_input, split_args

logger = get_logger(__name__)

SYMBOLS = {
    "usage": "▫️",
    "error": "❌",
    "warning": "⚠️",
    "cooldown": "⏳",
    "guide": "📄",
    "unknown": "❓",
    "maintenance": "🚧",
}

# prefixed tokens that never produce an "unknown command" reply
RESERVED_TOKENS = frozenset({"start"})


class DispatchOutcome(str, Enum):
    IGNORED = "ignored"
    ONLINE = "online"
    NOT_A_COMMAND = "not_a_command"
    UNKNOWN = "unknown"
    MAINTENANCE = "maintenance"
    PREFIX_MISMATCH = "prefix_mismatch"
    DENIED = "denied"
    DENIED_SILENT = "denied_silent"
    COOLDOWN = "cooldown"
    EXECUTED = "executed"
    FAILED = "failed"


async def invoke_handler(handler: Callable[[Any], Any], ctx: Any, *, command: str) -> Any:
    """Run a sync or async module handler; every failure surfaces as HandlerRuntimeError."""
    try:
        result = handler(ctx)
        if inspect.isawaitable(result):
            result = await result
        return result
    except Exception as e:
        raise HandlerRuntimeError(command, e) from e


def format_usage(module: CommandModule, prefix: str) -> str | None:
    if not module.guide:
        return None
    p = "" if module.prefix is PrefixPolicy.FORBIDDEN else prefix
    guides = "\n".join(
        "`" + " ".join(part for part in (f"{p}{module.name}", g.strip()) if part) + "`" for g in module.guide
    )
    return (
        f"{SYMBOLS['usage']} **Usage Guide:**\n\n{guides}\n\n"
        f"{SYMBOLS['guide']} {module.description or 'No description.'}"
    )


@dataclass
class CommandDispatcher:
    state: RuntimeState
    rbac: RBACService
    users: Any = None
    groups: Any = None
    container: Any = None

    async def handle_message(
        self,
        message: InboundMessage,
        response: Responder,
        *,
        bot: Any,
        transport: ChatTransport,
    ) -> DispatchOutcome:
        """Full per-message flow: chat scan, command dispatch, events, reply routing."""
        from_bot = message.sender is None or message.sender.is_bot
        outcome = DispatchOutcome.IGNORED
        if not from_bot:
            await self.scan_chat(message, response, bot=bot)
            outcome = await self.dispatch(message, response, bot=bot, transport=transport)
        await self.run_events(message, response, bot=bot)
        if not from_bot:
            await self.route_reply(message, response, bot=bot)
        return outcome

    async def dispatch(
        self,
        message: InboundMessage,
        response: Responder,
        *,
        bot: Any,
        transport: ChatTransport,
    ) -> DispatchOutcome:
        sender = message.sender
        if not message.text or not message.text.strip() or sender is None or sender.is_bot:
            return DispatchOutcome.IGNORED

        settings = self.state.settings.current
        parsed = parse_input(message.text, settings.all_prefixes())

        if parsed.is_bare_prefix:
            await self._notify(
                response, f"🟢 **System Online.**\nType `{parsed.prefix}help` to see commands."
            )
            return DispatchOutcome.ONLINE
        if not parsed.command:
            return DispatchOutcome.IGNORED

        module = self.state.registry.resolve(parsed.command)
        try:
            module = self._check_resolved(module, parsed)
            self._check_maintenance(module, sender.id, settings)
            self._check_prefix_policy(module, parsed)
            await self._check_permission(module, sender.id, message, transport)
            self._check_cooldown(module, sender.id)
        except GateError as gate:
            if gate.notice:
                await self._notify(response, gate.notice)
            return DispatchOutcome(gate.outcome) if gate.outcome else DispatchOutcome.IGNORED

        return await self._invoke(module, parsed, sender.id, message, response, bot=bot, transport=transport)

    # --- gates -----------------------------------------------------------

    def _check_resolved(self, module: CommandModule | None, parsed: ParsedInput) -> CommandModule:
        if module is not None:
            return module
        if not parsed.is_prefixed:
            # ordinary chat text
            raise ResolutionError(outcome=DispatchOutcome.NOT_A_COMMAND)
        if parsed.command in RESERVED_TOKENS:
            raise ResolutionError(outcome=DispatchOutcome.IGNORED)
        raise ResolutionError(
            f"{SYMBOLS['unknown']} **Unknown Command**\n`{parsed.command}` not found.",
            outcome=DispatchOutcome.UNKNOWN,
        )

    def _check_maintenance(self, module: CommandModule, user_id: int, settings: RuntimeSettings) -> None:
        if not settings.maintenance or self.rbac.is_developer(user_id):
            return
        if set(module.tokens) & set(settings.maintenance_bypass):
            return
        raise MaintenanceBlocked(
            f"{SYMBOLS['maintenance']} **Maintenance Mode**\n"
            "The bot is temporarily restricted to developers. Please try again later.",
            outcome=DispatchOutcome.MAINTENANCE,
        )

    def _check_prefix_policy(self, module: CommandModule, parsed: ParsedInput) -> None:
        if module.prefix is PrefixPolicy.REQUIRED and not parsed.is_prefixed:
            raise PrefixMismatch(outcome=DispatchOutcome.PREFIX_MISMATCH)
        if module.prefix is PrefixPolicy.FORBIDDEN and parsed.is_prefixed:
            raise PrefixMismatch(outcome=DispatchOutcome.PREFIX_MISMATCH)

    async def _check_permission(
        self, module: CommandModule, user_id: int, message: InboundMessage, transport: ChatTransport
    ) -> None:
        allowed = await self.rbac.evaluate(
            module.access,
            user_id=user_id,
            chat_id=message.chat.id,
            chat_type=message.chat.type,
            transport=transport,
        )
        if allowed:
            return
        if module.access is AccessLevel.DEVELOPER:
            # developer commands stay invisible to everyone else
            raise PermissionDenied(module.access.value, outcome=DispatchOutcome.DENIED_SILENT)
        raise PermissionDenied(
            module.access.value,
            f"{SYMBOLS['warning']} Access Restricted: {module.access.value.upper()}",
            outcome=DispatchOutcome.DENIED,
        )

    def _check_cooldown(self, module: CommandModule, user_id: int) -> None:
        if self.rbac.is_developer(user_id):
            return
        result = self.state.cooldowns.check(user_id, module.name, module.cooldown)
        if result.on_cooldown:
            raise CooldownActive(
                result.remaining,
                f"{SYMBOLS['cooldown']} Wait **{result.remaining:.1f}s** before using this again.",
                outcome=DispatchOutcome.COOLDOWN,
            )

    # --- invocation ------------------------------------------------------

    async def _invoke(
        self,
        module: CommandModule,
        parsed: ParsedInput,
        user_id: int,
        message: InboundMessage,
        response: Responder,
        *,
        bot: Any,
        transport: ChatTransport | None = None,
    ) -> DispatchOutcome:
        shown_prefix = parsed.prefix or self.state.settings.current.prefix

        async def usage() -> Any:
            text = format_usage(module, shown_prefix)
            if text is None:
                return None
            return await response.reply(text)

        async def is_registered() -> bool:
            return await self._is_registered(user_id, response, shown_prefix)

        ctx = CommandContext(
            bot=bot,
            message=message,
            args=list(parsed.args),
            response=response,
            command_name=parsed.command,
            prefix=parsed.prefix or "",
            module=module,
            usage=usage,
            is_registered=is_registered,
            transport=transport,
            users=self.users,
            groups=self.groups,
            container=self.container,
            state=self.state,
        )

        logger.info("command_invoked", command=module.name, user_id=user_id, chat_id=message.chat.id)
        try:
            await invoke_handler(module.on_start, ctx, command=module.name)
        except HandlerRuntimeError as e:
            logger.error(
                "command_failed",
                command=e.command,
                user_id=user_id,
                chat_id=message.chat.id,
                error=str(e.original),
                exc_info=e.original,
            )
            await self._notify(
                response,
                f"{SYMBOLS['error']} **System Error**\nSomething went wrong while running this command.",
            )
            return DispatchOutcome.FAILED
        return DispatchOutcome.EXECUTED

    async def _is_registered(self, user_id: int, response: Responder, prefix: str) -> bool:
        if self.users is None:
            return True
        record = await self.users.get(user_id)
        if record.registered:
            return True
        await self._notify(
            response,
            f"{SYMBOLS['warning']} **Registration Required**\nUse `{prefix}register` to create your account first.",
        )
        return False

    # --- passive handlers ------------------------------------------------

    async def scan_chat(self, message: InboundMessage, response: Responder, *, bot: Any) -> None:
        args = split_args(message.text)
        for module in self.state.registry.with_handler("on_chat"):
            ctx = ChatContext(
                bot=bot, message=message, args=args, response=response, container=self.container, state=self.state
            )
            try:
                keep_going = await invoke_handler(module.on_chat, ctx, command=module.name)  # type: ignore[arg-type]
            except HandlerRuntimeError as e:
                logger.error("chat_scan_failed", command=e.command, error=str(e.original), exc_info=e.original)
                continue
            if keep_going is False:
                break

    async def run_events(self, message: InboundMessage, response: Responder, *, bot: Any) -> None:
        for event in self.state.registry.events():
            ctx = EventContext(
                bot=bot,
                message=message,
                chat_id=message.chat.id,
                response=response,
                container=self.container,
                state=self.state,
            )
            try:
                await invoke_handler(event.on_event, ctx, command=event.name)
            except HandlerRuntimeError as e:
                logger.error("event_failed", event=e.command, chat_id=message.chat.id, error=str(e.original), exc_info=e.original)

    async def route_reply(self, message: InboundMessage, response: Responder, *, bot: Any) -> bool:
        target = message.reply_to
        if target is None:
            return False
        key = (target.chat.id, target.message_id)
        session = self.state.replies.get(key)
        if session is None:
            return False

        module = self.state.registry.resolve(session.command)
        if module is None:
            await self._notify(response, f"Cannot find command: `{session.command}`")
            return False
        if module.on_reply is None:
            await self._notify(response, f"Command **{module.name}** doesn't support replies")
            return False

        ctx = ReplyContext(
            bot=bot,
            message=message,
            args=split_args(message.text),
            response=response,
            command_name=module.name,
            data=session.data,
            reply_to=target,
            owner_id=session.owner_id,
            container=self.container,
            state=self.state,
        )
        try:
            await invoke_handler(module.on_reply, ctx, command=module.name)
        except HandlerRuntimeError as e:
            logger.error("reply_failed", command=e.command, chat_id=message.chat.id, error=str(e.original), exc_info=e.original)
            await self._notify(response, f"{SYMBOLS['error']} An error occurred while processing your reply.")
            return False
        return True

    async def _notify(self, response: Responder, text: str) -> None:
        try:
            await response.reply(text)
        except Exception as e:
            logger.warning("notice_send_failed", error=str(e))
