from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from modbot.core.config import Settings
from modbot.core.logging import get_logger
from modbot.core.module_loader import ModuleLoader
from modbot.core.module_registry import ModuleRegistry
from modbot.core.state import RuntimeState
from modbot.db.base import Base
from modbot.db.repositories.groups import GroupsRepository
from modbot.db.repositories.users import UsersRepository
from modbot.db.session import make_engine, make_session_factory
from modbot.services.callback_dispatcher import CallbackDispatcher
from modbot.services.data_service import GroupsData, UsersData
from modbot.services.dispatcher import CommandDispatcher
from modbot.services.help_service import HelpService
from modbot.services.module_admin import ModuleAdminService
from modbot.services.rate_limiter import CooldownTracker
from modbot.services.rbac import RBACService
from modbot.services.sessions import SessionStore
from modbot.services.settings_service import SettingsService

logger = get_logger(__name__)


@dataclass
class Container:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker

    state: RuntimeState
    module_loader: ModuleLoader

    users: UsersData
    groups: GroupsData

    rbac: RBACService
    help_service: HelpService
    module_admin: ModuleAdminService
    dispatcher: CommandDispatcher
    callback_dispatcher: CallbackDispatcher

    @property
    def registry(self) -> ModuleRegistry:
        return self.state.registry

    @property
    def settings_service(self) -> SettingsService:
        return self.state.settings

    async def startup(self) -> None:
        self.settings_service.load()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        commands = self.module_loader.load_all(self.registry, "command")
        events = self.module_loader.load_all(self.registry, "event")
        logger.info(
            "startup_done",
            commands=len(commands.loaded),
            events=len(events.loaded),
            failed=len(commands.failed) + len(events.failed),
        )

    async def shutdown(self) -> None:
        await self.engine.dispose()


def build_container(settings: Settings) -> Container:
    engine = make_engine(settings.database_url)
    session_factory = make_session_factory(engine)

    state = RuntimeState(
        settings=SettingsService(settings.runtime_settings_path),
        registry=ModuleRegistry(),
        cooldowns=CooldownTracker(),
        callbacks=SessionStore(
            ttl_seconds=settings.callback_session_ttl_seconds,
            capacity=settings.callback_session_capacity,
        ),
        replies=SessionStore(
            ttl_seconds=settings.reply_session_ttl_seconds,
            capacity=settings.reply_session_capacity,
        ),
    )
    module_loader = ModuleLoader(settings.commands_dir, settings.events_dir)

    users = UsersData(session_factory=session_factory, repo=UsersRepository())
    groups = GroupsData(session_factory=session_factory, repo=GroupsRepository())

    rbac = RBACService(settings=state.settings)
    help_service = HelpService(registry=state.registry)
    module_admin = ModuleAdminService(
        registry=state.registry,
        loader=module_loader,
        fetch_timeout=settings.module_fetch_timeout_seconds,
    )
    dispatcher = CommandDispatcher(state=state, rbac=rbac, users=users, groups=groups)
    callback_dispatcher = CallbackDispatcher(state=state)

    container = Container(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        state=state,
        module_loader=module_loader,
        users=users,
        groups=groups,
        rbac=rbac,
        help_service=help_service,
        module_admin=module_admin,
        dispatcher=dispatcher,
        callback_dispatcher=callback_dispatcher,
    )
    # handlers reach shared services through ctx.container
    dispatcher.container = container
    callback_dispatcher.container = container
    return container
