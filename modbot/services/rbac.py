from __future__ import annotations

from dataclasses import dataclass

from modbot.core.logging import get_logger
from modbot.core.models import GROUP_CHAT_TYPES, ChatTransport
from modbot.core.module_registry import AccessLevel
from modbot.services.settings_service import SettingsService

logger = get_logger(__name__)

ADMIN_STATUSES = ("creator", "administrator")


@dataclass(frozen=True, slots=True)
class PermissionContext:
    user_id: int
    is_developer: bool
    is_vip: bool
    is_admin: bool
    chat_type: str
    prefix: str

    @property
    def is_group(self) -> bool:
        return self.chat_type in GROUP_CHAT_TYPES

    @property
    def is_private(self) -> bool:
        return self.chat_type == "private"


@dataclass(frozen=True)
class RBACService:
    settings: SettingsService

    def is_developer(self, user_id: int) -> bool:
        return self.settings.is_developer(user_id)

    def is_vip(self, user_id: int) -> bool:
        return self.settings.is_vip(user_id)

    async def is_chat_admin(self, transport: ChatTransport, chat_id: int, user_id: int) -> bool:
        try:
            status = await transport.get_member_status(chat_id, user_id)
        except Exception as e:
            logger.warning("admin_lookup_failed", chat_id=chat_id, user_id=user_id, error=str(e))
            return False
        return status in ADMIN_STATUSES

    async def evaluate(
        self,
        level: AccessLevel | str,
        *,
        user_id: int,
        chat_id: int,
        chat_type: str,
        transport: ChatTransport,
    ) -> bool:
        level = AccessLevel(level)
        if level is AccessLevel.DEVELOPER:
            return self.is_developer(user_id)
        if level is AccessLevel.VIP:
            return self.is_vip(user_id)
        if level is AccessLevel.GROUP:
            return chat_type in GROUP_CHAT_TYPES
        if level is AccessLevel.PRIVATE:
            return chat_type == "private"
        if level is AccessLevel.ADMINISTRATOR:
            # no admin rights exist outside a group
            if chat_type not in GROUP_CHAT_TYPES:
                return False
            if self.is_developer(user_id):
                return True
            return await self.is_chat_admin(transport, chat_id, user_id)
        return True

    async def build_context(
        self,
        *,
        user_id: int,
        chat_id: int,
        chat_type: str,
        transport: ChatTransport,
        prefix: str,
    ) -> PermissionContext:
        is_dev = self.is_developer(user_id)
        is_admin = False
        if chat_type in GROUP_CHAT_TYPES:
            is_admin = is_dev or await self.is_chat_admin(transport, chat_id, user_id)
        return PermissionContext(
            user_id=user_id,
            is_developer=is_dev,
            is_vip=is_dev or self.is_vip(user_id),
            is_admin=is_admin,
            chat_type=chat_type,
            prefix=prefix,
        )
