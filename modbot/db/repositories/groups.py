from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from modbot.db.models import Group


class GroupsRepository:
    async def get(self, session: AsyncSession, group_id: int) -> Group | None:
        res = await session.execute(select(Group).where(Group.id == group_id))
        return res.scalar_one_or_none()

    async def upsert(self, session: AsyncSession, group_id: int, **fields: Any) -> Group:
        g = await self.get(session, group_id)
        if not g:
            g = Group(id=group_id, settings=fields.get("settings", {}), data=fields.get("data", {}))
        else:
            if "settings" in fields:
                g.settings = fields["settings"]
            if "data" in fields:
                g.data = fields["data"]
        session.add(g)
        await session.flush()
        return g

    async def count(self, session: AsyncSession) -> int:
        res = await session.execute(select(func.count()).select_from(Group))
        return int(res.scalar_one())
