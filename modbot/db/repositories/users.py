from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from modbot.db.models import User

_UPDATABLE = ("money", "exp", "registered", "data")


class UsersRepository:
    async def get(self, session: AsyncSession, user_id: int) -> User | None:
        res = await session.execute(select(User).where(User.id == user_id))
        return res.scalar_one_or_none()

    async def upsert(self, session: AsyncSession, user_id: int, **fields: Any) -> User:
        user = await self.get(session, user_id)
        if not user:
            user = User(
                id=user_id,
                money=fields.get("money", 0),
                exp=fields.get("exp", 0),
                registered=fields.get("registered", False),
                data=fields.get("data", {}),
            )
        else:
            for key in _UPDATABLE:
                if key in fields:
                    setattr(user, key, fields[key])
        session.add(user)
        await session.flush()
        return user

    async def count(self, session: AsyncSession) -> int:
        res = await session.execute(select(func.count()).select_from(User))
        return int(res.scalar_one())
