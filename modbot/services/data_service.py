from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modbot.db.repositories.groups import GroupsRepository
from modbot.db.repositories.users import UsersRepository


@dataclass(frozen=True)
class UserRecord:
    id: int
    money: int = 0
    exp: int = 0
    registered: bool = False
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GroupRecord:
    id: int
    settings: dict[str, Any] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class UsersData:
    """Module-facing user records. ``get`` of an unknown id returns defaults without inserting."""

    session_factory: async_sessionmaker[AsyncSession]
    repo: UsersRepository

    async def get(self, user_id: int) -> UserRecord:
        async with self.session_factory() as session:
            row = await self.repo.get(session, user_id)
            if row is None:
                return UserRecord(id=user_id)
            return UserRecord(id=row.id, money=row.money, exp=row.exp, registered=row.registered, data=dict(row.data or {}))

    async def set(self, user_id: int, **fields: Any) -> UserRecord:
        async with self.session_factory() as session:
            async with session.begin():
                await self.repo.upsert(session, user_id, **fields)
        return await self.get(user_id)

    async def count(self) -> int:
        async with self.session_factory() as session:
            return await self.repo.count(session)


@dataclass(frozen=True, slots=True)
class GroupsData:
    session_factory: async_sessionmaker[AsyncSession]
    repo: GroupsRepository

    async def get(self, group_id: int) -> GroupRecord:
        async with self.session_factory() as session:
            row = await self.repo.get(session, group_id)
            if row is None:
                return GroupRecord(id=group_id)
            return GroupRecord(id=row.id, settings=dict(row.settings or {}), data=dict(row.data or {}))

    async def set(self, group_id: int, **fields: Any) -> GroupRecord:
        async with self.session_factory() as session:
            async with session.begin():
                await self.repo.upsert(session, group_id, **fields)
        return await self.get(group_id)

    async def count(self) -> int:
        async with self.session_factory() as session:
            return await self.repo.count(session)
