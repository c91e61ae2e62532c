"""
SQLAlchemy implementations of the user and issue stores.

Each store wraps one ``AsyncSession``; the backend opens a session per
request and closes it afterwards.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from issuedesk.core.exceptions import DuplicateEmail, NotFound
from issuedesk.models.issue import Issue, IssueStatus
from issuedesk.models.user import User
from issuedesk.stores.base import PROTECTED_ISSUE_FIELDS, IssueStore, UserStore, parse_id

logger = logging.getLogger(__name__)

_ISSUE_NOT_FOUND = "Issue not found"
_NEWEST_FIRST = (Issue.created_at.desc(), Issue.id.desc())


class SqlUserStore(UserStore):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> User | None:
        return await self.session.get(User, parse_id(user_id))

    async def _insert(self, fields: dict[str, Any]) -> User:
        user = User(**fields)
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError:
            # unique email lost a race with a concurrent registration
            await self.session.rollback()
            raise DuplicateEmail()
        await self.session.refresh(user)
        return user


class SqlIssueStore(IssueStore):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, fields: dict[str, Any]) -> Issue:
        record = dict(fields)
        record["user_id"] = parse_id(record["user_id"])
        record.setdefault("status", IssueStatus.OPEN.value)
        issue = Issue(**record)
        self.session.add(issue)
        await self.session.commit()
        await self.session.refresh(issue)
        return issue

    async def find_by_id(self, issue_id: str) -> Issue:
        issue = await self.session.get(Issue, parse_id(issue_id))
        if issue is None:
            raise NotFound(_ISSUE_NOT_FOUND)
        return issue

    async def find_all(self) -> list[Issue]:
        result = await self.session.execute(select(Issue).order_by(*_NEWEST_FIRST))
        return list(result.scalars().all())

    async def find_by_owner(self, user_id: str) -> list[Issue]:
        result = await self.session.execute(
            select(Issue).where(Issue.user_id == parse_id(user_id)).order_by(*_NEWEST_FIRST)
        )
        return list(result.scalars().all())

    async def update(self, issue_id: str, fields: dict[str, Any]) -> Issue:
        issue = await self.find_by_id(issue_id)
        for field, value in fields.items():
            if field in PROTECTED_ISSUE_FIELDS:
                continue
            setattr(issue, field, value)
        await self.session.commit()
        await self.session.refresh(issue)
        return issue

    async def delete_by_id(self, issue_id: str) -> bool:
        result = await self.session.execute(delete(Issue).where(Issue.id == parse_id(issue_id)))
        await self.session.commit()
        if result.rowcount == 0:
            raise NotFound(_ISSUE_NOT_FOUND)
        return True
