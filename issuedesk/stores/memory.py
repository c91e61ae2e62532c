"""
In-process store backend, selected with ``DATABASE_URL=memory://``.

Records are plain (unattached) ORM instances kept in dicts, so the HTTP
layer sees the same objects it would get from the SQL stores.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from issuedesk.core.exceptions import DuplicateEmail, NotFound
from issuedesk.models.issue import Issue, IssueStatus
from issuedesk.models.user import User
from issuedesk.stores.base import (
    PROTECTED_ISSUE_FIELDS,
    IssueStore,
    StoreBackend,
    UserStore,
    parse_id,
)

_ISSUE_NOT_FOUND = "Issue not found"


class InMemoryData:
    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.issues: dict[int, Issue] = {}
        self._id_counter = 0

    def next_id(self) -> int:
        self._id_counter += 1
        return self._id_counter


def _newest_first(issues: list[Issue]) -> list[Issue]:
    return sorted(issues, key=lambda i: (i.created_at, i.id), reverse=True)


class MemoryUserStore(UserStore):
    def __init__(self, data: InMemoryData):
        self.data = data

    async def find_by_email(self, email: str) -> User | None:
        return next((u for u in self.data.users.values() if u.email == email), None)

    async def find_by_id(self, user_id: str) -> User | None:
        return self.data.users.get(parse_id(user_id))

    async def _insert(self, fields: dict[str, Any]) -> User:
        if any(u.email == fields["email"] for u in self.data.users.values()):
            raise DuplicateEmail()
        user = User(
            id=self.data.next_id(),
            created_at=datetime.now(timezone.utc),
            **fields,
        )
        if user.role is None:
            user.role = "customer"
        self.data.users[user.id] = user
        return user


class MemoryIssueStore(IssueStore):
    def __init__(self, data: InMemoryData):
        self.data = data

    async def create(self, fields: dict[str, Any]) -> Issue:
        record = dict(fields)
        record["user_id"] = parse_id(record["user_id"])
        record.setdefault("status", IssueStatus.OPEN.value)
        issue = Issue(
            id=self.data.next_id(),
            created_at=datetime.now(timezone.utc),
            **record,
        )
        self.data.issues[issue.id] = issue
        return issue

    async def find_by_id(self, issue_id: str) -> Issue:
        issue = self.data.issues.get(parse_id(issue_id))
        if issue is None:
            raise NotFound(_ISSUE_NOT_FOUND)
        return issue

    async def find_all(self) -> list[Issue]:
        return _newest_first(list(self.data.issues.values()))

    async def find_by_owner(self, user_id: str) -> list[Issue]:
        owner = parse_id(user_id)
        return _newest_first([i for i in self.data.issues.values() if i.user_id == owner])

    async def update(self, issue_id: str, fields: dict[str, Any]) -> Issue:
        issue = await self.find_by_id(issue_id)
        for field, value in fields.items():
            if field in PROTECTED_ISSUE_FIELDS:
                continue
            setattr(issue, field, value)
        return issue

    async def delete_by_id(self, issue_id: str) -> bool:
        if self.data.issues.pop(parse_id(issue_id), None) is None:
            raise NotFound(_ISSUE_NOT_FOUND)
        return True


class MemoryBackend(StoreBackend):
    def __init__(self) -> None:
        self.data = InMemoryData()

    async def connect(self) -> None:
        return None

    async def dispose(self) -> None:
        return None

    @asynccontextmanager
    async def user_store(self) -> AsyncIterator[UserStore]:
        yield MemoryUserStore(self.data)

    @asynccontextmanager
    async def issue_store(self) -> AsyncIterator[IssueStore]:
        yield MemoryIssueStore(self.data)
