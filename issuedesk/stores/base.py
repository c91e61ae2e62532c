"""
Store interfaces the HTTP layer is written against.

Concrete stores live in ``stores.sql`` (SQLAlchemy) and ``stores.memory``;
a backend object hands out one of each per request.  Identifiers cross
this boundary as canonical strings.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any

from issuedesk.core.exceptions import InvalidIdentifier
from issuedesk.core.security import get_password_hash, verify_password
from issuedesk.models.issue import Issue
from issuedesk.models.user import User

_MAX_ID = 2**31 - 1

# Fields an update may never touch, whatever the caller passes.
PROTECTED_ISSUE_FIELDS = frozenset(
    {"id", "user_id", "username", "user_email", "user_phone_number", "created_at"}
)


def parse_id(raw: object, message: str | None = None) -> int:
    """Parse a canonical identifier, raising ``InvalidIdentifier`` if malformed."""
    text = str(raw).strip()
    if not text.isdigit() or not text.isascii():
        raise InvalidIdentifier(message)
    value = int(text)
    if value <= 0 or value > _MAX_ID:
        raise InvalidIdentifier(message)
    return value


class UserStore(ABC):
    """Credential store."""

    @abstractmethod
    async def find_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def find_by_id(self, user_id: str) -> User | None: ...

    @abstractmethod
    async def _insert(self, fields: dict[str, Any]) -> User: ...

    async def create(self, fields: dict[str, Any]) -> User:
        """Persist a new user, hashing the plaintext ``password`` field first.

        Raises ``DuplicateEmail`` when the email is already registered.
        """
        record = dict(fields)
        record["hashed_password"] = get_password_hash(record.pop("password"))
        return await self._insert(record)

    @staticmethod
    def verify_password(plain: str, hashed: str) -> bool:
        return verify_password(plain, hashed)


class IssueStore(ABC):
    """Issue store.  Listings are ordered newest first."""

    @abstractmethod
    async def create(self, fields: dict[str, Any]) -> Issue: ...

    @abstractmethod
    async def find_by_id(self, issue_id: str) -> Issue:
        """Return the issue or raise ``NotFound`` / ``InvalidIdentifier``."""

    @abstractmethod
    async def find_all(self) -> list[Issue]: ...

    @abstractmethod
    async def find_by_owner(self, user_id: str) -> list[Issue]: ...

    @abstractmethod
    async def update(self, issue_id: str, fields: dict[str, Any]) -> Issue:
        """Apply a partial update and return the stored issue."""

    @abstractmethod
    async def delete_by_id(self, issue_id: str) -> bool:
        """Delete the issue or raise ``NotFound`` / ``InvalidIdentifier``."""


class StoreBackend(ABC):
    """Owns the underlying data and opens stores for one unit of work."""

    @abstractmethod
    async def connect(self) -> None:
        """Prepare the backend at startup; failures must propagate."""

    @abstractmethod
    async def dispose(self) -> None: ...

    @abstractmethod
    def user_store(self) -> AbstractAsyncContextManager[UserStore]: ...

    @abstractmethod
    def issue_store(self) -> AbstractAsyncContextManager[IssueStore]: ...
