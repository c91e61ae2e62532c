"""
Issue model — a customer-reported problem and its triage status.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from issuedesk.db.base import Base


class IssueStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    CLOSED = "CLOSED"


class Issue(Base):
    __tablename__ = "issues"
    __table_args__ = (Index("ix_issues_user_created", "user_id", "created_at"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    title: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    description: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    location: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    department: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=IssueStatus.OPEN.value,
        server_default=IssueStatus.OPEN.value,
    )  # OPEN | IN_PROGRESS | CLOSED
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]

    # Snapshot of the owner at creation time
    username: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    user_email: str = Column(String(320), nullable=False)  # type: ignore[assignment]
    user_phone_number: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
