"""Pydantic schemas for issues."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ValidationInfo, field_validator

from issuedesk.core.policy import canonical_id
from issuedesk.models.issue import IssueStatus

_MAX_SHORT_TEXT = 100


def _short_text(name: str, v: str | None) -> str:
    if v is None:
        raise ValueError(f"{name} must not be null")
    if not v.strip():
        raise ValueError(f"{name} must not be empty")
    if len(v) > _MAX_SHORT_TEXT:
        raise ValueError(f"{name} must not exceed {_MAX_SHORT_TEXT} characters")
    return v


def _required_status(v: IssueStatus | None) -> IssueStatus:
    if v is None:
        raise ValueError("Status must not be null")
    return v


def ensure_utc(dt: datetime) -> datetime:
    """Normalise a potentially-naive timestamp to UTC-aware."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class IssueCreate(BaseModel):
    title: str
    description: str | None = None
    location: str
    department: str
    status: IssueStatus | None = None

    @field_validator("title", "location", "department")
    @classmethod
    def _required_text(cls, v: str, info: ValidationInfo) -> str:
        return _short_text(info.field_name.capitalize(), v)

    @field_validator("status")
    @classmethod
    def _status(cls, v: IssueStatus | None) -> IssueStatus:
        return _required_status(v)


class IssueUpdate(BaseModel):
    """Partial update: only the fields a client sends are applied."""

    title: str | None = None
    description: str | None = None
    location: str | None = None
    department: str | None = None
    status: IssueStatus | None = None

    @field_validator("title", "location", "department")
    @classmethod
    def _required_text(cls, v: str | None, info: ValidationInfo) -> str:
        return _short_text(info.field_name.capitalize(), v)

    @field_validator("status")
    @classmethod
    def _status(cls, v: IssueStatus | None) -> IssueStatus:
        return _required_status(v)

    def changes(self) -> dict:
        """Return the fields explicitly present in the request body."""
        data = self.model_dump(exclude_unset=True)
        if data.get("status") is not None:
            data["status"] = IssueStatus(data["status"]).value
        return data


class IssueRead(BaseModel):
    id: str
    title: str
    description: str | None
    location: str
    department: str
    status: IssueStatus
    user_id: str
    username: str
    user_email: str
    user_phone_number: str | None
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _canonical_id(cls, v: object) -> str:
        return canonical_id(v)

    @field_validator("created_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class MessageResponse(BaseModel):
    message: str
