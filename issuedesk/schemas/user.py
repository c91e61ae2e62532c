"""Pydantic schemas for registration, login and user payloads."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from issuedesk.core.policy import Role, canonical_id
from issuedesk.core.security import MAX_PASSWORD_BYTES


def normalise_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v:
        raise ValueError("Invalid email address")
    return v


class UserCreate(BaseModel):
    username: str
    email: str
    password: str
    phone_number: str | None = None
    role: str = Role.CUSTOMER.value

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username must not be empty")
        if len(v) > 100:
            raise ValueError("Username must not exceed 100 characters")
        return v

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password must not be empty")
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must not exceed {MAX_PASSWORD_BYTES} bytes")
        return v

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, v: object) -> str:
        return Role.coerce(v).value


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return v.strip().lower()


class UserRead(BaseModel):
    id: str
    username: str
    email: str
    phone_number: str | None
    role: str

    model_config = {"from_attributes": True}

    @field_validator("id", mode="before")
    @classmethod
    def _canonical_id(cls, v: object) -> str:
        return canonical_id(v)


class RegisterResponse(BaseModel):
    message: str
    user: UserRead


class LoginResponse(BaseModel):
    token: str
    user: UserRead
