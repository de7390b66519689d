"""Pydantic schemas for admin accounts and session endpoints."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(value: str) -> str:
    """Lower-case and trim an email, rejecting obviously invalid ones."""
    email = value.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("invalid email address")
    return email


class AdminAccount(BaseModel):
    """Stored admin account, including credential and lockout state."""

    id: str
    email: str
    name: str | None = None
    role: str = "admin"
    permissions: list[str] = Field(default_factory=list)
    password_hash: str
    is_active: bool = True
    failed_login_attempts: int = 0
    lock_until: datetime | None = None
    last_login: datetime | None = None

    def is_locked(self, now: datetime) -> bool:
        return self.lock_until is not None and self.lock_until > now


class LoginRequest(BaseModel):
    """Credentials posted to the login endpoint."""

    email: str = Field(..., description="Admin email address.")
    password: str = Field(..., min_length=1, description="Admin password.")

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)


class AdminProfile(BaseModel):
    """Public view of an admin account returned to the back office."""

    id: str
    email: str
    name: str | None = None
    role: str
    permissions: list[str]
    last_login: datetime | None = None

    @classmethod
    def from_account(cls, account: AdminAccount) -> "AdminProfile":
        return cls(
            id=account.id,
            email=account.email,
            name=account.name,
            role=account.role,
            permissions=sorted(account.permissions),
            last_login=account.last_login,
        )
