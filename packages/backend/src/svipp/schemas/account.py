"""Pydantic schemas for accounts and authentication.

Learn: Pydantic v2 models validate request/response data. Separate
request schemas (input) from "Read" schemas (output) for clean APIs.
UserRead is the only shape an account ever leaves the API in — it has
no password_hash field, so the hash can't leak by accident.

Password composition is checked with Python's `re` in a validator
because pydantic's `pattern=` engine has no lookahead support.
"""

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

PASSWORD_ALLOWED = re.compile(r"^[A-Za-z\d@$!%*?&]+$")
PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "one lowercase letter"),
    (re.compile(r"[A-Z]"), "one uppercase letter"),
    (re.compile(r"\d"), "one number"),
    (re.compile(r"[@$!%*?&]"), "one special character (@$!%*?&)"),
)
PHONE_PATTERN = r"^\+?[0-9 ()\-]+$"


def check_password_strength(value: str) -> str:
    missing = [label for rx, label in PASSWORD_RULES if not rx.search(value)]
    if missing:
        raise ValueError("Password must contain at least " + ", ".join(missing))
    if not PASSWORD_ALLOWED.match(value):
        raise ValueError(
            "Password may only contain letters, numbers and the characters @$!%*?&"
        )
    return value


def _strip(value):
    return value.strip() if isinstance(value, str) else value


# ─── Requests ───────────────────────────────────────────


class RegisterRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone_number: str = Field(..., min_length=8, max_length=32, pattern=PHONE_PATTERN)
    password: str = Field(..., min_length=8, max_length=100)

    @field_validator("first_name", "last_name", "email", "phone_number", mode="before")
    @classmethod
    def strip_whitespace(cls, value):
        return _strip(value)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_strength(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def strip_whitespace(cls, value):
        return _strip(value)


class UpdateUserRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone_number: str = Field(..., min_length=8, max_length=32, pattern=PHONE_PATTERN)

    @field_validator("first_name", "last_name", "email", "phone_number", mode="before")
    @classmethod
    def strip_whitespace(cls, value):
        return _strip(value)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=100)
    confirm_new_password: str

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_strength(value)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_new_password:
            raise ValueError("New password and confirmation do not match")
        return self


# ─── Responses ──────────────────────────────────────────


class UserRead(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone_number: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by register and login. The same token is also set as a cookie."""
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserRead


class MessageResponse(BaseModel):
    message: str
