"""
Pydantic models for backend payloads and client-side validation.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


TITLE_MAX_LENGTH = 200
BODY_MAX_LENGTH = 5000


class User(BaseModel):
    id: Optional[str] = None
    username: str = ""
    email: str = ""
    email_verified: Optional[bool] = None

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class Note(BaseModel):
    id: str
    title: str
    body: str
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class NoteDraft(BaseModel):
    """Title and body as submitted from the note form."""

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    body: str = Field(min_length=1, max_length=BODY_MAX_LENGTH)

    @field_validator("title", "body", mode="before")
    @classmethod
    def strip_whitespace(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class RegisterRequest(BaseModel):
    username: str = Field(min_length=2, max_length=100)
    email: str = Field(min_length=3)
    password: str = Field(min_length=8)

    @field_validator("username", "email", mode="before")
    @classmethod
    def strip_whitespace(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=8)


__all__ = [
    "TITLE_MAX_LENGTH",
    "BODY_MAX_LENGTH",
    "User",
    "Note",
    "NoteDraft",
    "RegisterRequest",
    "ResetPasswordRequest",
]
