"""Account models.

Pydantic models for users, registration payloads and tokens.  No business
logic lives here -- only structure and the public projection.
"""
from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# User models
# ---------------------------------------------------------------------------

class UserCreate(BaseModel):
    """Registration payload, built only after the payload rules pass.

    Any other keys the caller sends (``is_admin`` included) are dropped.
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    email: str
    password: str


class User(BaseModel):
    """Full user record as held by the store."""

    id: str = Field(default_factory=_new_id)
    name: str
    email: str
    password_hash: str
    is_admin: bool = False


class UserPublic(BaseModel):
    """User fields that may leave the service."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    email: str


def to_public(user: User) -> UserPublic:
    """Project a user onto the public allow-list."""
    return UserPublic(id=user.id, name=user.name, email=user.email)


# ---------------------------------------------------------------------------
# Token models
# ---------------------------------------------------------------------------

class TokenPayload(BaseModel):
    """Decoded token payload, attached to the request as the caller."""

    sub: str
    is_admin: bool = False
    iat: float

    @property
    def id(self) -> str:
        return self.sub
