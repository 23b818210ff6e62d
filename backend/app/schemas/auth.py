"""Schemas for the login session gateway."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SessionPrincipal(BaseModel):
    """Logged-in operator carried in the server-side session."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str | None = None
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    profile_image_url: str | None = Field(default=None, alias="profileImageUrl")
    access_token: str | None = Field(default=None, alias="accessToken")
    refresh_token: str | None = Field(default=None, alias="refreshToken")
    expires_at: int | None = Field(default=None, alias="expiresAt")


class UserRead(BaseModel):
    """Serialized operator account."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    email: str | None = None
    first_name: str | None = Field(default=None, serialization_alias="firstName")
    last_name: str | None = Field(default=None, serialization_alias="lastName")
    profile_image_url: str | None = Field(default=None, serialization_alias="profileImageUrl")
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")
    updated_at: datetime | None = Field(default=None, serialization_alias="updatedAt")


class AuthStatusUser(BaseModel):
    """Public subset of the session principal."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str | None = None
    first_name: str | None = Field(default=None, serialization_alias="firstName")
    last_name: str | None = Field(default=None, serialization_alias="lastName")
    profile_image_url: str | None = Field(default=None, serialization_alias="profileImageUrl")


class AuthStatus(BaseModel):
    """Whether the caller holds a valid login session."""

    authenticated: bool
    user: AuthStatusUser | None = None
