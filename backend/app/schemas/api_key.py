"""API key request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ApiKeyCreate(BaseModel):
    """Payload for issuing a new API key."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)


class ApiKeyRead(BaseModel):
    """Serialized API key record."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    key: str
    name: str
    created_at: datetime = Field(serialization_alias="createdAt")
