"""Schemas for Ollama discovery endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OllamaStatus(BaseModel):
    """Reachability of the configured Ollama server."""

    model_config = ConfigDict(populate_by_name=True)

    available: bool
    configured: bool
    current_model: str | None = Field(default=None, serialization_alias="currentModel")
    models: list[str] | None = None
    message: str | None = None


class OllamaModels(BaseModel):
    """Models reported by the configured Ollama server."""

    model_config = ConfigDict(populate_by_name=True)

    models: list[dict[str, Any]] = Field(default_factory=list)
    current_model: str | None = Field(default=None, serialization_alias="currentModel")
    error: str | None = None
