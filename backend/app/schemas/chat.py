"""Schemas for the chat relay endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class ChatSendRequest(BaseModel):
    """Request payload for one internal chat turn."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    use_ollama: bool | None = Field(default=None, alias="useOllama")
    use_local_brain: bool | None = Field(default=None, alias="useLocalBrain")


class PublicChatRequest(BaseModel):
    """Request payload for the API-key chat endpoint."""

    message: str = Field(min_length=1)


class ChatResponse(BaseModel):
    """Reply text for one relayed turn."""

    response: str


class SuccessResponse(BaseModel):
    """Acknowledgement for mutations without a payload."""

    success: bool = True


class IdentityPromptRequest(BaseModel):
    """Request payload for the identity endpoint."""

    prompt: str | None = None


class IdentityPromptResponse(BaseModel):
    """Reply from the identity endpoint."""

    system: str
    reply: str
