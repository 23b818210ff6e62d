"""Message response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class MessageRead(BaseModel):
    """Serialized message."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role: str
    content: str
    timestamp: datetime
