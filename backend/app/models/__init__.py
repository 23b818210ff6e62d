"""ORM models package exports."""

from app.models.api_key import ApiKey
from app.models.auth_session import AuthSession
from app.models.message import Message
from app.models.user import User

__all__ = [
    "Message",
    "ApiKey",
    "User",
    "AuthSession",
]
