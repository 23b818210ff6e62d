"""SQLAlchemy metadata registry import for Alembic."""

from app.models import ApiKey, AuthSession, Message, User
from app.models.base import Base

__all__ = ["Base", "Message", "ApiKey", "User", "AuthSession"]
