"""API key ORM model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CreatedAtMixin, IdMixin


class ApiKey(Base, IdMixin, CreatedAtMixin):
    """Bearer token accepted by the public chat endpoint."""

    __tablename__ = "api_keys"

    key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
