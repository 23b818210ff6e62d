"""Server-side login session model."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class AuthSession(Base):
    """Session principal stored server-side; the browser only holds the signed sid."""

    __tablename__ = "auth_sessions"

    sid: Mapped[str] = mapped_column(String(128), primary_key=True)
    sess: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    expire: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
