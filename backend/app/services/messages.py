"""Chat history persistence services."""

from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.models.message import MESSAGE_ROLES, Message


def create_message(db: Session, role: str, content: str) -> Message:
    """Append one chat turn to the history."""

    if role not in MESSAGE_ROLES:
        raise ValueError(f"Unsupported message role: {role!r}")
    if role == "user" and not content.strip():
        raise ValueError("User message content cannot be empty.")

    message = Message(role=role, content=content, timestamp=datetime.now(timezone.utc))
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def list_messages(db: Session, limit: int = 50) -> list[Message]:
    """Return at most ``limit`` turns, newest first."""

    if limit < 1:
        return []
    stmt = select(Message).order_by(Message.timestamp.desc(), Message.id.desc()).limit(limit)
    return list(db.scalars(stmt).all())


def clear_messages(db: Session) -> int:
    """Delete the whole history and return how many rows were removed."""

    result = db.execute(delete(Message))
    db.commit()
    return result.rowcount or 0
