"""API key registry services."""

import secrets
import string

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.models.api_key import ApiKey

API_KEY_PREFIX = "ak_"
_TOKEN_ALPHABET = string.ascii_lowercase + string.digits
_TOKEN_LENGTH = 26


class ApiKeyAuthError(RuntimeError):
    """Raised when a public caller presents a missing or unknown API key."""


def generate_api_key_token() -> str:
    """Return a fresh opaque token such as ``ak_3k9x...``."""

    return API_KEY_PREFIX + "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(_TOKEN_LENGTH))


def create_api_key(db: Session, name: str) -> ApiKey:
    """Issue and persist a new API key labelled ``name``."""

    api_key = ApiKey(key=generate_api_key_token(), name=name.strip())
    db.add(api_key)
    db.commit()
    db.refresh(api_key)
    return api_key


def list_api_keys(db: Session) -> list[ApiKey]:
    """List API keys, most recently issued first."""

    return list(db.scalars(select(ApiKey).order_by(ApiKey.id.desc())).all())


def delete_api_key(db: Session, api_key_id: int) -> bool:
    """Revoke an API key by id. Returns False when no such key existed."""

    result = db.execute(delete(ApiKey).where(ApiKey.id == api_key_id))
    db.commit()
    return bool(result.rowcount)


def get_api_key_by_token(db: Session, token: str) -> ApiKey | None:
    """Return the key record matching ``token`` exactly, if any."""

    if not token:
        return None
    return db.scalars(select(ApiKey).where(ApiKey.key == token)).first()


def authenticate_api_key(db: Session, token: str | None) -> ApiKey:
    """Resolve the caller's key or raise :class:`ApiKeyAuthError`."""

    if not token:
        raise ApiKeyAuthError("Missing API Key")
    api_key = get_api_key_by_token(db, token)
    if api_key is None:
        raise ApiKeyAuthError("Invalid API Key")
    return api_key
