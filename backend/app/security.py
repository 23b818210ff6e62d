"""Request dependencies for the login session gateway."""

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.db.dependencies import get_db
from app.schemas.auth import SessionPrincipal
from app.services.auth import development_principal, is_principal_expired, load_session, unsign_session_id


def get_session_id(request: Request, settings: Settings = Depends(get_settings)) -> str | None:
    """Return the verified session id from the request cookie, if any."""

    cookie = request.cookies.get(settings.session_cookie_name)
    if not cookie:
        return None
    return unsign_session_id(cookie, settings.session_secret, max_age_seconds=settings.session_max_age_seconds)


def get_optional_principal(
    sid: str | None = Depends(get_session_id),
    db: Session = Depends(get_db),
) -> SessionPrincipal | None:
    """Return the logged-in principal without enforcing authentication."""

    if sid is None:
        return None
    return load_session(db, sid)


def require_principal(
    principal: SessionPrincipal | None = Depends(get_optional_principal),
    settings: Settings = Depends(get_settings),
) -> SessionPrincipal:
    """Reject the request with 401 unless a live login session is present."""

    if principal is None and settings.is_development:
        return development_principal()
    if principal is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if is_principal_expired(principal):
        raise HTTPException(status_code=401, detail="Session expired. Please login again.")
    return principal
