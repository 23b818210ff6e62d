"""Login, logout and session status routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.db.dependencies import get_db
from app.schemas.auth import AuthStatus, AuthStatusUser, SessionPrincipal, UserRead
from app.security import get_optional_principal, get_session_id, require_principal
from app.services.auth import (
    OAuthError,
    complete_google_login,
    create_session,
    destroy_session,
    get_google_oauth_client,
    get_user,
    is_principal_expired,
    new_oauth_state,
    sign_session_id,
    verify_oauth_state,
)

logger = logging.getLogger(__name__)

OAUTH_STATE_COOKIE = "oauth_state"
LOGIN_FAILURE_URL = "/auth?error=authentication_failed"

router = APIRouter(prefix="/api")


@router.get("/auth/google")
def google_login(settings: Settings = Depends(get_settings)) -> RedirectResponse:
    """Redirect the browser to Google's consent screen."""

    try:
        oauth_client = get_google_oauth_client(settings)
    except OAuthError as exc:
        logger.warning("auth.login_unavailable error=%s", exc)
        return RedirectResponse(LOGIN_FAILURE_URL, status_code=302)
    state, state_cookie = new_oauth_state(settings.session_secret)
    response = RedirectResponse(oauth_client.authorization_url(state), status_code=302)
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        state_cookie,
        max_age=600,
        httponly=True,
        samesite="lax",
        secure=not settings.is_development,
    )
    return response


@router.get("/auth/google/callback")
def google_callback(
    request: Request,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Finish the OAuth exchange and start a login session."""

    failure = RedirectResponse(LOGIN_FAILURE_URL, status_code=302)
    failure.delete_cookie(OAUTH_STATE_COOKIE)
    if not code or not verify_oauth_state(state, request.cookies.get(OAUTH_STATE_COOKIE), settings.session_secret):
        logger.warning("auth.callback_rejected reason=missing_code_or_state")
        return failure
    try:
        principal = complete_google_login(
            db,
            get_google_oauth_client(settings),
            code,
            ttl_seconds=settings.principal_ttl_seconds,
        )
    except OAuthError as exc:
        logger.warning("auth.callback_failed error=%s", exc)
        return failure

    sid = create_session(db, principal, max_age_seconds=settings.session_max_age_seconds)
    response = RedirectResponse("/", status_code=302)
    response.delete_cookie(OAUTH_STATE_COOKIE)
    response.set_cookie(
        settings.session_cookie_name,
        sign_session_id(sid, settings.session_secret),
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=not settings.is_development,
    )
    return response


@router.get("/login")
def legacy_login() -> RedirectResponse:
    return RedirectResponse("/api/auth/google", status_code=302)


@router.get("/logout")
def logout(
    sid: str | None = Depends(get_session_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """End the login session and return to the landing page."""

    if sid is not None:
        destroy_session(db, sid)
    response = RedirectResponse("/", status_code=302)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/auth/user", response_model=UserRead)
def current_user(
    principal: SessionPrincipal = Depends(require_principal),
    db: Session = Depends(get_db),
) -> UserRead:
    """Return the stored account of the logged-in operator."""

    user = get_user(db, principal.id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserRead.model_validate(user)


@router.get("/auth/status", response_model=AuthStatus, response_model_exclude_none=True)
def auth_status(principal: SessionPrincipal | None = Depends(get_optional_principal)) -> AuthStatus:
    """Report whether the caller holds a live login session."""

    if principal is None or is_principal_expired(principal):
        return AuthStatus(authenticated=False)
    return AuthStatus(
        authenticated=True,
        user=AuthStatusUser(
            id=principal.id,
            email=principal.email,
            first_name=principal.first_name,
            last_name=principal.last_name,
            profile_image_url=principal.profile_image_url,
        ),
    )
