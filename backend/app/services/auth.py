"""Login session gateway: Google OAuth, operator accounts and server-side sessions."""

from __future__ import annotations

import json
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib import error as urllib_error
from urllib import parse as urllib_parse
from urllib import request as urllib_request

from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.config import Settings
from app.models.auth_session import AuthSession
from app.models.user import User
from app.schemas.auth import SessionPrincipal

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
GOOGLE_SCOPES = "openid profile email"

_SESSION_SALT = "alkulous.session"
_STATE_SALT = "alkulous.oauth-state"


class OAuthError(RuntimeError):
    """Raised when the OAuth provider exchange fails."""


class OAuthNotConfiguredError(OAuthError):
    """Raised when Google OAuth credentials are missing."""


@dataclass(slots=True)
class GoogleOAuthClient:
    """Authorization-code flow against Google using stdlib HTTP."""

    client_id: str
    client_secret: str
    callback_url: str
    timeout_seconds: int = 30

    def authorization_url(self, state: str) -> str:
        query = urllib_parse.urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.callback_url,
                "response_type": "code",
                "scope": GOOGLE_SCOPES,
                "prompt": "select_account",
                "state": state,
            }
        )
        return f"{GOOGLE_AUTHORIZE_URL}?{query}"

    def exchange_code(self, code: str) -> dict[str, Any]:
        body = urllib_parse.urlencode(
            {
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.callback_url,
                "grant_type": "authorization_code",
            }
        ).encode("utf-8")
        req = urllib_request.Request(
            url=GOOGLE_TOKEN_URL,
            data=body,
            method="POST",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        tokens = self._send(req)
        if not isinstance(tokens.get("access_token"), str):
            raise OAuthError("Google token response did not include an access token")
        return tokens

    def fetch_userinfo(self, access_token: str) -> dict[str, Any]:
        req = urllib_request.Request(
            url=GOOGLE_USERINFO_URL,
            method="GET",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        profile = self._send(req)
        if not profile.get("sub"):
            raise OAuthError("Google profile did not include a subject id")
        return profile

    def _send(self, req: urllib_request.Request) -> dict[str, Any]:
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise OAuthError(f"Google HTTP {exc.code}: {detail}") from exc
        except urllib_error.URLError as exc:
            raise OAuthError(f"Google request failed: {exc.reason}") from exc
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise OAuthError("Google returned a non-JSON response") from exc
        if not isinstance(decoded, dict):
            raise OAuthError("Google returned an unexpected response")
        return decoded


def get_google_oauth_client(settings: Settings) -> GoogleOAuthClient:
    """Build the OAuth client from settings or raise when credentials are missing."""

    if not (settings.google_client_id and settings.google_client_secret and settings.google_callback_url):
        raise OAuthNotConfiguredError(
            "GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_CALLBACK_URL must be set to enable login."
        )
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        callback_url=settings.google_callback_url,
    )


# Cookie signing


def _serializer(secret: str, salt: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret, salt=salt)


def sign_session_id(sid: str, secret: str) -> str:
    return _serializer(secret, _SESSION_SALT).dumps(sid)


def unsign_session_id(value: str, secret: str, *, max_age_seconds: int) -> str | None:
    """Return the session id carried by a cookie, or None if tampered or too old."""

    try:
        sid = _serializer(secret, _SESSION_SALT).loads(value, max_age=max_age_seconds)
    except BadSignature:
        return None
    return sid if isinstance(sid, str) else None


def new_oauth_state(secret: str) -> tuple[str, str]:
    """Return ``(state, signed_cookie_value)`` for a login redirect."""

    state = secrets.token_urlsafe(24)
    return state, _serializer(secret, _STATE_SALT).dumps(state)


def verify_oauth_state(state: str | None, cookie_value: str | None, secret: str, *, max_age_seconds: int = 600) -> bool:
    if not state or not cookie_value:
        return False
    try:
        expected = _serializer(secret, _STATE_SALT).loads(cookie_value, max_age=max_age_seconds)
    except BadSignature:
        return False
    return secrets.compare_digest(str(expected), state)


# Accounts


def upsert_user(
    db: Session,
    *,
    user_id: str,
    email: str | None,
    first_name: str | None,
    last_name: str | None,
    profile_image_url: str | None,
) -> User:
    """Create or refresh the operator account for an OAuth subject."""

    user = db.get(User, user_id)
    if user is None:
        user = User(id=user_id)
        db.add(user)
    user.email = email
    user.first_name = first_name
    user.last_name = last_name
    user.profile_image_url = profile_image_url
    db.commit()
    db.refresh(user)
    return user


def get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def principal_from_google_profile(
    user: User,
    tokens: dict[str, Any],
    *,
    ttl_seconds: int,
    now: float | None = None,
) -> SessionPrincipal:
    issued_at = int(now if now is not None else time.time())
    return SessionPrincipal(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        profile_image_url=user.profile_image_url,
        access_token=tokens.get("access_token"),
        refresh_token=tokens.get("refresh_token"),
        expires_at=issued_at + ttl_seconds,
    )


def complete_google_login(
    db: Session,
    oauth_client: GoogleOAuthClient,
    code: str,
    *,
    ttl_seconds: int,
) -> SessionPrincipal:
    """Exchange an authorization code and return the principal for a new session."""

    tokens = oauth_client.exchange_code(code)
    profile = oauth_client.fetch_userinfo(str(tokens["access_token"]))

    display_parts = str(profile.get("name") or "").split()
    first_name = profile.get("given_name") or (display_parts[0] if display_parts else None)
    last_name = profile.get("family_name") or (" ".join(display_parts[1:]) or None)

    user = upsert_user(
        db,
        user_id=str(profile["sub"]),
        email=profile.get("email") or None,
        first_name=first_name or None,
        last_name=last_name or None,
        profile_image_url=profile.get("picture") or None,
    )
    logger.info("auth.login_completed user_id=%s", user.id)
    return principal_from_google_profile(user, tokens, ttl_seconds=ttl_seconds)


# Server-side sessions


def create_session(db: Session, principal: SessionPrincipal, *, max_age_seconds: int) -> str:
    """Store ``principal`` and return the new session id."""

    sid = secrets.token_urlsafe(32)
    db.add(
        AuthSession(
            sid=sid,
            sess=principal.model_dump(by_alias=True),
            expire=datetime.now(timezone.utc) + timedelta(seconds=max_age_seconds),
        )
    )
    db.commit()
    return sid


def load_session(db: Session, sid: str) -> SessionPrincipal | None:
    """Return the principal for a live session id, or None."""

    record = db.get(AuthSession, sid)
    if record is None:
        return None
    expire = record.expire
    if expire.tzinfo is None:
        expire = expire.replace(tzinfo=timezone.utc)
    if expire <= datetime.now(timezone.utc):
        return None
    return SessionPrincipal.model_validate(record.sess)


def destroy_session(db: Session, sid: str) -> None:
    db.execute(delete(AuthSession).where(AuthSession.sid == sid))
    db.commit()


def purge_expired_sessions(db: Session) -> int:
    result = db.execute(delete(AuthSession).where(AuthSession.expire <= datetime.now(timezone.utc)))
    db.commit()
    return result.rowcount or 0


def development_principal() -> SessionPrincipal:
    """Fixed principal used when the app runs with ENVIRONMENT=development."""

    return SessionPrincipal(
        id="dev-user",
        email="dev@localhost",
        first_name="Dev",
        last_name="User",
        expires_at=int(time.time()) + 3600,
    )


def is_principal_expired(principal: SessionPrincipal, *, now: float | None = None) -> bool:
    if principal.expires_at is None:
        return False
    return (now if now is not None else time.time()) > principal.expires_at
