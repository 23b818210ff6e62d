"""API key administration routes."""

import logging

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from app.db.dependencies import get_db
from app.schemas.api_key import ApiKeyCreate, ApiKeyRead
from app.schemas.auth import SessionPrincipal
from app.schemas.chat import SuccessResponse
from app.security import require_principal
from app.services.api_keys import create_api_key, delete_api_key, list_api_keys

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/keys")


@router.get("", response_model=list[ApiKeyRead])
def get_api_keys(
    _: SessionPrincipal = Depends(require_principal),
    db: Session = Depends(get_db),
) -> list[ApiKeyRead]:
    """List issued API keys, newest first."""

    return [ApiKeyRead.model_validate(api_key) for api_key in list_api_keys(db)]


@router.post("", response_model=ApiKeyRead)
def issue_api_key(
    payload: ApiKeyCreate,
    principal: SessionPrincipal = Depends(require_principal),
    db: Session = Depends(get_db),
) -> ApiKeyRead:
    """Issue a new API key for the public chat endpoint."""

    api_key = create_api_key(db, payload.name)
    logger.info("api_keys.created api_key_id=%d name=%s principal_id=%s", api_key.id, api_key.name, principal.id)
    return ApiKeyRead.model_validate(api_key)


@router.delete("/{api_key_id}", response_model=SuccessResponse)
def revoke_api_key(
    api_key_id: int = Path(..., ge=1),
    principal: SessionPrincipal = Depends(require_principal),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    """Revoke an API key. Unknown ids are acknowledged all the same."""

    removed = delete_api_key(db, api_key_id)
    logger.info("api_keys.deleted api_key_id=%d removed=%s principal_id=%s", api_key_id, removed, principal.id)
    return SuccessResponse()
