"""Unauthenticated and API-key chat routes for external callers."""

import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.db.dependencies import get_db
from app.schemas.chat import ChatResponse, IdentityPromptRequest, IdentityPromptResponse, PublicChatRequest
from app.services.api_keys import ApiKeyAuthError, authenticate_api_key
from app.services.backends import BackendNotConfiguredError, BackendSelector, get_backend_selector
from app.services.chat_relay import (
    IDENTITY_SYSTEM_NAME,
    EmptyMessageError,
    relay_public_chat_turn,
    run_identity_prompt,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def read_raw_body(request: Request) -> bytes:
    """Hand the unparsed body to handlers that must authenticate before validating it."""

    return await request.body()


@router.post("/api/v1/chat", response_model=ChatResponse)
def public_chat(
    raw_body: bytes = Depends(read_raw_body),
    x_api_key: str | None = Header(default=None),
    db: Session = Depends(get_db),
    selector: BackendSelector = Depends(get_backend_selector),
):
    """Relay one message for a caller holding an API key."""

    try:
        api_key = authenticate_api_key(db, x_api_key)
    except ApiKeyAuthError as exc:
        return JSONResponse(status_code=401, content={"error": str(exc)})

    try:
        chat_request = PublicChatRequest.model_validate_json(raw_body)
    except ValidationError:
        return JSONResponse(status_code=400, content={"error": "message is required"})

    try:
        reply = relay_public_chat_turn(db, api_key=api_key, message=chat_request.message, selector=selector)
    except EmptyMessageError:
        return JSONResponse(status_code=400, content={"error": "message is required"})
    except BackendNotConfiguredError as exc:
        return JSONResponse(status_code=500, content={"error": str(exc)})
    except Exception:
        logger.exception("chat.public_relay_failed api_key_id=%d", api_key.id)
        db.rollback()
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})
    return ChatResponse(response=reply)


@router.post("/alkulous/sys/ai/01", response_model=IdentityPromptResponse)
def identity_prompt(
    raw_body: bytes = Depends(read_raw_body),
    db: Session = Depends(get_db),
    selector: BackendSelector = Depends(get_backend_selector),
):
    """Answer one stateless prompt under the long-form identity persona."""

    try:
        payload = IdentityPromptRequest.model_validate_json(raw_body)
    except ValidationError:
        return JSONResponse(status_code=400, content={"error": "No prompt provided"})
    if not payload.prompt or not payload.prompt.strip():
        return JSONResponse(status_code=400, content={"error": "No prompt provided"})
    try:
        reply = run_identity_prompt(db, prompt=payload.prompt, selector=selector)
    except EmptyMessageError:
        return JSONResponse(status_code=400, content={"error": "No prompt provided"})
    except BackendNotConfiguredError as exc:
        return JSONResponse(status_code=500, content={"error": str(exc)})
    except Exception as exc:
        logger.exception("chat.identity_failed")
        db.rollback()
        return JSONResponse(
            status_code=500,
            content={"error": f"{IDENTITY_SYSTEM_NAME} core unreachable", "details": str(exc)},
        )
    return IdentityPromptResponse(system=IDENTITY_SYSTEM_NAME, reply=reply)
