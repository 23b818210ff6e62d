"""Operator chat routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.db.dependencies import get_db
from app.schemas.auth import SessionPrincipal
from app.schemas.chat import ChatResponse, ChatSendRequest, SuccessResponse
from app.schemas.message import MessageRead
from app.security import require_principal
from app.services.backends import BackendSelector, get_backend_selector
from app.services.chat_relay import EmptyMessageError, relay_chat_turn
from app.services.messages import clear_messages, list_messages

logger = logging.getLogger(__name__)

HistoryLimitParam = Query(default=50, ge=1, le=500)

router = APIRouter(prefix="/api/chat")


@router.post("", response_model=ChatResponse)
def send_chat_message(
    payload: ChatSendRequest,
    principal: SessionPrincipal = Depends(require_principal),
    db: Session = Depends(get_db),
    selector: BackendSelector = Depends(get_backend_selector),
):
    """Relay one operator message and return the assistant reply."""

    try:
        reply = relay_chat_turn(
            db,
            message=payload.message,
            selector=selector,
            use_local_brain=bool(payload.use_local_brain),
            use_ollama=payload.use_ollama,
            principal_id=principal.id,
        )
    except EmptyMessageError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception:
        logger.exception("chat.relay_failed principal_id=%s", principal.id)
        db.rollback()
        return JSONResponse(status_code=500, content={"message": "Failed to process chat"})
    return ChatResponse(response=reply)


@router.get("/history", response_model=list[MessageRead])
def get_chat_history(
    limit: int = HistoryLimitParam,
    db: Session = Depends(get_db),
) -> list[MessageRead]:
    """List the most recent chat turns, newest first."""

    return [MessageRead.model_validate(message) for message in list_messages(db, limit=limit)]


@router.post("/clear", response_model=SuccessResponse)
def clear_chat_history(db: Session = Depends(get_db)) -> SuccessResponse:
    """Delete the whole chat history."""

    removed = clear_messages(db)
    logger.info("chat.history_cleared removed=%d", removed)
    return SuccessResponse()
