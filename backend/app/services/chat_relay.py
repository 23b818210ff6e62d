"""Chat relay: answer one user turn through an inference backend and persist the exchange."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path
from time import perf_counter

from sqlalchemy.orm import Session

from app.models.api_key import ApiKey
from app.models.message import Message
from app.services.backends import (
    BackendNotConfiguredError,
    BackendRequestError,
    BackendSelector,
    UnconfiguredBackend,
)
from app.services.messages import create_message, list_messages

logger = logging.getLogger(__name__)

OPERATOR_CONTEXT_TURNS = 10
PUBLIC_CONTEXT_TURNS = 5

PUBLIC_EMPTY_REPLY = "I am processing your request."
IDENTITY_EMPTY_REPLY = "No response from AI."
IDENTITY_SYSTEM_NAME = "ALKLOUS.SYS.AI.01"
PUBLIC_NOT_CONFIGURED_MESSAGE = "Ollama is not configured. Please set OLLAMA_BASE_URL in your .env file."

_PROMPT_DIR = Path(__file__).resolve().parents[1] / "prompts"
_PROMPT_FILES: dict[str, Path] = {
    "operator": _PROMPT_DIR / "operator_identity.txt",
    "external": _PROMPT_DIR / "external_interface.txt",
    "identity": _PROMPT_DIR / "system_identity.txt",
}


class ChatRelayError(RuntimeError):
    """Raised when a chat turn cannot be relayed as requested."""


class EmptyMessageError(ChatRelayError):
    """Raised when the user turn has no content."""


@lru_cache(maxsize=8)
def get_system_prompt(name: str) -> str:
    prompt_file = _PROMPT_FILES.get(name)
    if prompt_file is None:
        raise ChatRelayError(f"System prompt is not registered: {name}")
    try:
        prompt_text = prompt_file.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ChatRelayError(f"Failed to load system prompt file: {prompt_file}") from exc
    if not prompt_text:
        raise ChatRelayError(f"System prompt file is empty: {prompt_file}")
    return prompt_text


def build_chat_messages(
    system_prompt: str,
    history: Sequence[Message],
    user_message: str,
) -> list[dict[str, str]]:
    """Assemble the model request: system prompt, history oldest-first, then the new turn.

    ``history`` is expected newest-first, as returned by ``list_messages``.
    """

    messages = [{"role": "system", "content": system_prompt}]
    for message in reversed(history):
        messages.append({"role": message.role, "content": message.content})
    messages.append({"role": "user", "content": user_message})
    return messages


def relay_chat_turn(
    db: Session,
    *,
    message: str,
    selector: BackendSelector,
    use_local_brain: bool = False,
    use_ollama: bool | None = None,
    principal_id: str | None = None,
) -> str:
    """Answer one operator turn and persist both sides of the exchange.

    The user turn is written before the backend is called, so history keeps the
    question even when no answer could be produced. Backend failures never
    propagate: they become a readable error string that is stored and returned
    like any other reply.
    """

    if not message or not message.strip():
        raise EmptyMessageError("Message content cannot be empty.")

    started = perf_counter()
    create_message(db, "user", message)
    history = list_messages(db, limit=OPERATOR_CONTEXT_TURNS)
    messages_for_model = build_chat_messages(get_system_prompt("operator"), history, message)

    backend = selector.select(use_local_brain=bool(use_local_brain), use_ollama=use_ollama)
    if isinstance(backend, UnconfiguredBackend):
        logger.warning("chat.relay_backend_unconfigured principal_id=%s", principal_id)
        reply = backend.reply
    else:
        try:
            content = backend.client.complete(backend.model, messages_for_model)
            reply = content or backend.empty_reply
        except BackendRequestError as exc:
            logger.warning(
                "chat.relay_backend_failed principal_id=%s backend=%s model=%s error=%s",
                principal_id,
                backend.label,
                backend.model,
                exc,
                exc_info=exc,
            )
            reply = backend.error_reply

    create_message(db, "assistant", reply)
    logger.info(
        "chat.relay_turn principal_id=%s backend=%s context_turns=%d total_ms=%.2f",
        principal_id,
        backend.label,
        len(history),
        (perf_counter() - started) * 1000.0,
    )
    return reply


def relay_public_chat_turn(
    db: Session,
    *,
    api_key: ApiKey,
    message: str,
    selector: BackendSelector,
) -> str:
    """Answer one turn for an API-key caller.

    Only Ollama is used. The exchange is persisted, tagged with the key name,
    once the backend has answered; failures are raised to the caller.
    """

    if not message or not message.strip():
        raise EmptyMessageError("Message content cannot be empty.")

    backend = selector.select_ollama()
    if isinstance(backend, UnconfiguredBackend):
        raise BackendNotConfiguredError(PUBLIC_NOT_CONFIGURED_MESSAGE)

    started = perf_counter()
    history = list_messages(db, limit=PUBLIC_CONTEXT_TURNS)
    messages_for_model = build_chat_messages(get_system_prompt("external"), history, message)
    content = backend.client.complete(backend.model, messages_for_model)
    reply = content or PUBLIC_EMPTY_REPLY

    create_message(db, "user", f"[API:{api_key.name}] {message}")
    create_message(db, "assistant", reply)
    logger.info(
        "chat.public_turn api_key_id=%d context_turns=%d total_ms=%.2f",
        api_key.id,
        len(history),
        (perf_counter() - started) * 1000.0,
    )
    return reply


def run_identity_prompt(db: Session, *, prompt: str, selector: BackendSelector) -> str:
    """Answer a single stateless prompt under the long-form identity persona."""

    if not prompt or not prompt.strip():
        raise EmptyMessageError("No prompt provided")

    backend = selector.select_ollama()
    if isinstance(backend, UnconfiguredBackend):
        raise BackendNotConfiguredError(PUBLIC_NOT_CONFIGURED_MESSAGE)

    messages_for_model = build_chat_messages(get_system_prompt("identity"), [], prompt)
    content = backend.client.complete(backend.model, messages_for_model)
    reply = content or IDENTITY_EMPTY_REPLY

    create_message(db, "user", f"[PUBLIC_API] {prompt}")
    create_message(db, "assistant", reply)
    return reply
