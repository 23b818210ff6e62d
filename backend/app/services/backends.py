"""Inference backend selection and the chat-completions client they share."""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from http import client as http_client
from typing import Any, Callable, ClassVar, Protocol, Union
from urllib import error as urllib_error
from urllib import request as urllib_request

from app.config import Settings, get_settings

NOT_CONFIGURED_REPLY = (
    "Error: Ollama is not configured. Please set OLLAMA_BASE_URL in your .env file "
    "and ensure Ollama is running."
)


class BackendRequestError(RuntimeError):
    """Raised when an inference backend call fails."""


class BackendNotConfiguredError(RuntimeError):
    """Raised when a caller requires a backend and none is configured."""


class ChatCompletionClient(Protocol):
    """Protocol for OpenAI-chat-completion-shaped providers."""

    def complete(self, model: str, messages: list[dict[str, str]]) -> str | None:
        """Return the assistant text, or None when the reply carried no content."""


@dataclass(slots=True)
class OpenAICompatibleChatClient:
    """Minimal chat completions client for Ollama-style servers using stdlib HTTP."""

    base_url: str
    api_key: str
    timeout_seconds: float | None = None

    def complete(self, model: str, messages: list[dict[str, str]]) -> str | None:
        payload = {
            "model": model,
            "messages": messages,
        }
        url = f"{self.base_url.rstrip('/')}/v1/chat/completions"
        req = urllib_request.Request(
            url=url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        kwargs: dict[str, Any] = {}
        if self.timeout_seconds is not None:
            kwargs["timeout"] = self.timeout_seconds
        try:
            with urllib_request.urlopen(req, **kwargs) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise BackendRequestError(f"HTTP {exc.code} from {url}: {detail}") from exc
        except urllib_error.URLError as exc:
            raise BackendRequestError(f"Request to {url} failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise BackendRequestError(f"Request to {url} timed out") from exc
        except (OSError, http_client.HTTPException) as exc:
            raise BackendRequestError(f"Request to {url} failed: {exc!r}") from exc
        except UnicodeDecodeError as exc:
            raise BackendRequestError(f"Chat completion response from {url} is not UTF-8") from exc

        try:
            decoded = json.loads(raw)
            content = decoded["choices"][0]["message"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError, json.JSONDecodeError) as exc:
            raise BackendRequestError(f"Unexpected chat completion response from {url}") from exc
        if content is not None and not isinstance(content, str):
            raise BackendRequestError(f"Chat completion content from {url} is not text")
        return content


ChatClientFactory = Callable[[str, str, Union[float, None]], ChatCompletionClient]


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """Process-wide inference endpoints, resolved once at startup."""

    local_brain_url: str | None = None
    local_brain_model: str = "local-brain"
    ollama_base_url: str | None = None
    ollama_model: str = "gemma3:4b"
    timeout_seconds: float | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> BackendConfig:
        return cls(
            local_brain_url=(settings.local_ai_brain_url or "").strip() or None,
            local_brain_model=settings.local_brain_model,
            ollama_base_url=(settings.ollama_base_url or "").strip() or None,
            ollama_model=settings.ollama_model,
            timeout_seconds=settings.inference_timeout_seconds,
        )


@dataclass(frozen=True, slots=True)
class LocalBrainBackend:
    """Self-hosted "local brain" server."""

    label: ClassVar[str] = "local_brain"
    empty_reply: ClassVar[str] = "Local AI Brain failed to respond."
    error_reply: ClassVar[str] = "Error: Could not connect to the local AI Brain server."

    base_url: str
    model: str
    client: ChatCompletionClient


@dataclass(frozen=True, slots=True)
class OllamaBackend:
    """Ollama server reached through its OpenAI-compatible API."""

    label: ClassVar[str] = "ollama"
    empty_reply: ClassVar[str] = "Ollama failed to respond."
    error_reply: ClassVar[str] = (
        "Error: Could not connect to Ollama. Make sure Ollama is running with "
        "`ollama serve` and the model is available."
    )

    base_url: str
    model: str
    client: ChatCompletionClient


@dataclass(frozen=True, slots=True)
class UnconfiguredBackend:
    """No endpoint configured; answers with a fixed sentinel instead of calling out."""

    label: ClassVar[str] = "unconfigured"

    reply: str = NOT_CONFIGURED_REPLY


Backend = Union[LocalBrainBackend, OllamaBackend, UnconfiguredBackend]


def _default_client_factory(base_url: str, api_key: str, timeout_seconds: float | None) -> ChatCompletionClient:
    return OpenAICompatibleChatClient(base_url=base_url, api_key=api_key, timeout_seconds=timeout_seconds)


class BackendSelector:
    """Resolve which inference backend answers a request.

    Clients are built once from ``config``; selection itself is pure and never
    raises. Missing configuration resolves to :class:`UnconfiguredBackend`.
    """

    def __init__(
        self,
        config: BackendConfig,
        *,
        client_factory: ChatClientFactory = _default_client_factory,
    ) -> None:
        self.config = config
        self._local_brain: LocalBrainBackend | None = None
        self._ollama: OllamaBackend | None = None
        if config.local_brain_url:
            self._local_brain = LocalBrainBackend(
                base_url=config.local_brain_url,
                model=config.local_brain_model,
                client=client_factory(config.local_brain_url, "local-brain", config.timeout_seconds),
            )
        if config.ollama_base_url:
            self._ollama = OllamaBackend(
                base_url=config.ollama_base_url,
                model=config.ollama_model,
                client=client_factory(config.ollama_base_url, "ollama", config.timeout_seconds),
            )

    def select(self, *, use_local_brain: bool = False, use_ollama: bool | None = None) -> Backend:
        """Pick a backend for one internal chat turn.

        ``use_ollama`` is accepted but advisory: Ollama is the default whenever
        it is configured and the local brain was not requested.
        """

        _ = use_ollama
        if use_local_brain and self._local_brain is not None:
            return self._local_brain
        if self._ollama is not None:
            return self._ollama
        return UnconfiguredBackend()

    def select_ollama(self) -> OllamaBackend | UnconfiguredBackend:
        """Pick the backend for public callers, which may only use Ollama."""

        if self._ollama is not None:
            return self._ollama
        return UnconfiguredBackend()


@lru_cache
def get_backend_selector() -> BackendSelector:
    """Return the process-wide selector built from settings."""

    return BackendSelector(BackendConfig.from_settings(get_settings()))
