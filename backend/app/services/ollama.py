"""Ollama server discovery: reachability and installed models."""

from __future__ import annotations

import json
import logging
from http import client as http_client
from typing import Any, Callable
from urllib import error as urllib_error
from urllib import request as urllib_request

from app.schemas.ollama import OllamaModels, OllamaStatus
from app.services.backends import BackendConfig

logger = logging.getLogger(__name__)

_TAGS_TIMEOUT_SECONDS = 10


class OllamaUnavailableError(RuntimeError):
    """Raised when the Ollama server cannot be reached."""


class OllamaBadResponseError(RuntimeError):
    """Raised when the Ollama server answers with a non-success status or bad body."""


def fetch_ollama_tags(base_url: str, *, timeout_seconds: float = _TAGS_TIMEOUT_SECONDS) -> list[dict[str, Any]]:
    """Return the raw ``models`` list from ``GET {base_url}/api/tags``."""

    url = f"{base_url.rstrip('/')}/api/tags"
    req = urllib_request.Request(url=url, method="GET", headers={"Accept": "application/json"})
    try:
        with urllib_request.urlopen(req, timeout=timeout_seconds) as resp:
            raw = resp.read().decode("utf-8")
    except urllib_error.HTTPError as exc:
        raise OllamaBadResponseError(f"Ollama HTTP {exc.code}") from exc
    except (OSError, http_client.HTTPException) as exc:
        raise OllamaUnavailableError(f"Ollama request failed: {exc!r}") from exc
    except UnicodeDecodeError as exc:
        raise OllamaBadResponseError("Ollama returned a non-UTF-8 tags response") from exc

    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise OllamaBadResponseError("Ollama returned a non-JSON tags response") from exc
    models = decoded.get("models") if isinstance(decoded, dict) else None
    if not isinstance(models, list):
        return []
    return [model for model in models if isinstance(model, dict)]


TagsFetcher = Callable[[str], list[dict[str, Any]]]


def get_ollama_status(config: BackendConfig, *, fetch_tags: TagsFetcher = fetch_ollama_tags) -> OllamaStatus:
    """Report whether Ollama is configured and answering."""

    if not config.ollama_base_url:
        return OllamaStatus(available=False, configured=False, message="OLLAMA_BASE_URL not configured")
    try:
        models = fetch_tags(config.ollama_base_url)
    except OllamaBadResponseError as exc:
        logger.warning("ollama.status_bad_response error=%s", exc)
        return OllamaStatus(available=False, configured=True, message="Ollama server not responding")
    except OllamaUnavailableError as exc:
        logger.warning("ollama.status_unreachable error=%s", exc)
        return OllamaStatus(
            available=False,
            configured=True,
            message="Could not connect to Ollama server. Make sure Ollama is running.",
        )
    return OllamaStatus(
        available=True,
        configured=True,
        current_model=config.ollama_model,
        models=[str(model["name"]) for model in models if model.get("name")],
    )


def list_ollama_models(config: BackendConfig, *, fetch_tags: TagsFetcher = fetch_ollama_tags) -> OllamaModels:
    """List models installed on the configured Ollama server."""

    if not config.ollama_base_url:
        return OllamaModels(error="Ollama not configured")
    try:
        models = fetch_tags(config.ollama_base_url)
    except OllamaBadResponseError:
        return OllamaModels(error="Could not fetch models")
    except OllamaUnavailableError:
        return OllamaModels(error="Ollama server not available")
    return OllamaModels(models=models, current_model=config.ollama_model)
