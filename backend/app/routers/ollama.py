"""Ollama discovery routes."""

from fastapi import APIRouter, Depends

from app.schemas.ollama import OllamaModels, OllamaStatus
from app.services.backends import BackendSelector, get_backend_selector
from app.services.ollama import get_ollama_status, list_ollama_models

router = APIRouter(prefix="/api/ollama")


@router.get("/status", response_model=OllamaStatus, response_model_exclude_none=True)
def ollama_status(selector: BackendSelector = Depends(get_backend_selector)) -> OllamaStatus:
    """Report whether the configured Ollama server is reachable."""

    return get_ollama_status(selector.config)


@router.get("/models", response_model=OllamaModels, response_model_exclude_none=True)
def ollama_models(selector: BackendSelector = Depends(get_backend_selector)) -> OllamaModels:
    """List models installed on the configured Ollama server."""

    return list_ollama_models(selector.config)
