"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.db.session import SessionLocal
from app.routers import admin_keys, auth, chat, ollama, public_api
from app.services.auth import purge_expired_sessions
from app.services.backends import get_backend_selector

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _warm_backend_state() -> None:
    """Prime the DB connection and backend clients at process start."""

    selector = get_backend_selector()
    logger.info(
        "startup.backends local_brain_configured=%s ollama_configured=%s ollama_model=%s",
        bool(selector.config.local_brain_url),
        bool(selector.config.ollama_base_url),
        selector.config.ollama_model,
    )
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
            purged = purge_expired_sessions(db)
            logger.info("startup.sessions_purged count=%d", purged)
    except Exception:
        logger.exception("Backend warm-up failed; continuing without startup pre-warm.")


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    _warm_backend_state()
    yield


settings = get_settings()
app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer malformed request bodies with 400 and the first failing field."""

    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    return JSONResponse(
        status_code=400,
        content={"message": first.get("msg", "Invalid request"), "field": ".".join(location) or None},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


app.include_router(auth.router, tags=["auth"])
app.include_router(chat.router, tags=["chat"])
app.include_router(public_api.router, tags=["public-api"])
app.include_router(admin_keys.router, tags=["admin"])
app.include_router(ollama.router, tags=["ollama"])


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}
