"""HTTP-level tests for the chat, public API and admin routes."""

from __future__ import annotations

import time
import unittest

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings
from app.db.dependencies import get_db
from app.main import app
from app.models.api_key import ApiKey
from app.models.auth_session import AuthSession
from app.models.base import Base
from app.models.message import Message
from app.schemas.auth import SessionPrincipal
from app.services.api_keys import create_api_key
from app.services.auth import create_session, sign_session_id
from app.services.backends import NOT_CONFIGURED_REPLY, BackendConfig, BackendSelector, get_backend_selector
from app.services.messages import create_message

SECRET = "route-test-secret"


class _StubChatClient:
    def __init__(self, reply: str | None = "Stub reply.") -> None:
        self.reply = reply
        self.calls: list[tuple[str, list[dict[str, str]]]] = []

    def complete(self, model: str, messages: list[dict[str, str]]) -> str | None:
        self.calls.append((model, messages))
        return self.reply


class ApiRoutesTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        Base.metadata.drop_all(cls.engine)
        cls.engine.dispose()

    def setUp(self) -> None:
        self.db: Session = self.SessionLocal()
        for model in (Message, ApiKey, AuthSession):
            self.db.execute(delete(model))
        self.db.commit()

        self.settings = Settings(environment="production", session_secret=SECRET)
        self.ollama = _StubChatClient("Relayed reply.")
        self.selector = BackendSelector(
            BackendConfig(ollama_base_url="http://ollama.test"),
            client_factory=lambda base_url, api_key, timeout_seconds: self.ollama,
        )

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_backend_selector] = lambda: self.selector
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.db.close()

    def _login(self) -> None:
        principal = SessionPrincipal(id="google-1", email="op@example.com", expires_at=int(time.time()) + 3600)
        sid = create_session(self.db, principal, max_age_seconds=3600)
        self.client.cookies.set(self.settings.session_cookie_name, sign_session_id(sid, SECRET))

    def _message_count(self) -> int:
        return self.db.scalar(select(func.count()).select_from(Message))

    def test_chat_requires_login(self) -> None:
        response = self.client.post("/api/chat", json={"message": "Hello"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"message": "Unauthorized"})
        self.assertEqual(self._message_count(), 0)
        self.assertEqual(self.ollama.calls, [])

    def test_chat_rejects_expired_principal(self) -> None:
        principal = SessionPrincipal(id="google-1", expires_at=int(time.time()) - 10)
        sid = create_session(self.db, principal, max_age_seconds=3600)
        self.client.cookies.set(self.settings.session_cookie_name, sign_session_id(sid, SECRET))

        response = self.client.post("/api/chat", json={"message": "Hello"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"message": "Session expired. Please login again."})

    def test_chat_relays_and_persists_exchange(self) -> None:
        self._login()

        response = self.client.post("/api/chat", json={"message": "Hello", "useOllama": True})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"response": "Relayed reply."})
        self.assertEqual(self._message_count(), 2)

    def test_chat_without_backend_still_answers_200(self) -> None:
        self.selector = BackendSelector(BackendConfig())
        self._login()

        response = self.client.post("/api/chat", json={"message": "Hello"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"response": NOT_CONFIGURED_REPLY})
        self.assertEqual(self._message_count(), 2)

    def test_chat_validation_errors_write_nothing(self) -> None:
        self._login()

        for body in ({}, {"message": ""}, {"message": "   "}):
            response = self.client.post("/api/chat", json=body)
            self.assertEqual(response.status_code, 400, body)

        self.assertEqual(self.client.post("/api/chat", json={}).json()["field"], "message")
        self.assertEqual(self._message_count(), 0)

    def test_development_mode_bypasses_login(self) -> None:
        self.settings = Settings(environment="development", session_secret=SECRET)

        response = self.client.post("/api/chat", json={"message": "Hello"})

        self.assertEqual(response.status_code, 200)

    def test_history_is_newest_first_and_bounded(self) -> None:
        create_message(self.db, "user", "hi")
        create_message(self.db, "assistant", "hello")

        response = self.client.get("/api/chat/history")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [(m["role"], m["content"]) for m in response.json()],
            [("assistant", "hello"), ("user", "hi")],
        )
        self.assertEqual(len(self.client.get("/api/chat/history", params={"limit": 1}).json()), 1)

    def test_clear_history(self) -> None:
        create_message(self.db, "user", "hi")

        response = self.client.post("/api/chat/clear")

        self.assertEqual(response.json(), {"success": True})
        self.assertEqual(self.client.get("/api/chat/history").json(), [])

    def test_public_chat_rejects_missing_and_unknown_keys(self) -> None:
        missing = self.client.post("/api/v1/chat", json={"message": "Hello"})
        unknown = self.client.post("/api/v1/chat", json={"message": "Hello"}, headers={"x-api-key": "ak_nope"})

        self.assertEqual(missing.status_code, 401)
        self.assertEqual(missing.json(), {"error": "Missing API Key"})
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(unknown.json(), {"error": "Invalid API Key"})
        self.assertEqual(self._message_count(), 0)
        self.assertEqual(self.ollama.calls, [])

    def test_public_chat_checks_key_before_parsing_body(self) -> None:
        wrong_shape = self.client.post("/api/v1/chat", json=[1, 2], headers={"x-api-key": "bogus"})
        not_json = self.client.post(
            "/api/v1/chat",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        self.assertEqual(wrong_shape.status_code, 401)
        self.assertEqual(wrong_shape.json(), {"error": "Invalid API Key"})
        self.assertEqual(not_json.status_code, 401)
        self.assertEqual(not_json.json(), {"error": "Missing API Key"})
        self.assertEqual(self._message_count(), 0)

    def test_public_chat_malformed_body_with_valid_key(self) -> None:
        api_key = create_api_key(self.db, "partner-x")

        for body in (b"{not json", b"[1, 2]", b"", b'{"message": 5}'):
            response = self.client.post(
                "/api/v1/chat",
                content=body,
                headers={"x-api-key": api_key.key, "content-type": "application/json"},
            )
            self.assertEqual(response.status_code, 400, body)
            self.assertEqual(response.json(), {"error": "message is required"})

        self.assertEqual(self._message_count(), 0)
        self.assertEqual(self.ollama.calls, [])

    def test_public_chat_with_valid_key(self) -> None:
        api_key = create_api_key(self.db, "partner-x")

        response = self.client.post("/api/v1/chat", json={"message": "Hello"}, headers={"x-api-key": api_key.key})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"response": "Relayed reply."})
        history = self.client.get("/api/chat/history").json()
        self.assertEqual(history[1]["content"], "[API:partner-x] Hello")

    def test_public_chat_without_backend_is_a_hard_error(self) -> None:
        self.selector = BackendSelector(BackendConfig())
        api_key = create_api_key(self.db, "partner-x")

        response = self.client.post("/api/v1/chat", json={"message": "Hello"}, headers={"x-api-key": api_key.key})

        self.assertEqual(response.status_code, 500)
        self.assertIn("Ollama is not configured", response.json()["error"])
        self.assertEqual(self._message_count(), 0)

    def test_public_chat_requires_message(self) -> None:
        api_key = create_api_key(self.db, "partner-x")

        response = self.client.post("/api/v1/chat", json={"message": ""}, headers={"x-api-key": api_key.key})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._message_count(), 0)

    def test_admin_key_management(self) -> None:
        self.assertEqual(self.client.get("/api/admin/keys").status_code, 401)
        self._login()

        created = self.client.post("/api/admin/keys", json={"name": "partner-x"})
        self.assertEqual(created.status_code, 200)
        body = created.json()
        self.assertEqual(body["name"], "partner-x")
        self.assertTrue(body["key"].startswith("ak_"))
        self.assertIn("createdAt", body)

        listed = self.client.get("/api/admin/keys").json()
        self.assertEqual([key["id"] for key in listed], [body["id"]])

        deleted = self.client.delete(f"/api/admin/keys/{body['id']}")
        self.assertEqual(deleted.json(), {"success": True})
        self.assertEqual(self.client.get("/api/admin/keys").json(), [])

    def test_identity_endpoint(self) -> None:
        missing = self.client.post("/alkulous/sys/ai/01", json={})
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.json(), {"error": "No prompt provided"})

        response = self.client.post("/alkulous/sys/ai/01", json={"prompt": "Who are you?"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"system": "ALKLOUS.SYS.AI.01", "reply": "Relayed reply."})

    def test_identity_endpoint_bad_bodies_use_error_shape(self) -> None:
        for body in (b"", b"{not json", b'{"prompt": 5}', b"[]"):
            response = self.client.post(
                "/alkulous/sys/ai/01",
                content=body,
                headers={"content-type": "application/json"},
            )
            self.assertEqual(response.status_code, 400, body)
            self.assertEqual(response.json(), {"error": "No prompt provided"})

        self.assertEqual(self._message_count(), 0)
        self.assertEqual(self.ollama.calls, [])

    def test_ollama_status_when_unconfigured(self) -> None:
        self.selector = BackendSelector(BackendConfig())

        status = self.client.get("/api/ollama/status").json()
        models = self.client.get("/api/ollama/models").json()

        self.assertEqual(
            status,
            {"available": False, "configured": False, "message": "OLLAMA_BASE_URL not configured"},
        )
        self.assertEqual(models, {"models": [], "error": "Ollama not configured"})

    def test_auth_status(self) -> None:
        self.assertEqual(self.client.get("/api/auth/status").json(), {"authenticated": False})
        self._login()

        status = self.client.get("/api/auth/status").json()

        self.assertTrue(status["authenticated"])
        self.assertEqual(status["user"]["id"], "google-1")

    def test_logout_destroys_session(self) -> None:
        self._login()

        response = self.client.get("/api/logout", follow_redirects=False)

        self.assertEqual(response.status_code, 302)
        self.assertEqual(self.db.scalar(select(func.count()).select_from(AuthSession)), 0)


if __name__ == "__main__":
    unittest.main()
