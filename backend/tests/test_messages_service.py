"""Tests for chat history persistence."""

from __future__ import annotations

import unittest

from sqlalchemy import create_engine, delete
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models.base import Base
from app.models.message import Message
from app.services.messages import clear_messages, create_message, list_messages


class MessageStoreTests(unittest.TestCase):
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
        self.db.execute(delete(Message))
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()

    def test_list_returns_newest_first(self) -> None:
        create_message(self.db, "user", "hi")
        create_message(self.db, "assistant", "hello")

        records = list_messages(self.db, limit=10)

        self.assertEqual(
            [(m.role, m.content) for m in records],
            [("assistant", "hello"), ("user", "hi")],
        )

    def test_create_assigns_id_and_timestamp(self) -> None:
        message = create_message(self.db, "system", "boot")

        self.assertIsNotNone(message.id)
        self.assertIsNotNone(message.timestamp)

    def test_list_is_bounded_and_reverses_to_insertion_order(self) -> None:
        contents = [f"turn-{idx}" for idx in range(8)]
        for idx, content in enumerate(contents):
            create_message(self.db, "user" if idx % 2 == 0 else "assistant", content)

        for limit in (1, 3, 8):
            records = list_messages(self.db, limit=limit)
            self.assertEqual(len(records), limit)
            self.assertEqual([m.content for m in reversed(records)], contents[-limit:])

        self.assertEqual(len(list_messages(self.db, limit=50)), len(contents))

    def test_non_positive_limit_returns_nothing(self) -> None:
        create_message(self.db, "user", "hi")

        self.assertEqual(list_messages(self.db, limit=0), [])

    def test_clear_removes_everything(self) -> None:
        create_message(self.db, "user", "hi")
        create_message(self.db, "assistant", "hello")

        removed = clear_messages(self.db)

        self.assertEqual(removed, 2)
        self.assertEqual(list_messages(self.db, limit=10), [])
        self.assertEqual(list_messages(self.db, limit=1), [])

    def test_rejects_unknown_role(self) -> None:
        with self.assertRaises(ValueError):
            create_message(self.db, "tool", "output")
        self.assertEqual(list_messages(self.db, limit=10), [])

    def test_rejects_blank_user_content(self) -> None:
        with self.assertRaises(ValueError):
            create_message(self.db, "user", "   ")


if __name__ == "__main__":
    unittest.main()
