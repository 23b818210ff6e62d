"""Send one prompt through the configured inference backend without touching the database.

Usage (from repo root):
    python backend/scripts/smoke_backend.py "Hello there"
    python backend/scripts/smoke_backend.py --local-brain "Hello there"

Usage (from backend/):
    python scripts/smoke_backend.py "Hello there"
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.services.backends import BackendRequestError, UnconfiguredBackend, get_backend_selector
from app.services.chat_relay import build_chat_messages, get_system_prompt


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Smoke-test the configured chat backend.")
    parser.add_argument("prompt", help="User message to send.")
    parser.add_argument("--local-brain", action="store_true", help="Prefer the local brain endpoint.")
    parser.add_argument(
        "--persona",
        choices=["operator", "external", "identity"],
        default="operator",
        help="System prompt to prepend (default: operator).",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    selector = get_backend_selector()
    backend = selector.select(use_local_brain=args.local_brain)
    if isinstance(backend, UnconfiguredBackend):
        print(backend.reply, file=sys.stderr)
        return 1

    messages = build_chat_messages(get_system_prompt(args.persona), [], args.prompt)
    try:
        content = backend.client.complete(backend.model, messages)
    except BackendRequestError as exc:
        print(f"{backend.label} failed: {exc}", file=sys.stderr)
        return 1
    print(
        json.dumps(
            {
                "backend": backend.label,
                "base_url": backend.base_url,
                "model": backend.model,
                "reply": content,
            },
            indent=2,
        )
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
