"""Issue, list and revoke public API keys from the command line.

Usage (from repo root):
    python backend/scripts/manage_api_keys.py create partner-x
    python backend/scripts/manage_api_keys.py list
    python backend/scripts/manage_api_keys.py revoke 3
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Make `app` imports work whether the script is run from repo root or backend/.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.db.session import SessionLocal
from app.services.api_keys import create_api_key, delete_api_key, list_api_keys


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Manage API keys for POST /api/v1/chat.")
    commands = parser.add_subparsers(dest="command", required=True)
    create = commands.add_parser("create", help="Issue a new key.")
    create.add_argument("name", help="Label shown in chat history as [API:<name>].")
    commands.add_parser("list", help="List issued keys, newest first.")
    revoke = commands.add_parser("revoke", help="Revoke a key by id.")
    revoke.add_argument("id", type=int)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    with SessionLocal() as db:
        if args.command == "create":
            api_key = create_api_key(db, args.name)
            print(f"id={api_key.id} name={api_key.name}")
            print(f"key={api_key.key}")
        elif args.command == "list":
            for api_key in list_api_keys(db):
                print(f"{api_key.id}\t{api_key.name}\t{api_key.created_at.isoformat()}")
        else:
            removed = delete_api_key(db, args.id)
            print("revoked" if removed else f"no key with id={args.id}")


if __name__ == "__main__":
    main()
