import argparse
import getpass
import os
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from accounts.config import load_settings
from accounts.database import Database, resolve_database_path
from accounts.users import UserConflictError, UserService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user account")
    parser.add_argument("username", help="Unique username for login")
    parser.add_argument(
        "--birthdate",
        type=date.fromisoformat,
        default=None,
        help="Optional birthdate in YYYY-MM-DD format",
    )
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to ACCOUNTS_DB_PATH or data/accounts.sqlite3)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if not password:
            print("Password must not be empty.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    password = prompt_for_password()

    settings = load_settings()
    db_env = args.db_path or os.getenv("ACCOUNTS_DB_PATH")
    db_path = resolve_database_path(db_env) if db_env else settings.database_path

    database = Database(db_path, hash_passwords=settings.hash_passwords)
    database.initialize()

    try:
        user = UserService(database).create_user(args.username.strip(), password, args.birthdate)
    except UserConflictError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user #{user.id}: {user.username}")
    print(f"Token: {user.token}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
