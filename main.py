"""Command-line interface for the user accounts service."""

from __future__ import annotations
import argparse
import logging
import sys
from datetime import date
from getpass import getpass
from typing import Optional, Sequence

from accounts.config import Settings, load_settings
from accounts.database import Database
from accounts.users import UserConflictError, UserService

logger = logging.getLogger("accounts.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User accounts service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the accounts database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP accounts service")
    serve_parser.add_argument("--host", default=None, help="Bind address for the API")
    serve_parser.add_argument("--port", type=int, default=None, help="Port for the API")

    subparsers.add_parser("admin", help="Launch the interactive administration console")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin", "init-db"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path, hash_passwords=settings.hash_passwords)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(*, database: Database, settings: Settings, host: str, port: int) -> None:
    from accounts.api import create_app
    import uvicorn

    logger.info("Starting accounts API on http://%s:%s", host, port)

    app = create_app(database=database, settings=settings)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


def _run_admin_cli(service: UserService) -> None:
    """Provide an interactive management console for administrators."""

    print("User Accounts Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List all users")
            print("  2) Add a new user")
            print("  3) Exit")

            choice = input("Enter choice [1-3]: ").strip()

            if choice == "1":
                _list_users(service)
            elif choice == "2":
                _add_user(service)
            elif choice == "3":
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")


def _list_users(service: UserService) -> None:
    users = service.list_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Username':<24}  {'Status':<8}  {'Birthdate':<10}  Created")
    print("-" * 72)
    for user in users:
        birthdate = user.birthdate.isoformat() if user.birthdate else "-"
        print(
            f"{user.id:>4}  {user.username:<24}  {user.status.value:<8}  "
            f"{birthdate:<10}  {user.creation_date.isoformat()}"
        )


def _add_user(service: UserService) -> None:
    print("\nCreate a new user (leave the username blank to cancel).")
    username = input("Username: ").strip()
    if not username:
        print("User creation cancelled.")
        return

    birthdate = _prompt_for_birthdate()

    password = _prompt_for_password()
    if password is None:
        print("Aborted creating user.")
        return

    try:
        user = service.create_user(username, password, birthdate)
    except UserConflictError as exc:
        print(f"Failed to create user: {exc}")
        return

    print(f"Created user #{user.id}: {user.username} (token {user.token})")


def _prompt_for_birthdate() -> Optional[date]:
    for _ in range(3):
        raw = input("Birthdate (YYYY-MM-DD, optional): ").strip()
        if not raw:
            return None
        try:
            return date.fromisoformat(raw)
        except ValueError:
            print("Birthdate must use the YYYY-MM-DD format. Please try again.")
    return None


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass("Password: ")
        if not password:
            print("Password must not be empty. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(levelname)s] %(message)s")

    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(
            database=database,
            settings=settings,
            host=args.host or settings.host,
            port=args.port or settings.port,
        )
    elif args.command == "admin":
        _run_admin_cli(UserService(database))
    elif args.command == "init-db":
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
