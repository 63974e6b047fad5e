"""Account operations shared by the HTTP API and the command line tools."""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional

from .database import Database
from .models import User, UserStatus

logger = logging.getLogger("accounts.users")


class UserServiceError(Exception):
    """Base class for failures surfaced to API clients."""

    status_code = 500


class UserConflictError(UserServiceError):
    status_code = 409

    def __init__(self, message: str = "The username provided is not unique. Therefore, the user could not be created!") -> None:
        super().__init__(message)


class InvalidCredentialsError(UserServiceError):
    status_code = 400

    def __init__(self, message: str = "The credentials are wrong.") -> None:
        super().__init__(message)


class UserNotFoundError(UserServiceError):
    status_code = 404

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User with id={user_id} was not found")
        self.user_id = user_id


class UserService:
    """Register, authenticate and update accounts stored in a :class:`Database`."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def list_users(self) -> List[User]:
        return self._database.list_users()

    def get_user(self, user_id: int) -> User:
        user = self._database.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def create_user(
        self,
        username: str,
        password: str,
        birthdate: Optional[date] = None,
    ) -> User:
        """Register a new account in the OFFLINE state.

        Raises :class:`UserConflictError` when ``username`` is already taken.
        """

        try:
            user = self._database.create_user(username, password, birthdate=birthdate)
        except ValueError as exc:
            if self._database.get_user_by_username(username) is None:
                raise
            logger.warning("Rejected registration for existing username %s", username)
            raise UserConflictError() from exc

        logger.info("Created user %s (%s)", user.id, user.username)
        return user

    def authenticate(self, username: str, password: str) -> User:
        """Mark the account matching both credentials as ONLINE and return it."""

        user = self._database.find_user_by_credentials(username, password)
        if user is None:
            logger.warning("Failed login attempt for %s", username)
            raise InvalidCredentialsError()

        updated = self._database.set_user_status(user.id, UserStatus.ONLINE)
        if updated is None:
            raise UserNotFoundError(user.id)
        logger.info("User %s logged in", updated.id)
        return updated

    def log_out(self, user_id: int) -> User:
        updated = self._database.set_user_status(user_id, UserStatus.OFFLINE)
        if updated is None:
            raise UserNotFoundError(user_id)
        logger.info("User %s logged out", user_id)
        return updated

    def modify_user(
        self,
        user_id: int,
        *,
        username: Optional[str] = None,
        birthdate: Optional[date] = None,
        fields: Optional[Dict[str, object]] = None,
    ) -> User:
        """Overwrite profile fields and return the persisted record.

        ``fields`` carries exactly the attributes the caller supplied, which
        lets a client clear ``birthdate`` explicitly.  Without it ``username``
        and ``birthdate`` are both written, with a ``None`` username ignored.
        """

        if fields is None:
            fields = {"username": username, "birthdate": birthdate}

        try:
            updated = self._database.update_user(user_id, **fields)
        except ValueError as exc:
            logger.warning("Rejected rename of user %s to an existing username", user_id)
            raise UserConflictError("The username provided is not unique. Therefore, the user could not be modified!") from exc

        if updated is None:
            raise UserNotFoundError(user_id)
        logger.info("User %s has been modified", user_id)
        return updated


__all__ = [
    "InvalidCredentialsError",
    "UserConflictError",
    "UserNotFoundError",
    "UserService",
    "UserServiceError",
]
