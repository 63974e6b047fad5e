"""Security helpers for the accounts API."""
from __future__ import annotations

import secrets

from fastapi import HTTPException, Request, status
from fastapi.security import APIKeyHeader

from .database import Database
from .models import User

TOKEN_HEADER_NAME = "token"


class UserTokenAuth:
    """Resolve the caller from the ``token`` header issued at registration.

    A missing or unknown token is answered with ``400 Bad Request``, matching
    how the rest of the API reports unusable client input.
    """

    def __init__(self, database: Database) -> None:
        self._database = database
        self._header = APIKeyHeader(name=TOKEN_HEADER_NAME, auto_error=False)

    async def __call__(self, request: Request) -> User:
        provided = await self._header(request)
        if not provided or not provided.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token is invalid")

        token = provided.strip()
        user = self._database.get_user_by_token(token)
        if user is None or not secrets.compare_digest(user.token, token):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token is invalid")
        return user


__all__ = ["TOKEN_HEADER_NAME", "UserTokenAuth"]
