"""FastAPI application that exposes the user account endpoints."""
from __future__ import annotations

import logging
from datetime import date
from typing import Annotated, Dict, List, Optional

from fastapi import Depends, FastAPI, Path, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import Settings, load_settings
from .database import SQLITE_MAX_INTEGER, SQLITE_MIN_INTEGER, Database
from .models import User, UserStatus
from .security import UserTokenAuth
from .users import UserService, UserServiceError

logger = logging.getLogger("accounts.api")

UserId = Annotated[int, Path(ge=SQLITE_MIN_INTEGER, le=SQLITE_MAX_INTEGER)]


class UserCreateRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    birthdate: Optional[date] = None


class UserLoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserModifyRequest(BaseModel):
    username: Optional[str] = Field(default=None, min_length=1)
    birthdate: Optional[date] = None


class UserResponse(BaseModel):
    """Public view of an account; the password never leaves the service."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    username: str
    status: UserStatus
    creation_date: date = Field(..., alias="creationDate")
    birthdate: Optional[date] = None
    token: str


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        status=user.status,
        creation_date=user.creation_date,
        birthdate=user.birthdate,
        token=user.token,
    )


def create_app(
    *,
    database: Database | None = None,
    settings: Settings | None = None,
    initialize_database: bool = False,
) -> FastAPI:
    if settings is None:
        settings = load_settings()

    if database is None:
        database = Database(settings.database_path, hash_passwords=settings.hash_passwords)
        database.initialize()
    else:
        if database.hash_passwords != settings.hash_passwords:
            logger.warning(
                "Ignoring hash_passwords=%s from settings; the supplied database uses hash_passwords=%s",
                settings.hash_passwords,
                database.hash_passwords,
            )
        if initialize_database:
            database.initialize()

    service = UserService(database)
    token_auth = UserTokenAuth(database)

    app = FastAPI(
        title="User Accounts",
        description="Registration, login and profile management for user accounts",
        version="1.0.0",
    )
    app.state.database = database
    app.state.settings = settings
    app.state.user_service = service

    def get_service() -> UserService:
        return service

    async def check_token(request: Request) -> Optional[User]:
        if not settings.require_token:
            return None
        return await token_auth(request)

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/users", response_model=List[UserResponse])
    async def list_users(svc: UserService = Depends(get_service)) -> List[UserResponse]:
        return [user_to_response(user) for user in svc.list_users()]

    @app.get(
        "/users/{user_id}",
        response_model=UserResponse,
        dependencies=[Depends(check_token)],
    )
    async def read_user(user_id: UserId, svc: UserService = Depends(get_service)) -> UserResponse:
        return user_to_response(svc.get_user(user_id))

    @app.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    async def create_user(
        payload: UserCreateRequest,
        svc: UserService = Depends(get_service),
    ) -> UserResponse:
        user = svc.create_user(payload.username, payload.password, payload.birthdate)
        return user_to_response(user)

    @app.put("/users", response_model=UserResponse, status_code=status.HTTP_202_ACCEPTED)
    async def login_user(
        payload: UserLoginRequest,
        svc: UserService = Depends(get_service),
    ) -> UserResponse:
        user = svc.authenticate(payload.username, payload.password)
        return user_to_response(user)

    @app.put(
        "/users/{user_id}",
        response_model=UserResponse,
        status_code=status.HTTP_202_ACCEPTED,
        dependencies=[Depends(check_token)],
    )
    async def logout_user(user_id: UserId, svc: UserService = Depends(get_service)) -> UserResponse:
        return user_to_response(svc.log_out(user_id))

    @app.post(
        "/users/{user_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        dependencies=[Depends(check_token)],
    )
    async def modify_user(
        user_id: UserId,
        payload: UserModifyRequest,
        svc: UserService = Depends(get_service),
    ) -> Response:
        svc.modify_user(user_id, fields=payload.model_dump(exclude_unset=True))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.exception_handler(UserServiceError)
    async def handle_user_service_error(_: object, exc: UserServiceError):
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed request to %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    return app


__all__ = [
    "UserCreateRequest",
    "UserLoginRequest",
    "UserModifyRequest",
    "UserResponse",
    "create_app",
    "user_to_response",
]
