from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from accounts.database import Database
from accounts.models import UserStatus
from accounts.users import (
    InvalidCredentialsError,
    UserConflictError,
    UserNotFoundError,
    UserService,
)


@pytest.fixture()
def service(tmp_path: Path) -> UserService:
    database = Database(tmp_path / "accounts.sqlite3")
    database.initialize()
    return UserService(database)


def test_create_user_starts_offline(service: UserService) -> None:
    user = service.create_user("alice", "p1")

    assert user.status is UserStatus.OFFLINE
    assert user.id is not None
    assert user.token
    assert user.creation_date == date.today()
    assert service.list_users() == [user]


def test_duplicate_username_raises_conflict_and_leaves_store_unchanged(service: UserService) -> None:
    service.create_user("alice", "p1")

    with pytest.raises(UserConflictError) as excinfo:
        service.create_user("alice", "p2")

    assert excinfo.value.status_code == 409
    assert len(service.list_users()) == 1


def test_authenticate_sets_status_online(service: UserService) -> None:
    created = service.create_user("alice", "p1")

    user = service.authenticate("alice", "p1")

    assert user.id == created.id
    assert user.status is UserStatus.ONLINE
    assert service.get_user(created.id).status is UserStatus.ONLINE


@pytest.mark.parametrize(
    ("username", "password"),
    [("alice", "wrong"), ("bob", "p1"), ("ALICE", "p1")],
)
def test_authenticate_with_mismatched_credentials_fails(
    service: UserService, username: str, password: str
) -> None:
    created = service.create_user("alice", "p1")

    with pytest.raises(InvalidCredentialsError) as excinfo:
        service.authenticate(username, password)

    assert excinfo.value.status_code == 400
    assert service.get_user(created.id).status is UserStatus.OFFLINE


def test_log_out_sets_status_offline(service: UserService) -> None:
    created = service.create_user("alice", "p1")
    service.authenticate("alice", "p1")

    user = service.log_out(created.id)

    assert user.status is UserStatus.OFFLINE
    assert service.get_user(created.id).status is UserStatus.OFFLINE


def test_log_out_unknown_user_raises_not_found(service: UserService) -> None:
    with pytest.raises(UserNotFoundError) as excinfo:
        service.log_out(42)

    assert excinfo.value.status_code == 404
    assert excinfo.value.user_id == 42


def test_get_unknown_user_raises_not_found(service: UserService) -> None:
    with pytest.raises(UserNotFoundError):
        service.get_user(1000)


def test_modify_user_returns_persisted_record(service: UserService) -> None:
    created = service.create_user("alice", "p1")

    modified = service.modify_user(created.id, username="alicia", birthdate=date(1991, 2, 3))

    assert modified.username == "alicia"
    assert modified.birthdate == date(1991, 2, 3)
    assert modified.token == created.token
    assert modified.password == "p1"
    assert service.get_user(created.id) == modified


def test_modify_user_with_explicit_fields_only_writes_those(service: UserService) -> None:
    created = service.create_user("alice", "p1", date(1990, 1, 1))

    modified = service.modify_user(created.id, fields={"username": "alicia"})

    assert modified.username == "alicia"
    assert modified.birthdate == date(1990, 1, 1)


def test_modify_user_to_taken_username_raises_conflict(service: UserService) -> None:
    service.create_user("alice", "p1")
    bob = service.create_user("bob", "p2")

    with pytest.raises(UserConflictError):
        service.modify_user(bob.id, username="alice")

    assert service.get_user(bob.id).username == "bob"


def test_modify_unknown_user_raises_not_found(service: UserService) -> None:
    with pytest.raises(UserNotFoundError):
        service.modify_user(7, username="ghost")
