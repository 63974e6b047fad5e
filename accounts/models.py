"""Domain models for the user accounts service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class UserStatus(str, Enum):
    """Presence state toggled by login and logout."""

    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


@dataclass(frozen=True)
class User:
    """Represents a user account stored in the accounts database."""

    id: int
    username: str
    password: str
    status: UserStatus
    creation_date: date
    birthdate: Optional[date]
    token: str


__all__ = ["User", "UserStatus"]
