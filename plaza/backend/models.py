"""Domain models for plaza users, snapshots and encounter results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class AvatarType(str, Enum):
    HUMAN = "human"
    CAT = "cat"
    ROBOT = "robot"
    WIZARD = "wizard"
    DRAGON = "dragon"
    BUG = "bug"


@dataclass
class UserRecord:
    user_id: str
    name: str
    avatar_type: AvatarType
    message: str
    xp: int = 0
    level: int = 1
    last_login: str | None = None
    encounters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PublicSnapshot:
    user_id: str
    name: str
    avatar_type: AvatarType
    message: str
    level: int
    xp: int

    @classmethod
    def from_record(cls, record: UserRecord) -> PublicSnapshot:
        return cls(
            user_id=record.user_id,
            name=record.name,
            avatar_type=record.avatar_type,
            message=record.message,
            level=record.level,
            xp=record.xp,
        )


@dataclass(frozen=True)
class Profile:
    name: str
    avatar_type: AvatarType
    message: str = ""


@dataclass(frozen=True)
class Progress:
    level: int
    xp_into_level: int
    next_threshold: int


@dataclass(frozen=True)
class LoginResult:
    user: PublicSnapshot
    users: list[PublicSnapshot]
    xp_gained: int
    leveled_up: bool

    @property
    def xp(self) -> int:
        return self.user.xp

    @property
    def level(self) -> int:
        return self.user.level


@dataclass(frozen=True)
class EncounterResult:
    xp_gained: int
    leveled_up: bool
    user: PublicSnapshot | None = None


@dataclass(frozen=True)
class EncounterOutcome:
    user: PublicSnapshot
    xp_gained: int
    leveled_up: bool

    @property
    def xp(self) -> int:
        return self.user.xp

    @property
    def level(self) -> int:
        return self.user.level

    def as_result(self) -> EncounterResult:
        return EncounterResult(xp_gained=self.xp_gained, leveled_up=self.leveled_up, user=self.user)
