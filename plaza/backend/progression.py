"""Experience curve and avatar unlock helpers."""

from __future__ import annotations

from dataclasses import dataclass

from plaza.backend.models import AvatarType, Progress


BASE_THRESHOLD = 50


@dataclass(frozen=True)
class AvatarOption:
    id: AvatarType
    label: str
    unlock_level: int


AVATAR_OPTIONS: tuple[AvatarOption, ...] = (
    AvatarOption(id=AvatarType.HUMAN, label="Human", unlock_level=1),
    AvatarOption(id=AvatarType.CAT, label="Cat", unlock_level=2),
    AvatarOption(id=AvatarType.ROBOT, label="Robot", unlock_level=3),
    AvatarOption(id=AvatarType.WIZARD, label="Wizard", unlock_level=5),
    AvatarOption(id=AvatarType.DRAGON, label="Dragon", unlock_level=10),
    AvatarOption(id=AvatarType.BUG, label="Bug", unlock_level=10),
)


def threshold(level: int) -> int:
    """Return the XP needed to advance from ``level`` to ``level + 1``."""
    return BASE_THRESHOLD * level * level


def level_from_xp(total_xp: int) -> Progress:
    """Walk the threshold curve and return level, remainder and next threshold.

    ``level_from_xp(0)`` is level 1 with 0 of 50 XP. There is no level cap.
    """
    level = 1
    remaining = total_xp
    requirement = threshold(level)
    while remaining >= requirement:
        remaining -= requirement
        level += 1
        requirement = threshold(level)
    return Progress(level=level, xp_into_level=remaining, next_threshold=requirement)


def xp_to_next(total_xp: int) -> int:
    progress = level_from_xp(total_xp)
    return progress.next_threshold - progress.xp_into_level


def unlocked_avatars(level: int) -> list[AvatarType]:
    return [option.id for option in AVATAR_OPTIONS if option.unlock_level <= level]

