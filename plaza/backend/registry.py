"""Day-keyed login bookkeeping and the roster of users present today."""

from __future__ import annotations

import logging

from plaza.backend.models import AvatarType, LoginResult, Profile, PublicSnapshot, UserRecord
from plaza.backend.progression import level_from_xp
from plaza.backend.store import UserStore


logger = logging.getLogger(__name__)

LOGIN_BONUS = 10

_DEMO_USERS: tuple[tuple[str, str, AvatarType, str, int], ...] = (
    ("demo-1", "Akira", AvatarType.HUMAN, "Let's do our best today!", 30),
    ("demo-2", "Mike", AvatarType.CAT, "Nyaa", 120),
    ("demo-3", "Robos", AvatarType.ROBOT, "0110 good morning", 260),
)


def refresh_level(record: UserRecord) -> bool:
    """Recompute the cached level and report whether it went up."""
    before = record.level
    record.level = level_from_xp(record.xp).level
    return record.level > before


class PresenceRegistry:
    def __init__(self, store: UserStore) -> None:
        self._store = store

    def record_login(self, user_id: str, profile: Profile, today: str) -> LoginResult:
        record = self._store.get(user_id)
        if record is None:
            record = self._store.add(
                UserRecord(
                    user_id=user_id,
                    name=profile.name,
                    avatar_type=profile.avatar_type,
                    message=profile.message,
                )
            )
            logger.info("Created user record %s", user_id)

        record.name = profile.name
        record.avatar_type = profile.avatar_type
        record.message = profile.message

        xp_gained = 0
        if record.last_login != today:
            record.last_login = today
            record.encounters = {}
            record.xp += LOGIN_BONUS
            xp_gained = LOGIN_BONUS
            logger.info("User %s checked in for %s", user_id, today)
        else:
            logger.debug("User %s already checked in for %s", user_id, today)

        leveled_up = refresh_level(record)
        return LoginResult(
            user=PublicSnapshot.from_record(record),
            users=self.roster_today(today),
            xp_gained=xp_gained,
            leveled_up=leveled_up,
        )

    def roster_today(self, today: str) -> list[PublicSnapshot]:
        return [PublicSnapshot.from_record(record) for record in self._store.records() if record.last_login == today]

    def get_snapshot(self, user_id: str) -> PublicSnapshot | None:
        record = self._store.get(user_id)
        if record is None:
            return None
        return PublicSnapshot.from_record(record)

    def seed_demo_users(self, today: str) -> int:
        """Populate an empty store with demo users present ``today``."""
        if len(self._store) > 0:
            return 0
        for user_id, name, avatar_type, message, xp in _DEMO_USERS:
            self._store.add(
                UserRecord(
                    user_id=user_id,
                    name=name,
                    avatar_type=avatar_type,
                    message=message,
                    xp=xp,
                    level=level_from_xp(xp).level,
                    last_login=today,
                )
            )
        logger.info("Seeded %d demo users for %s", len(_DEMO_USERS), today)
        return len(_DEMO_USERS)
