"""Per-peer, day-keyed encounter rewards."""

from __future__ import annotations

import logging

from plaza.backend.errors import UserNotFoundError
from plaza.backend.models import EncounterOutcome, PublicSnapshot
from plaza.backend.registry import refresh_level
from plaza.backend.store import UserStore


logger = logging.getLogger(__name__)

ENCOUNTER_BONUS = 5


class EncounterLedger:
    def __init__(self, store: UserStore) -> None:
        self._store = store

    def register_encounter(self, self_id: str, other_id: str, today: str) -> EncounterOutcome:
        """Reward ``self_id`` once per day for noticing ``other_id``.

        Only the caller's record changes. The peer earns its own reward when
        it registers the encounter from its side.
        """
        record = self._store.get(self_id)
        if record is None:
            raise UserNotFoundError(self_id)

        xp_gained = 0
        if self_id != other_id and record.encounters.get(other_id) != today:
            record.encounters[other_id] = today
            record.xp += ENCOUNTER_BONUS
            xp_gained = ENCOUNTER_BONUS
            logger.debug("User %s met %s on %s", self_id, other_id, today)

        leveled_up = refresh_level(record)
        return EncounterOutcome(
            user=PublicSnapshot.from_record(record),
            xp_gained=xp_gained,
            leveled_up=leveled_up,
        )
