"""Plaza facade: login, encounters, roster and viewing sessions."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable

from plaza.backend.broadcaster import LoginBroadcaster, LoginListener, Subscription
from plaza.backend.clock import DayClock, SystemDayClock
from plaza.backend.ledger import EncounterLedger
from plaza.backend.models import AvatarType, EncounterOutcome, LoginResult, Profile, PublicSnapshot
from plaza.backend.registry import PresenceRegistry
from plaza.backend.sequencer import DWELL_SECONDS, EncounterSequencer, SequencerEvent
from plaza.backend.store import UserStore, create_store



LOGIN_LATENCY_SECONDS = 0.4
ENCOUNTER_LATENCY_SECONDS = 0.2
ROSTER_LATENCY_SECONDS = 0.2


@dataclass(frozen=True)
class LoginPayload:
    user_id: str
    name: str
    avatar_type: AvatarType
    message: str = ""

    @property
    def profile(self) -> Profile:
        return Profile(name=self.name, avatar_type=self.avatar_type, message=self.message)


class PlazaService:
    def __init__(
        self,
        store: UserStore | None = None,
        clock: DayClock | None = None,
        broadcaster: LoginBroadcaster | None = None,
        latency_scale: float = 0.0,
        seed_demo: bool = False,
        dwell_seconds: float = DWELL_SECONDS,
    ) -> None:
        self.store = store if store is not None else create_store()
        self.clock = clock if clock is not None else SystemDayClock()
        self.broadcaster = broadcaster if broadcaster is not None else LoginBroadcaster()
        self.registry = PresenceRegistry(self.store)
        self.ledger = EncounterLedger(self.store)
        self.latency_scale = latency_scale
        self.seed_demo = seed_demo
        self.dwell_seconds = dwell_seconds

    async def _simulate_latency(self, seconds: float) -> None:
        if self.latency_scale > 0:
            await asyncio.sleep(seconds * self.latency_scale)

    async def login(self, payload: LoginPayload) -> LoginResult:
        today = self.clock.today()
        if self.seed_demo:
            self.registry.seed_demo_users(today)
        result = self.registry.record_login(payload.user_id, payload.profile, today)
        self.broadcaster.publish(result.user)
        await self._simulate_latency(LOGIN_LATENCY_SECONDS)
        return result

    async def encounter(self, self_id: str, other_id: str) -> EncounterOutcome:
        outcome = self.ledger.register_encounter(self_id, other_id, self.clock.today())
        await self._simulate_latency(ENCOUNTER_LATENCY_SECONDS)
        return outcome

    async def roster(self) -> list[PublicSnapshot]:
        users = self.registry.roster_today(self.clock.today())
        await self._simulate_latency(ROSTER_LATENCY_SECONDS)
        return users

    def get_user(self, user_id: str) -> PublicSnapshot | None:
        return self.registry.get_snapshot(user_id)

    def subscribe(self, listener: LoginListener) -> Subscription:
        return self.broadcaster.subscribe(listener)

    def open_session(
        self,
        user_id: str,
        on_change: Callable[[SequencerEvent], None] | None = None,
        dwell_seconds: float | None = None,
    ) -> EncounterSequencer:
        return EncounterSequencer(
            current_user_id=user_id,
            register=self.encounter,
            dwell_seconds=self.dwell_seconds if dwell_seconds is None else dwell_seconds,
            on_change=on_change,
        )
