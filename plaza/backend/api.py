"""FastAPI endpoints for plaza login, encounters and the visitor websocket."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import load_settings
from .errors import UserNotFoundError
from .models import AvatarType, PublicSnapshot
from .progression import AVATAR_OPTIONS, level_from_xp, unlocked_avatars, xp_to_next
from .sequencer import EncounterSequencer, SequencerEvent
from .service import LoginPayload, PlazaService


logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserView(CamelModel):
    user_id: str
    name: str
    avatar_type: AvatarType
    message: str
    level: int
    xp: int

    @classmethod
    def from_snapshot(cls, snapshot: PublicSnapshot) -> UserView:
        return cls(
            user_id=snapshot.user_id,
            name=snapshot.name,
            avatar_type=snapshot.avatar_type,
            message=snapshot.message,
            level=snapshot.level,
            xp=snapshot.xp,
        )


class LoginRequest(CamelModel):
    user_id: str = Field(min_length=1, max_length=200)
    name: str = Field(min_length=1, max_length=200)
    avatar_type: AvatarType = AvatarType.HUMAN
    message: str = Field(default="", max_length=1000)


class LoginResponse(CamelModel):
    user: UserView
    users: list[UserView]
    xp: int
    level: int
    xp_gained: int
    leveled_up: bool


class RosterResponse(CamelModel):
    users: list[UserView]


class UserResponse(CamelModel):
    user: UserView


class EncounterRequest(CamelModel):
    user_id: str = Field(min_length=1)
    other_user_id: str = Field(min_length=1)


class EncounterResponse(CamelModel):
    user: UserView
    xp: int
    level: int
    xp_gained: int
    leveled_up: bool


class ProgressResponse(CamelModel):
    level: int
    current_into_level: int
    needed_for_next: int
    xp_to_next: int


class AvatarView(CamelModel):
    id: AvatarType
    label: str
    unlock_level: int
    unlocked: bool


class AvatarsResponse(CamelModel):
    avatars: list[AvatarView]


def _user_json(snapshot: PublicSnapshot) -> dict[str, Any]:
    return UserView.from_snapshot(snapshot).model_dump(mode="json", by_alias=True)


def _event_message(event: SequencerEvent) -> dict[str, Any]:
    message: dict[str, Any] = {"type": f"visitor.{event.kind}", "visitor": _user_json(event.visitor)}
    if event.result is not None:
        message["xpGained"] = event.result.xp_gained
        message["leveledUp"] = event.result.leveled_up
        if event.result.user is not None:
            message["user"] = _user_json(event.result.user)
    return message


class PlazaViewSession:
    """One websocket viewer: roster plus live logins fed through a sequencer."""

    def __init__(self, service: PlazaService, websocket: WebSocket, user_id: str) -> None:
        self._service = service
        self._websocket = websocket
        self._user_id = user_id
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.sequencer: EncounterSequencer = service.open_session(user_id, on_change=self._on_change)

    def _on_change(self, event: SequencerEvent) -> None:
        self._outbox.put_nowait(_event_message(event))

    def _on_login(self, snapshot: PublicSnapshot) -> None:
        if snapshot.user_id != self._user_id:
            self.sequencer.enqueue(snapshot)

    async def _send_outbox(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await self._websocket.send_json(message)
            except (RuntimeError, WebSocketDisconnect):
                logger.debug("Dropping message for closed viewer %s", self._user_id)
                return

    async def run(self) -> None:
        subscription = self._service.subscribe(self._on_login)
        sender = asyncio.create_task(self._send_outbox())
        try:
            roster = await self._service.roster()
            self._outbox.put_nowait({"type": "roster", "users": [_user_json(user) for user in roster]})
            self.sequencer.enqueue_many(roster)
            while True:
                await self._websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Viewer %s disconnected", self._user_id)
        finally:
            subscription.unsubscribe()
            self.sequencer.close()
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sender


def _default_service() -> PlazaService:
    settings = load_settings()
    return PlazaService(
        latency_scale=settings.latency_scale,
        seed_demo=settings.seed_demo,
        dwell_seconds=settings.dwell_seconds,
    )


def create_app(service: PlazaService | None = None) -> FastAPI:
    app = FastAPI(title="Plaza API", version="0.1.0")
    plaza = service if service is not None else _default_service()
    app.state.plaza = plaza

    def get_service() -> PlazaService:
        return plaza

    @app.post("/api/login", response_model=LoginResponse)
    async def login(
        payload: LoginRequest,
        local_service: PlazaService = Depends(get_service),
    ) -> LoginResponse:
        result = await local_service.login(
            LoginPayload(
                user_id=payload.user_id,
                name=payload.name,
                avatar_type=payload.avatar_type,
                message=payload.message,
            )
        )
        return LoginResponse(
            user=UserView.from_snapshot(result.user),
            users=[UserView.from_snapshot(user) for user in result.users],
            xp=result.xp,
            level=result.level,
            xp_gained=result.xp_gained,
            leveled_up=result.leveled_up,
        )

    @app.get("/api/users/today", response_model=RosterResponse)
    async def users_today(local_service: PlazaService = Depends(get_service)) -> RosterResponse:
        users = await local_service.roster()
        return RosterResponse(users=[UserView.from_snapshot(user) for user in users])

    @app.get("/api/users/{user_id}", response_model=UserResponse)
    def get_user(
        user_id: str,
        local_service: PlazaService = Depends(get_service),
    ) -> UserResponse:
        snapshot = local_service.get_user(user_id)
        if snapshot is None:
            raise HTTPException(status_code=404, detail="User not found")
        return UserResponse(user=UserView.from_snapshot(snapshot))

    @app.post("/api/encounters", response_model=EncounterResponse)
    async def post_encounter(
        payload: EncounterRequest,
        local_service: PlazaService = Depends(get_service),
    ) -> EncounterResponse:
        try:
            outcome = await local_service.encounter(payload.user_id, payload.other_user_id)
        except UserNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return EncounterResponse(
            user=UserView.from_snapshot(outcome.user),
            xp=outcome.xp,
            level=outcome.level,
            xp_gained=outcome.xp_gained,
            leveled_up=outcome.leveled_up,
        )

    @app.get("/api/progress", response_model=ProgressResponse)
    def get_progress(xp: int = Query(ge=0)) -> ProgressResponse:
        progress = level_from_xp(xp)
        return ProgressResponse(
            level=progress.level,
            current_into_level=progress.xp_into_level,
            needed_for_next=progress.next_threshold,
            xp_to_next=xp_to_next(xp),
        )

    @app.get("/api/avatars", response_model=AvatarsResponse)
    def get_avatars(level: int = Query(default=1, ge=1)) -> AvatarsResponse:
        unlocked = set(unlocked_avatars(level))
        return AvatarsResponse(
            avatars=[
                AvatarView(
                    id=option.id,
                    label=option.label,
                    unlock_level=option.unlock_level,
                    unlocked=option.id in unlocked,
                )
                for option in AVATAR_OPTIONS
            ]
        )

    @app.websocket("/ws/plaza/{user_id}")
    async def plaza_ws(
        websocket: WebSocket,
        user_id: str,
        local_service: PlazaService = Depends(get_service),
    ) -> None:
        if local_service.get_user(user_id) is None:
            await websocket.close(code=1008)
            return
        await websocket.accept()
        await PlazaViewSession(local_service, websocket, user_id).run()

    return app


app = create_app()
