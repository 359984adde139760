"""Timed, one-at-a-time presentation of plaza visitors.

An :class:`EncounterSequencer` belongs to one viewing session. Visitors are
queued first-in first-out and shown in a single slot for a fixed dwell time.
Each activation of the slot gets a fresh lock token; the dwell timer and the
encounter registration both carry that token, and a completion whose token no
longer matches the occupant is dropped.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from plaza.backend.models import EncounterResult, PublicSnapshot


logger = logging.getLogger(__name__)

DWELL_SECONDS = 6.0


class SequencerState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class _Rewarded(Protocol):
    xp_gained: int
    leveled_up: bool


RegisterEncounter = Callable[[str, str], Awaitable[_Rewarded]]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


CallLater = Callable[..., TimerHandle]


@dataclass(frozen=True)
class SequencerEvent:
    kind: str
    visitor: PublicSnapshot
    token: int
    result: EncounterResult | None = None


@dataclass(frozen=True)
class _Occupant:
    visitor: PublicSnapshot
    token: int


class EncounterSequencer:
    def __init__(
        self,
        current_user_id: str,
        register: RegisterEncounter,
        *,
        dwell_seconds: float = DWELL_SECONDS,
        on_change: Callable[[SequencerEvent], None] | None = None,
        call_later: CallLater | None = None,
    ) -> None:
        self.current_user_id = current_user_id
        self.dwell_seconds = dwell_seconds
        self._register = register
        self._on_change = on_change
        self._call_later = call_later
        self._tokens = itertools.count(1)
        self._queue: deque[PublicSnapshot] = deque()
        self._seen: set[str] = set()
        self._occupant: _Occupant | None = None
        self._result: EncounterResult | None = None
        self._timers: dict[int, TimerHandle] = {}
        self._tasks: set[asyncio.Future[Any]] = set()
        self._closed = False

    @property
    def state(self) -> SequencerState:
        return SequencerState.IDLE if self._occupant is None else SequencerState.ACTIVE

    @property
    def current(self) -> PublicSnapshot | None:
        return None if self._occupant is None else self._occupant.visitor

    @property
    def token(self) -> int | None:
        return None if self._occupant is None else self._occupant.token

    @property
    def result(self) -> EncounterResult | None:
        return self._result

    @property
    def pending(self) -> tuple[PublicSnapshot, ...]:
        return tuple(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, visitor: PublicSnapshot) -> bool:
        """Queue ``visitor`` unless it was already seen this session."""
        if self._closed or visitor.user_id == self.current_user_id or visitor.user_id in self._seen:
            return False
        self._seen.add(visitor.user_id)
        self._queue.append(visitor)
        self._advance_if_idle()
        return True

    def enqueue_many(self, visitors: list[PublicSnapshot]) -> int:
        return sum(1 for visitor in visitors if self.enqueue(visitor))

    def close(self) -> None:
        self._closed = True
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._queue.clear()
        self._occupant = None
        self._result = None

    def _is_current(self, token: int) -> bool:
        return self._occupant is not None and self._occupant.token == token

    def _advance_if_idle(self) -> None:
        if self._closed or self._occupant is not None or not self._queue:
            return
        self._activate(self._queue.popleft())

    def _activate(self, visitor: PublicSnapshot) -> None:
        token = next(self._tokens)
        self._occupant = _Occupant(visitor=visitor, token=token)
        self._result = None
        logger.debug("Presenting %s (token %d)", visitor.user_id, token)

        call_later = self._call_later or asyncio.get_running_loop().call_later
        self._timers[token] = call_later(self.dwell_seconds, self._on_timeout, token)

        task = asyncio.ensure_future(self._register(self.current_user_id, visitor.user_id))
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._on_registered(token, visitor, done))

        self._emit(SequencerEvent(kind="enter", visitor=visitor, token=token))

    def _on_registered(self, token: int, visitor: PublicSnapshot, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Encounter registration with %s failed", visitor.user_id, exc_info=error)
            return
        if not self._is_current(token):
            logger.debug("Dropping stale encounter result for %s (token %d)", visitor.user_id, token)
            return
        outcome = task.result()
        self._result = EncounterResult(
            xp_gained=outcome.xp_gained,
            leveled_up=outcome.leveled_up,
            user=getattr(outcome, "user", None),
        )
        self._emit(SequencerEvent(kind="result", visitor=visitor, token=token, result=self._result))

    def _on_timeout(self, token: int) -> None:
        self._timers.pop(token, None)
        occupant = self._occupant
        if occupant is None or occupant.token != token:
            logger.debug("Ignoring stale dwell timer (token %d)", token)
            return
        self._occupant = None
        self._result = None
        try:
            self._emit(SequencerEvent(kind="leave", visitor=occupant.visitor, token=token))
        finally:
            self._advance_if_idle()

    def _emit(self, event: SequencerEvent) -> None:
        if self._on_change is not None:
            self._on_change(event)
