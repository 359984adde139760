"""Deferred, ordered fan-out of login notifications."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Union

from plaza.backend.models import PublicSnapshot


logger = logging.getLogger(__name__)

LoginListener = Callable[[PublicSnapshot], Union[Awaitable[None], None]]


class Subscription:
    """Handle returned by :meth:`LoginBroadcaster.subscribe`.

    Calling the handle (or :meth:`unsubscribe`) removes the listener; repeated
    calls are no-ops.
    """

    def __init__(self, broadcaster: LoginBroadcaster, listener: LoginListener) -> None:
        self._broadcaster = broadcaster
        self.listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._broadcaster._remove(self)

    def __call__(self) -> None:
        self.unsubscribe()


class LoginBroadcaster:
    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._pending: set[asyncio.Task[None]] = set()

    def subscribe(self, listener: LoginListener) -> Subscription:
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, snapshot: PublicSnapshot) -> asyncio.Task[None]:
        """Schedule one delivery pass after the caller's synchronous work.

        Listeners are read when the pass starts, not when it is scheduled.
        """
        task = asyncio.get_running_loop().create_task(self._deliver(snapshot))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, snapshot: PublicSnapshot) -> None:
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                outcome = subscription.listener(snapshot)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("Login listener failed for user %s", snapshot.user_id)

    async def drain(self) -> None:
        """Wait until every delivery pass scheduled so far has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
