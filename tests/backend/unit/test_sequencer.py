import asyncio
from typing import Any, Callable

from plaza.backend.models import AvatarType, EncounterOutcome, EncounterResult, PublicSnapshot
from plaza.backend.sequencer import DWELL_SECONDS, EncounterSequencer, SequencerEvent, SequencerState


def _visitor(user_id: str) -> PublicSnapshot:
    return PublicSnapshot(user_id=user_id, name=user_id.upper(), avatar_type=AvatarType.CAT, message="", level=1, xp=0)


class _Timer:
    def __init__(self, delay: float, callback: Callable[..., None], args: tuple[Any, ...]) -> None:
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.fired = True
        self.callback(*self.args)


class _ManualTimers:
    def __init__(self) -> None:
        self.scheduled: list[_Timer] = []

    def call_later(self, delay: float, callback: Callable[..., None], *args: Any) -> _Timer:
        timer = _Timer(delay, callback, args)
        self.scheduled.append(timer)
        return timer

    def fire_next(self) -> _Timer:
        timer = next(t for t in self.scheduled if not t.cancelled and not t.fired)
        timer.fire()
        return timer


class _Registrations:
    """Fake encounter call whose completion the test controls."""

    def __init__(self, auto: bool = True) -> None:
        self.auto = auto
        self.calls: list[tuple[str, str]] = []
        self.futures: dict[str, asyncio.Future[EncounterResult]] = {}

    async def __call__(self, self_id: str, other_id: str) -> EncounterResult:
        self.calls.append((self_id, other_id))
        if self.auto:
            return EncounterResult(xp_gained=5, leveled_up=False)
        future: asyncio.Future[EncounterResult] = asyncio.get_running_loop().create_future()
        self.futures[other_id] = future
        return await future


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_presents_visitors_once_each_in_fifo_order() -> None:
    async def scenario() -> tuple[list[str], list[tuple[str, str]], EncounterSequencer]:
        timers = _ManualTimers()
        register = _Registrations()
        events: list[SequencerEvent] = []
        sequencer = EncounterSequencer("me", register, on_change=events.append, call_later=timers.call_later)

        for user_id in ("a", "b", "a", "c"):
            sequencer.enqueue(_visitor(user_id))
        for _ in range(3):
            await _settle()
            timers.fire_next()
        sequencer.enqueue(_visitor("b"))
        await _settle()
        return [event.visitor.user_id for event in events if event.kind == "enter"], register.calls, sequencer

    entered, calls, sequencer = asyncio.run(scenario())

    assert entered == ["a", "b", "c"]
    assert calls == [("me", "a"), ("me", "b"), ("me", "c")]
    assert sequencer.state is SequencerState.IDLE
    assert sequencer.current is None


def test_enqueue_activates_immediately_when_idle() -> None:
    async def scenario() -> tuple[EncounterSequencer, _ManualTimers]:
        timers = _ManualTimers()
        sequencer = EncounterSequencer("me", _Registrations(), call_later=timers.call_later)
        sequencer.enqueue(_visitor("a"))
        return sequencer, timers

    sequencer, timers = asyncio.run(scenario())

    assert sequencer.state is SequencerState.ACTIVE
    assert sequencer.current == _visitor("a")
    assert sequencer.pending == ()
    assert [timer.delay for timer in timers.scheduled] == [DWELL_SECONDS]


def test_new_arrivals_wait_behind_the_occupant() -> None:
    async def scenario() -> EncounterSequencer:
        timers = _ManualTimers()
        sequencer = EncounterSequencer("me", _Registrations(), call_later=timers.call_later)
        sequencer.enqueue(_visitor("a"))
        await _settle()
        sequencer.enqueue(_visitor("b"))
        sequencer.enqueue(_visitor("c"))
        return sequencer

    sequencer = asyncio.run(scenario())

    assert sequencer.current == _visitor("a")
    assert [visitor.user_id for visitor in sequencer.pending] == ["b", "c"]


def test_own_user_is_never_enqueued() -> None:
    sequencer = EncounterSequencer("me", _Registrations(), call_later=_ManualTimers().call_later)

    assert sequencer.enqueue(_visitor("me")) is False
    assert sequencer.state is SequencerState.IDLE


def test_result_is_stored_for_current_occupant() -> None:
    async def scenario() -> tuple[EncounterSequencer, list[SequencerEvent]]:
        events: list[SequencerEvent] = []
        sequencer = EncounterSequencer(
            "me", _Registrations(), on_change=events.append, call_later=_ManualTimers().call_later
        )
        sequencer.enqueue(_visitor("a"))
        assert sequencer.result is None
        await _settle()
        return sequencer, events

    sequencer, events = asyncio.run(scenario())

    assert sequencer.result == EncounterResult(xp_gained=5, leveled_up=False)
    assert [event.kind for event in events] == ["enter", "result"]
    assert events[1].result == sequencer.result


def test_occupant_leaves_after_dwell_even_if_registration_never_resolves() -> None:
    async def scenario() -> tuple[EncounterSequencer, list[str]]:
        timers = _ManualTimers()
        register = _Registrations(auto=False)
        events: list[SequencerEvent] = []
        sequencer = EncounterSequencer("me", register, on_change=events.append, call_later=timers.call_later)
        sequencer.enqueue(_visitor("a"))
        sequencer.enqueue(_visitor("b"))
        await _settle()
        timers.fire_next()
        await _settle()
        return sequencer, [f"{event.kind}:{event.visitor.user_id}" for event in events]

    sequencer, events = asyncio.run(scenario())

    assert events == ["enter:a", "leave:a", "enter:b"]
    assert sequencer.current == _visitor("b")
    assert sequencer.result is None


def test_stale_registration_result_is_discarded() -> None:
    async def scenario() -> tuple[EncounterResult | None, EncounterResult | None, PublicSnapshot | None]:
        timers = _ManualTimers()
        register = _Registrations(auto=False)
        sequencer = EncounterSequencer("me", register, call_later=timers.call_later)
        sequencer.enqueue(_visitor("a"))
        sequencer.enqueue(_visitor("b"))
        await _settle()
        timers.fire_next()
        await _settle()

        register.futures["a"].set_result(EncounterResult(xp_gained=5, leveled_up=True))
        await _settle()
        after_stale = sequencer.result

        register.futures["b"].set_result(EncounterResult(xp_gained=0, leveled_up=False))
        await _settle()
        return after_stale, sequencer.result, sequencer.current

    after_stale, after_current, current = asyncio.run(scenario())

    assert after_stale is None
    assert after_current == EncounterResult(xp_gained=0, leveled_up=False)
    assert current == _visitor("b")


def test_stale_timer_does_not_vacate_a_newer_occupant() -> None:
    async def scenario() -> tuple[EncounterSequencer, int | None]:
        timers = _ManualTimers()
        sequencer = EncounterSequencer("me", _Registrations(), call_later=timers.call_later)
        sequencer.enqueue(_visitor("a"))
        sequencer.enqueue(_visitor("b"))
        await _settle()
        first_timer = timers.fire_next()
        token_b = sequencer.token

        first_timer.callback(*first_timer.args)
        return sequencer, token_b

    sequencer, token_b = asyncio.run(scenario())

    assert sequencer.current == _visitor("b")
    assert sequencer.token == token_b
    assert sequencer.state is SequencerState.ACTIVE


def test_tokens_increase_with_each_activation() -> None:
    async def scenario() -> list[int | None]:
        timers = _ManualTimers()
        sequencer = EncounterSequencer("me", _Registrations(), call_later=timers.call_later)
        tokens = []
        for user_id in ("a", "b", "c"):
            sequencer.enqueue(_visitor(user_id))
        for _ in range(3):
            tokens.append(sequencer.token)
            timers.fire_next()
        await _settle()
        return tokens

    tokens = asyncio.run(scenario())

    assert tokens == [1, 2, 3]


def test_close_cancels_timer_and_ignores_late_completions() -> None:
    async def scenario() -> tuple[EncounterSequencer, _ManualTimers, list[SequencerEvent]]:
        timers = _ManualTimers()
        register = _Registrations(auto=False)
        events: list[SequencerEvent] = []
        sequencer = EncounterSequencer("me", register, on_change=events.append, call_later=timers.call_later)
        sequencer.enqueue(_visitor("a"))
        sequencer.enqueue(_visitor("b"))
        await _settle()

        sequencer.close()
        timers.scheduled[0].fire()
        register.futures["a"].set_result(EncounterResult(xp_gained=5, leveled_up=False))
        await _settle()
        sequencer.enqueue(_visitor("c"))
        return sequencer, timers, events

    sequencer, timers, events = asyncio.run(scenario())

    assert timers.scheduled[0].cancelled is True
    assert len(timers.scheduled) == 1
    assert sequencer.closed is True
    assert sequencer.current is None
    assert sequencer.result is None
    assert sequencer.pending == ()
    assert [event.kind for event in events] == ["enter"]


def test_failed_registration_keeps_presentation_running() -> None:
    async def failing(self_id: str, other_id: str) -> EncounterResult:
        raise RuntimeError("backend unavailable")

    async def scenario() -> tuple[EncounterSequencer, _ManualTimers]:
        timers = _ManualTimers()
        sequencer = EncounterSequencer("me", failing, call_later=timers.call_later)
        sequencer.enqueue(_visitor("a"))
        await _settle()
        assert sequencer.state is SequencerState.ACTIVE
        assert sequencer.result is None
        timers.fire_next()
        return sequencer, timers

    sequencer, _ = asyncio.run(scenario())

    assert sequencer.state is SequencerState.IDLE


def test_dwell_uses_event_loop_timer_by_default() -> None:
    async def scenario() -> tuple[SequencerState, SequencerState]:
        sequencer = EncounterSequencer("me", _Registrations(), dwell_seconds=0.01)
        sequencer.enqueue(_visitor("a"))
        during = sequencer.state
        await asyncio.sleep(0.1)
        return during, sequencer.state

    during, after = asyncio.run(scenario())

    assert during is SequencerState.ACTIVE
    assert after is SequencerState.IDLE


def test_queue_advances_even_if_leave_callback_raises() -> None:
    async def scenario() -> tuple[EncounterSequencer, bool]:
        timers = _ManualTimers()

        def on_change(event: SequencerEvent) -> None:
            if event.kind == "leave":
                raise RuntimeError("presentation failure")

        sequencer = EncounterSequencer("me", _Registrations(), on_change=on_change, call_later=timers.call_later)
        sequencer.enqueue(_visitor("a"))
        sequencer.enqueue(_visitor("b"))
        raised = False
        try:
            timers.fire_next()
        except RuntimeError:
            raised = True
        return sequencer, raised

    sequencer, raised = asyncio.run(scenario())

    assert raised is True
    assert sequencer.current == _visitor("b")
    assert sequencer.pending == ()


def test_result_carries_updated_viewer_snapshot() -> None:
    viewer = PublicSnapshot(user_id="me", name="ME", avatar_type=AvatarType.HUMAN, message="", level=1, xp=15)

    async def register(self_id: str, other_id: str) -> EncounterOutcome:
        return EncounterOutcome(user=viewer, xp_gained=5, leveled_up=False)

    async def scenario() -> list[SequencerEvent]:
        events: list[SequencerEvent] = []
        sequencer = EncounterSequencer("me", register, on_change=events.append, call_later=_ManualTimers().call_later)
        sequencer.enqueue(_visitor("a"))
        await _settle()
        return events

    events = asyncio.run(scenario())

    assert events[-1].kind == "result"
    assert events[-1].result == EncounterResult(xp_gained=5, leveled_up=False, user=viewer)
