from datetime import date

from plaza.backend.clock import FixedDayClock, SystemDayClock


def test_system_clock_returns_iso_calendar_day() -> None:
    today = SystemDayClock().today()

    assert len(today) == 10
    assert date.fromisoformat(today)


def test_fixed_clock_can_be_set_and_advanced() -> None:
    clock = FixedDayClock("2026-02-28")

    assert clock.today() == "2026-02-28"
    assert clock.advance() == "2026-03-01"

    clock.set("2026-12-31")
    assert clock.advance(2) == "2027-01-02"
