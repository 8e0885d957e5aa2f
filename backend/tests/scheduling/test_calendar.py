from datetime import date, time

import pytest

from clinic_records.core.settings import Settings
from clinic_records.services.schedule import holiday_on, public_holidays, time_slots


def test_time_slots_cover_opening_hours():
    slots = time_slots(Settings(clinic_start_hour=8, clinic_end_hour=10))
    assert slots == [time(8, 0), time(8, 30), time(9, 0), time(9, 30), time(10, 0)]


def test_default_time_slots_end_on_closing_hour(clinic_settings):
    slots = time_slots(clinic_settings)
    assert slots[0] == time(clinic_settings.clinic_start_hour, 0)
    assert slots[-1] == time(clinic_settings.clinic_end_hour, 0)


@pytest.mark.parametrize(
    ("day", "name"),
    [
        (date(2025, 3, 3), "Carnaval (L)"),
        (date(2025, 3, 4), "Carnaval (M)"),
        (date(2025, 4, 18), "Viernes Santo"),
        (date(2025, 6, 19), "Corpus Christi"),
        (date(2026, 8, 6), "Día de la Independencia"),
        (date(2026, 4, 3), "Viernes Santo"),
    ],
)
def test_holiday_on(day, name):
    holiday = holiday_on(day)
    assert holiday is not None
    assert holiday.name == name


def test_regular_day_is_not_a_holiday():
    assert holiday_on(date(2026, 1, 15)) is None


def test_public_holidays_sorted():
    holidays = public_holidays(2026)
    assert len(holidays) == 11
    assert [item.day for item in holidays] == sorted(item.day for item in holidays)
