from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time, timedelta

from clinic_records.core.settings import Settings, settings as default_settings


@dataclass(frozen=True)
class Holiday:
    day: date
    name: str


def time_slots(settings: Settings | None = None) -> list[time]:
    """Half-hour booking slots; the closing hour itself is the last slot."""
    settings = settings or default_settings
    slots: list[time] = []
    for hour in range(settings.clinic_start_hour, settings.clinic_end_hour + 1):
        if hour == 24:
            break
        slots.append(time(hour, 0))
        if hour != settings.clinic_end_hour:
            slots.append(time(hour, 30))
    return slots


def _easter_sunday(year: int) -> date:
    # Anonymous Gregorian computus.
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def public_holidays(year: int) -> list[Holiday]:
    """Bolivian national holidays for ``year``, in calendar order."""
    easter = _easter_sunday(year)
    holidays = [
        Holiday(date(year, 1, 1), "Año Nuevo"),
        Holiday(date(year, 1, 22), "Estado Plurinacional"),
        Holiday(easter - timedelta(days=48), "Carnaval (L)"),
        Holiday(easter - timedelta(days=47), "Carnaval (M)"),
        Holiday(easter - timedelta(days=2), "Viernes Santo"),
        Holiday(date(year, 5, 1), "Día del Trabajo"),
        Holiday(easter + timedelta(days=60), "Corpus Christi"),
        Holiday(date(year, 6, 21), "Año Nuevo Aymara"),
        Holiday(date(year, 8, 6), "Día de la Independencia"),
        Holiday(date(year, 11, 2), "Todos Santos"),
        Holiday(date(year, 12, 25), "Navidad"),
    ]
    return sorted(holidays, key=lambda item: item.day)


def holiday_on(day: date) -> Holiday | None:
    return next((item for item in public_holidays(day.year) if item.day == day), None)
