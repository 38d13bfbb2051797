"""Business-day rules for closing and due date adjustment"""

from datetime import date, timedelta
from functools import lru_cache
from typing import FrozenSet, Iterable, Optional, Protocol

from invoice_gateway.domain.exceptions import ConfigurationError

ONE_DAY = timedelta(days=1)

# Brazilian fixed national holidays (month, day)
BR_FIXED_HOLIDAYS = frozenset(
    {
        (1, 1),    # Confraternizacao Universal
        (4, 21),   # Tiradentes
        (5, 1),    # Dia do Trabalho
        (9, 7),    # Independencia
        (10, 12),  # Nossa Senhora Aparecida
        (11, 2),   # Finados
        (11, 15),  # Proclamacao da Republica
        (11, 20),  # Consciencia Negra
        (12, 25),  # Natal
    }
)


class HolidayCalendar(Protocol):
    def is_holiday(self, day: date) -> bool:
        ...


class WeekendCalendar:
    """Minimal calendar: weekends only, plus optional injected dates"""

    def __init__(self, extra_holidays: Iterable[date] = ()):
        self.extra_holidays: FrozenSet[date] = frozenset(extra_holidays)

    def is_holiday(self, day: date) -> bool:
        return day in self.extra_holidays


class BrazilianHolidayCalendar(WeekendCalendar):
    """National banking holidays in Brazil, fixed and Easter-relative"""

    def is_holiday(self, day: date) -> bool:
        if (day.month, day.day) in BR_FIXED_HOLIDAYS:
            return True
        if day in _movable_holidays(day.year):
            return True
        return super().is_holiday(day)


def easter_sunday(year: int) -> date:
    """Gregorian Easter (Meeus/Jones/Butcher)"""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    offset = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * offset) // 451
    month, day = divmod(h + offset - 7 * m + 114, 31)
    return date(year, month, day + 1)


@lru_cache(maxsize=64)
def _movable_holidays(year: int) -> FrozenSet[date]:
    easter = easter_sunday(year)
    return frozenset(
        {
            easter - timedelta(days=48),  # Carnival Monday
            easter - timedelta(days=47),  # Carnival Tuesday
            easter - timedelta(days=2),   # Good Friday
            easter + timedelta(days=60),  # Corpus Christi
        }
    )


_WEEKENDS_ONLY = WeekendCalendar()


def get_calendar(name: str, extra_holidays: Iterable[date] = ()) -> HolidayCalendar:
    """Resolve a calendar by configuration name ("weekends" or "BR")"""
    normalized = (name or "").strip().lower()
    if normalized in {"weekends", "none", ""}:
        return WeekendCalendar(extra_holidays)
    if normalized in {"br", "brazil"}:
        return BrazilianHolidayCalendar(extra_holidays)
    raise ConfigurationError(f"Unknown holiday calendar: {name!r}")


def is_business_day(day: date, calendar: Optional[HolidayCalendar] = None) -> bool:
    """Monday to Friday and not a holiday of the given calendar"""
    if day.weekday() >= 5:
        return False
    return not (calendar or _WEEKENDS_ONLY).is_holiday(day)


def next_business_day(day: date, calendar: Optional[HolidayCalendar] = None) -> date:
    """First business day strictly after `day`"""
    candidate = day + ONE_DAY
    while not is_business_day(candidate, calendar):
        candidate += ONE_DAY
    return candidate


def previous_business_day(day: date, calendar: Optional[HolidayCalendar] = None) -> date:
    """Last business day strictly before `day`"""
    candidate = day - ONE_DAY
    while not is_business_day(candidate, calendar):
        candidate -= ONE_DAY
    return candidate


def adjust_closing_date(day: date, calendar: Optional[HolidayCalendar] = None) -> date:
    """Closing on a non-business day rolls BACK to the most recent business day"""
    if is_business_day(day, calendar):
        return day
    return previous_business_day(day, calendar)


def adjust_due_date(day: date, calendar: Optional[HolidayCalendar] = None) -> date:
    """Due date on a non-business day rolls FORWARD to the next business day"""
    if is_business_day(day, calendar):
        return day
    return next_business_day(day, calendar)
