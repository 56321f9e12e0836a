"""Schedule planning.

Expands a recurrence description (weekly visits, a monthly package, an
explicit list of dates ...) into the Schedule consumed by the calculator.
Each generated date becomes one occurrence classified as HOLIDAY, WEEKEND
or WEEKDAY.

Weekdays follow the admin panel convention: 0 = Sunday ... 6 = Saturday.
"""

from datetime import date, timedelta
from typing import Literal

from pydantic import BaseModel, Field

from care_pricing.enterprise_engine.models import Schedule, ScheduleOccurrence
from care_pricing.enterprise_engine.rounding import round2, round_half_up
from care_pricing.errors import PricingInputError

RecurrenceType = Literal["NONE", "WEEKLY", "BIWEEKLY", "MONTHLY", "CUSTOM_DATES", "PACKAGE"]
ShiftType = Literal["DIURNO", "NOTURNO", "24H", "CUSTOM"]
HolidayType = Literal["NATIONAL", "CUSTOM", "YEAR_END"]

DEFAULT_SHIFT_TIMES = {
    "DIURNO": ("07:00", "19:00"),
    "NOTURNO": ("19:00", "07:00"),
}


class Holiday(BaseModel):
    date: date
    type: HolidayType = "CUSTOM"
    name: str | None = None
    recurring_annual: bool = False


class PlanningInput(BaseModel):
    """Recurrence description.

    Attributes:
        recurrence_type: NONE, WEEKLY, BIWEEKLY, MONTHLY, CUSTOM_DATES or PACKAGE
        start_date: First day of the window
        end_date: Last day of the window (inclusive)
        duration_days: Window length when end_date is absent
        occurrences: Expected number of occurrences (caps open-ended windows)
        days_of_week: Allowed weekdays, 0=Sunday..6=Saturday (defaults to the start weekday)
        interval: Weeks (WEEKLY/BIWEEKLY), months (MONTHLY) or days (PACKAGE) between occurrences
        shift_type: DIURNO, NOTURNO, 24H or CUSTOM
        shift_start, shift_end: 'HH:MM' shift bounds
        hours_per_occurrence: Hours for CUSTOM shifts without explicit bounds
        holidays: Holiday dates, plain or typed
        excluded_dates / included_dates / custom_dates: Explicit date adjustments
    """

    recurrence_type: RecurrenceType = "WEEKLY"
    start_date: date
    end_date: date | None = None
    duration_days: int | None = Field(default=None, gt=0)
    occurrences: int | None = Field(default=None, gt=0)
    days_of_week: list[int] = Field(default_factory=list)
    interval: int | None = Field(default=None, gt=0)
    shift_type: ShiftType = "DIURNO"
    shift_start: str | None = None
    shift_end: str | None = None
    hours_per_occurrence: float = Field(default=12, gt=0, allow_inf_nan=False)
    holidays: list[date | Holiday] = Field(default_factory=list)
    excluded_dates: list[date] = Field(default_factory=list)
    included_dates: list[date] = Field(default_factory=list)
    custom_dates: list[date] = Field(default_factory=list)


def _weekday(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def _week_of_month(day: date) -> int:
    return (day.day + 6) // 7


def _parse_time_minutes(value: str) -> int:
    try:
        hours_text, minutes_text = value.strip().split(":")
        hours, minutes = int(hours_text), int(minutes_text)
    except ValueError as exc:
        raise PricingInputError(f"invalid shift time {value!r}, expected HH:MM") from exc
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise PricingInputError(f"invalid shift time {value!r}, expected HH:MM")
    return hours * 60 + minutes


def resolve_occurrence_hours(planning: PlanningInput) -> float:
    """Hours billed per occurrence for the planning's shift type."""
    if planning.shift_type == "24H":
        return 24.0

    if planning.shift_type == "CUSTOM" and not (planning.shift_start and planning.shift_end):
        return float(planning.hours_per_occurrence)

    default_start, default_end = DEFAULT_SHIFT_TIMES.get(planning.shift_type, ("07:00", "19:00"))
    start = _parse_time_minutes(planning.shift_start or default_start)
    end = _parse_time_minutes(planning.shift_end or default_end)

    if end > start:
        minutes = end - start
    elif end < start:
        # Crosses midnight
        minutes = 24 * 60 - start + end
    else:
        return float(planning.hours_per_occurrence)
    return round2(minutes / 60)


def resolve_end_date(planning: PlanningInput) -> date:
    start = planning.start_date
    if planning.end_date is not None:
        if planning.end_date < start:
            raise PricingInputError("end_date must be on or after start_date")
        return planning.end_date

    if planning.duration_days is not None:
        return start + timedelta(days=planning.duration_days - 1)

    if planning.recurrence_type == "NONE":
        return start

    occurrences = planning.occurrences or 1
    interval = planning.interval or 1

    if planning.recurrence_type == "PACKAGE":
        return start + timedelta(days=(occurrences - 1) * interval)
    if planning.recurrence_type == "CUSTOM_DATES":
        return start + timedelta(days=365)
    if planning.recurrence_type == "MONTHLY":
        return start + timedelta(days=max(30, occurrences * interval * 31))
    return start + timedelta(days=max(7, occurrences * interval * 7))


def _allowed_weekdays(planning: PlanningInput) -> set[int]:
    days = {day for day in planning.days_of_week if 0 <= day <= 6}
    return days or {_weekday(planning.start_date)}


def _days_between(start: date, end: date):
    for offset in range((end - start).days + 1):
        yield offset, start + timedelta(days=offset)


def _weekly_dates(planning: PlanningInput, end: date) -> list[date]:
    default_interval = 2 if planning.recurrence_type == "BIWEEKLY" else 1
    interval = planning.interval or default_interval
    allowed = _allowed_weekdays(planning)
    return [
        day
        for offset, day in _days_between(planning.start_date, end)
        if _weekday(day) in allowed and (offset // 7) % interval == 0
    ]


def _monthly_dates(planning: PlanningInput, end: date) -> list[date]:
    start = planning.start_date
    interval = planning.interval or 1
    allowed = _allowed_weekdays(planning)
    output: list[date] = []

    for _, day in _days_between(start, end):
        month_offset = (day.year - start.year) * 12 + (day.month - start.month)
        if month_offset % interval != 0:
            continue
        if not planning.days_of_week:
            # Same day of month as the start date
            if day.day == start.day:
                output.append(day)
            continue
        if _weekday(day) in allowed and _week_of_month(day) == _week_of_month(start):
            output.append(day)
    return output


def _package_dates(planning: PlanningInput, end: date) -> list[date]:
    occurrences = planning.occurrences or 1
    interval = planning.interval or 1
    # A package without weekday filter runs on consecutive steps
    allowed = _allowed_weekdays(planning) if planning.days_of_week else set(range(7))
    output: list[date] = []

    cursor = planning.start_date
    while cursor <= end and len(output) < occurrences:
        if _weekday(cursor) in allowed:
            output.append(cursor)
        cursor += timedelta(days=interval)
    return output


def generate_dates(planning: PlanningInput) -> list[date]:
    """Sorted service dates for the planning window."""
    start = planning.start_date
    end = resolve_end_date(planning)
    generated: set[date] = set()

    if planning.recurrence_type == "NONE":
        generated.add(start)
    elif planning.recurrence_type == "CUSTOM_DATES":
        generated.update(planning.custom_dates)
        generated.update(planning.included_dates)
        generated.add(start)
    elif planning.recurrence_type == "PACKAGE":
        generated.update(_package_dates(planning, end))
    elif planning.recurrence_type == "MONTHLY":
        generated.update(_monthly_dates(planning, end))
    else:
        generated.update(_weekly_dates(planning, end))

    for day in planning.included_dates:
        if start <= day <= end:
            generated.add(day)
    generated.difference_update(planning.excluded_dates)

    dates = sorted(generated)

    # Open-ended windows are sized generously; trim to the requested count
    expected = planning.occurrences or 0
    if expected and planning.end_date is None and planning.duration_days is None:
        dates = dates[:expected]
    return dates


def _holiday_lookup(planning: PlanningInput) -> tuple[dict[date, str], dict[tuple[int, int], str]]:
    exact: dict[date, str] = {}
    annual: dict[tuple[int, int], str] = {}
    for item in planning.holidays:
        if isinstance(item, Holiday):
            exact[item.date] = item.type
            if item.recurring_annual:
                annual[(item.date.month, item.date.day)] = item.type
        else:
            exact[item] = "CUSTOM"
    return exact, annual


def generate_schedule(planning: PlanningInput) -> Schedule:
    """Expand a PlanningInput into a Schedule.

    Args:
        planning: Recurrence description

    Returns:
        Schedule with one occurrence per service date, totals and window bounds
    """
    end = resolve_end_date(planning)
    hours = resolve_occurrence_hours(planning)
    if round_half_up(hours) < 1:
        raise PricingInputError(f"shift length of {hours}h is too short to price")

    exact, annual = _holiday_lookup(planning)

    dates = generate_dates(planning)
    if not dates:
        raise PricingInputError("planning window produces no service dates")

    occurrences: list[ScheduleOccurrence] = []
    for day in dates:
        holiday_type = exact.get(day) or annual.get((day.month, day.day))
        tags = [planning.recurrence_type, planning.shift_type]
        if holiday_type:
            tags.append(f"HOLIDAY_{holiday_type}")
        occurrences.append(
            ScheduleOccurrence(
                date=day,
                hours=hours,
                is_holiday=holiday_type is not None,
                is_weekend=_weekday(day) in (0, 6),
                tags=tags,
            )
        )

    return Schedule(
        occurrences=occurrences,
        total_hours=round2(sum(o.hours for o in occurrences)),
        total_days=len({o.date for o in occurrences}),
        window_start=planning.start_date,
        window_end=end,
    )
