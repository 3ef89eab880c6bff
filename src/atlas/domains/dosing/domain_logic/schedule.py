"""Next-dose computation for every schedule kind.

All functions are pure: the caller supplies ``now`` and the regimen snapshot.
Results carry ``now``'s tzinfo; aware anchors are converted to ``now``'s zone
before calendar dates are taken, so day arithmetic follows the user's wall
clock.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta

from atlas.domains.dosing.domain_logic.models import (
    DEFAULT_DOSE_TIME,
    AlternatingDays,
    AsNeeded,
    Daily,
    DoseEvent,
    EveryNDays,
    Regimen,
    ScheduleKind,
    SpecificWeekdays,
)

logger = logging.getLogger(__name__)

# Legacy "every 3.5 days" encoding (EveryNDays(3)).
E3_5D = AlternatingDays((3, 4))

# Upper bound on projected reminders, mirroring the platform notification limit.
MAX_UPCOMING_DOSES = 64


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------

def _local_date(ts: datetime, now: datetime) -> date:
    """Calendar date of ``ts`` as seen from ``now``'s timezone."""
    if ts.tzinfo is not None and now.tzinfo is not None:
        ts = ts.astimezone(now.tzinfo)
    return ts.date()


def _at_time(day: date, time_of_day: time, now: datetime) -> datetime:
    wall = time(time_of_day.hour, time_of_day.minute)
    return datetime.combine(day, wall, tzinfo=now.tzinfo)


def days_between(a: datetime, b: datetime) -> int:
    """Absolute number of calendar days between two timestamps."""
    return abs((_local_date(b, a) - a.date()).days)


def _time_of_day(regimen: Regimen, default_time: time) -> time:
    return regimen.notification_time or default_time


# ---------------------------------------------------------------------------
# Per-kind calculators
# ---------------------------------------------------------------------------

def _next_daily(now: datetime, time_of_day: time) -> datetime:
    due = _at_time(now.date(), time_of_day, now)
    if due <= now:
        due = _at_time(now.date() + timedelta(days=1), time_of_day, now)
    return due


def _next_every_n_days(regimen: Regimen, n: int, now: datetime, time_of_day: time) -> datetime:
    anchor = regimen.last_dose_date or regimen.start_date or now
    today = now.date()
    days_since = (today - _local_date(anchor, now)).days

    days_until = n - (days_since % n)
    if days_until == n and days_since > 0:
        days_until = 0

    due = _at_time(today + timedelta(days=days_until), time_of_day, now)
    if due <= now and days_until == 0:
        due = _at_time(today + timedelta(days=n), time_of_day, now)
    return due


def _alternating_dose_days(origin: date, lengths: tuple[int, ...], earliest: date) -> Iterator[date]:
    """Yield the cycle's dose days on or after ``earliest``, in order."""
    cycle = sum(lengths)
    offsets = [0]
    for length in lengths[:-1]:
        offsets.append(offsets[-1] + length)

    k = (earliest - origin).days // cycle
    while True:
        base = origin + timedelta(days=k * cycle)
        for offset in offsets:
            day = base + timedelta(days=offset)
            if day >= earliest:
                yield day
        k += 1


def _next_alternating(
    regimen: Regimen,
    schedule: AlternatingDays,
    now: datetime,
    time_of_day: time,
) -> datetime:
    # Phase is pinned to the start date so consecutive doses walk the
    # length sequence instead of restarting it at every logged dose.
    origin = _local_date(regimen.start_date or regimen.last_dose_date or now, now)
    last_dosed = _local_date(regimen.last_dose_date or regimen.start_date or now, now)
    today = now.date()
    earliest = max(last_dosed + timedelta(days=1), today)

    for day in _alternating_dose_days(origin, schedule.lengths, earliest):
        due = _at_time(day, time_of_day, now)
        if day > today or due > now:
            return due
    raise AssertionError("unreachable: dose day generator is infinite")  # pragma: no cover


def _next_specific_weekdays(schedule: SpecificWeekdays, now: datetime, time_of_day: time) -> datetime:
    current_weekday = (now.weekday() + 1) % 7  # 0 = Sunday
    today = now.date()

    days_until = 7
    for day in schedule.sorted_days:
        diff = (day - current_weekday) % 7
        if diff == 0:
            if _at_time(today, time_of_day, now) > now:
                days_until = 0
                break
        elif diff < days_until:
            days_until = diff

    return _at_time(today + timedelta(days=days_until), time_of_day, now)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def next_due(
    regimen: Regimen,
    now: datetime,
    *,
    default_time: time = DEFAULT_DOSE_TIME,
) -> datetime | None:
    """Return when the regimen's next dose falls due.

    Args:
        regimen: Regimen snapshot.
        now: Reference time supplied by the caller.
        default_time: Time of day used when the regimen has none.

    Returns:
        The next due moment, or None for inactive and as-needed regimens.
    """
    if not regimen.is_active:
        return None

    schedule = regimen.schedule
    time_of_day = _time_of_day(regimen, default_time)

    if isinstance(schedule, AsNeeded):
        return None
    if isinstance(schedule, Daily):
        due = _next_daily(now, time_of_day)
    elif isinstance(schedule, EveryNDays):
        if schedule.is_legacy_alternating:
            due = _next_alternating(regimen, E3_5D, now, time_of_day)
        else:
            due = _next_every_n_days(regimen, schedule.n, now, time_of_day)
    elif isinstance(schedule, AlternatingDays):
        due = _next_alternating(regimen, schedule, now, time_of_day)
    elif isinstance(schedule, SpecificWeekdays):
        due = _next_specific_weekdays(schedule, now, time_of_day)
    else:
        raise TypeError(f"Unsupported schedule kind: {schedule!r}")

    logger.debug("Next dose for %s (%s): %s", regimen.compound_id, schedule.description, due)
    return due


def is_due_today(regimen: Regimen, now: datetime, *, default_time: time = DEFAULT_DOSE_TIME) -> bool:
    due = next_due(regimen, now, default_time=default_time)
    return due is not None and due.date() == now.date()


def is_overdue(regimen: Regimen, now: datetime, *, default_time: time = DEFAULT_DOSE_TIME) -> bool:
    due = next_due(regimen, now, default_time=default_time)
    return due is not None and due < now


def is_dose_completed_today(regimen: Regimen, now: datetime) -> bool:
    """Whether a dose (or skip) was already recorded on ``now``'s calendar day."""
    if regimen.last_dose_date is None:
        return False
    return _local_date(regimen.last_dose_date, now) == now.date()


def upcoming_doses(
    regimen: Regimen,
    now: datetime,
    count: int = 7,
    *,
    default_time: time = DEFAULT_DOSE_TIME,
) -> list[datetime]:
    """Project the next ``count`` due moments, assuming each dose is taken on time.

    Used by hosts to pre-schedule reminders; capped at ``MAX_UPCOMING_DOSES``.
    """
    doses: list[datetime] = []
    projected = regimen
    if projected.start_date is None:
        # Pin the cycle phase before recording projected doses.
        projected = replace(projected, start_date=projected.last_dose_date or now)
    current = now
    while len(doses) < min(count, MAX_UPCOMING_DOSES):
        due = next_due(projected, current, default_time=default_time)
        if due is None:
            break
        doses.append(due)
        projected = projected.record_dose(due)
        current = due
    return doses


def schedule_interval_days(schedule: ScheduleKind) -> float:
    """Average number of days between doses, for supply estimates.

    As-needed schedules have no cadence and return 0.
    """
    if isinstance(schedule, Daily):
        return 1.0
    if isinstance(schedule, EveryNDays):
        if schedule.is_legacy_alternating:
            return E3_5D.cycle_days / len(E3_5D.lengths)
        return float(schedule.n)
    if isinstance(schedule, AlternatingDays):
        return schedule.cycle_days / len(schedule.lengths)
    if isinstance(schedule, SpecificWeekdays):
        return 7 / len(schedule.days)
    return 0.0


# ---------------------------------------------------------------------------
# Dashboard aggregates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DailyProgress:
    completed: int
    total: int

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 0.0


def todays_regimens(
    regimens: list[Regimen],
    now: datetime,
    *,
    default_time: time = DEFAULT_DOSE_TIME,
) -> list[Regimen]:
    """Regimens scheduled for ``now``'s day, earliest dose time first.

    A regimen already dosed today stays on the list even though its next due
    moment has moved past today. Regimens without a dose time sort last.
    """
    today = []
    for regimen in regimens:
        if next_due(regimen, now, default_time=default_time) is None:
            continue
        if is_due_today(regimen, now, default_time=default_time) or is_dose_completed_today(regimen, now):
            today.append(regimen)
    return sorted(
        today,
        key=lambda r: (r.notification_time is None, r.notification_time or time.min),
    )


def daily_progress(
    regimens: list[Regimen],
    now: datetime,
    *,
    default_time: time = DEFAULT_DOSE_TIME,
) -> DailyProgress:
    today = todays_regimens(regimens, now, default_time=default_time)
    completed = sum(1 for r in today if is_dose_completed_today(r, now))
    return DailyProgress(completed=completed, total=len(today))


def upcoming_within(
    regimens: list[Regimen],
    now: datetime,
    days: int = 7,
    *,
    default_time: time = DEFAULT_DOSE_TIME,
) -> list[tuple[Regimen, datetime]]:
    """Regimens next due from tomorrow through ``days`` days ahead, soonest first."""
    first = now.date() + timedelta(days=1)
    last = now.date() + timedelta(days=days)
    upcoming = []
    for regimen in regimens:
        due = next_due(regimen, now, default_time=default_time)
        if due is not None and first <= due.date() <= last:
            upcoming.append((regimen, due))
    upcoming.sort(key=lambda pair: pair[1])
    return upcoming


def doses_this_week(events: list[DoseEvent], now: datetime, *, first_weekday: int = 0) -> int:
    """Doses taken from the start of the current week through today.

    ``first_weekday`` uses 0 = Sunday. Skipped doses are not counted.
    """
    weekday = (now.weekday() + 1) % 7
    week_start = now.date() - timedelta(days=(weekday - first_weekday) % 7)
    return sum(
        1
        for event in events
        if not event.is_skipped and week_start <= _local_date(event.timestamp, now) <= now.date()
    )
