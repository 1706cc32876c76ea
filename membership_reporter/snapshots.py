import calendar
import logging
from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence

from .config import KNOWN_GYMS
from .models import Membership, MonthlySnapshot, ResolvedRosterEntry, Staff
from .roster import build_roster


def month_end(day: date) -> date:
    last_day = calendar.monthrange(day.year, day.month)[1]
    return date(day.year, day.month, last_day)


def month_end_dates(earliest: date, latest: date) -> List[date]:
    """Every calendar month end from earliest's month through latest's month, ascending."""
    dates = []
    year, month = earliest.year, earliest.month
    while (year, month) <= (latest.year, latest.month):
        dates.append(month_end(date(year, month, 1)))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return dates


def summarize_roster(
    month_end_date: date,
    entries: Sequence[ResolvedRosterEntry],
    known_gyms: Sequence[str] = KNOWN_GYMS,
) -> MonthlySnapshot:
    gyms = [e.membership.gym for e in entries]
    coaches = {e.coach_name for e in entries if e.coach_name is not None}
    return MonthlySnapshot(
        month_end_date=month_end_date,
        active_client_count=len(entries),
        gym_count=len({g for g in gyms if g is not None}),
        unique_coaches=len(coaches),
        gym_counts={label: gyms.count(label) for label in known_gyms},
    )


def generate_series(
    records: Iterable[Membership],
    earliest: Optional[date],
    latest: date,
    staff_lookup: Mapping[int, Staff],
    known_gyms: Optional[Sequence[str]] = None,
) -> List[MonthlySnapshot]:
    """
    Monthly active-client history. Each month end is resolved independently with
    the historical rule (start_date <= D < end_date), so months with no active
    clients still yield a zero row.
    """
    if earliest is None:
        return []
    if known_gyms is None:
        known_gyms = KNOWN_GYMS
    records = list(records)
    series = []
    for month_end_date in month_end_dates(earliest, latest):
        entries = build_roster(records, month_end_date, staff_lookup)
        series.append(summarize_roster(month_end_date, entries, known_gyms))
    logging.info(
        f"Generated {len(series)} monthly snapshots from {earliest} to {latest}."
    )
    return series
