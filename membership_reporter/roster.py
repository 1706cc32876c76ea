"""
Point-in-time active membership resolution.

A membership is active on a date D when start_date <= D < end_date. The
current roster only checks the end bound (end_date > D), the historical
snapshots check both. Each member appears at most once: the membership
with the latest start date wins, ties going to the lowest membership id.
"""
import logging
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from .config import EXCLUDED_JOURNEY_STAGE, EXCLUDED_STATUS
from .models import Membership, ResolvedRosterEntry, Staff


def is_active_on(membership: Membership, as_of: date, enforce_start: bool = True) -> bool:
    if membership.end_date is None or not membership.end_date > as_of:
        return False
    if enforce_start and (membership.start_date is None or membership.start_date > as_of):
        return False
    # NULL journey_stage / status count as "not excluded"
    if membership.journey_stage == EXCLUDED_JOURNEY_STAGE:
        return False
    if membership.status == EXCLUDED_STATUS:
        return False
    return True


def _recency_key(membership: Membership):
    # Latest start first, then lowest id; a missing start date sorts oldest
    start = membership.start_date or date.min
    return (-start.toordinal(), membership.id if membership.id is not None else 0)


def _name_key(membership: Membership):
    return (membership.member_name is None, membership.member_name or "")


def resolve_active_memberships(
    records: Iterable[Membership], as_of: date, enforce_start: bool = True
) -> List[Membership]:
    """Returns one active membership per member_name, sorted by member_name."""
    chosen: Dict[Optional[str], Membership] = {}
    for membership in records:
        if not is_active_on(membership, as_of, enforce_start):
            continue
        current = chosen.get(membership.member_name)
        if current is None or _recency_key(membership) < _recency_key(current):
            chosen[membership.member_name] = membership
    return sorted(chosen.values(), key=_name_key)


def resolve_current_roster(records: Iterable[Membership], as_of: date) -> List[Membership]:
    """Current roster rule: only end_date > as_of is checked, start_date is ignored."""
    return resolve_active_memberships(records, as_of, enforce_start=False)


def _coach_name(coach_id: Optional[int], staff_lookup: Mapping[int, Staff]) -> Optional[str]:
    if coach_id is None:
        return None
    staff = staff_lookup.get(coach_id)
    if staff is None:
        logging.debug(f"Coach ID {coach_id} has no staff record; leaving name empty.")
        return None
    return staff.coach_name


def enrich_with_coaches(
    membership: Membership, staff_lookup: Mapping[int, Staff]
) -> ResolvedRosterEntry:
    return ResolvedRosterEntry(
        membership=membership,
        coach_name=_coach_name(membership.coach_id, staff_lookup),
        programming_coach_name=_coach_name(membership.programming_coach_id, staff_lookup),
        handoff_coach_name=_coach_name(membership.handoff_coach_id, staff_lookup),
    )


def build_roster(
    records: Iterable[Membership],
    as_of: date,
    staff_lookup: Mapping[int, Staff],
    enforce_start: bool = True,
) -> List[ResolvedRosterEntry]:
    resolved = resolve_active_memberships(records, as_of, enforce_start)
    return [enrich_with_coaches(m, staff_lookup) for m in resolved]


def build_current_roster(
    records: Iterable[Membership], as_of: date, staff_lookup: Mapping[int, Staff]
) -> List[ResolvedRosterEntry]:
    return build_roster(records, as_of, staff_lookup, enforce_start=False)
