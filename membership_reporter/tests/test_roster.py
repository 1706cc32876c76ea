from datetime import date

import pytest

from membership_reporter.models import Membership, Staff
from membership_reporter.roster import (
    build_current_roster,
    build_roster,
    enrich_with_coaches,
    is_active_on,
    resolve_active_memberships,
    resolve_current_roster,
)

AS_OF = date(2024, 7, 15)


def make_membership(id, name="Alice", start=date(2024, 1, 1), end=date(2025, 1, 1), **kwargs):
    return Membership(
        id=id,
        member_id=kwargs.pop("member_id", id),
        member_name=name,
        start_date=start,
        end_date=end,
        **kwargs,
    )


@pytest.fixture
def staff_lookup():
    return {
        1: Staff(id=1, coach_name="Coach Kim"),
        2: Staff(id=2, coach_name="Coach Lee"),
        3: Staff(id=3, coach_name="Coach Ng"),
    }


def test_empty_input_gives_empty_roster():
    assert resolve_active_memberships([], AS_OF) == []


def test_latest_start_date_wins():
    older = make_membership(1, start=date(2024, 1, 1))
    newer = make_membership(2, start=date(2024, 6, 1))
    result = resolve_active_memberships([newer, older], AS_OF)
    assert [m.id for m in result] == [2]


def test_tie_on_start_date_breaks_by_lowest_id():
    a = make_membership(7, start=date(2024, 3, 1))
    b = make_membership(4, start=date(2024, 3, 1))
    assert [m.id for m in resolve_active_memberships([a, b], AS_OF)] == [4]
    assert [m.id for m in resolve_active_memberships([b, a], AS_OF)] == [4]


def test_never_two_entries_per_member_name():
    records = [
        make_membership(i, name=name, start=date(2024, i % 5 + 1, 1))
        for i, name in enumerate(["Alice", "Bob", "Alice", "Cara", "Bob", "Alice"], 1)
    ]
    names = [m.member_name for m in resolve_active_memberships(records, AS_OF)]
    assert names == ["Alice", "Bob", "Cara"]


def test_no_sale_journey_stage_is_excluded_but_null_is_included():
    no_sale = make_membership(1, name="Alice", journey_stage="no_sale")
    null_stage = make_membership(2, name="Bob", journey_stage=None)
    renewed = make_membership(3, name="Cara", journey_stage="renewed_member")
    names = [m.member_name for m in resolve_active_memberships([no_sale, null_stage, renewed], AS_OF)]
    assert names == ["Bob", "Cara"]


def test_friends_and_family_status_is_excluded_but_null_is_included():
    ff = make_membership(1, name="Alice", status="f&f")
    null_status = make_membership(2, name="Bob", status=None)
    hold = make_membership(3, name="Cara", status="indefinite_hold")
    names = [m.member_name for m in resolve_active_memberships([ff, null_status, hold], AS_OF)]
    assert names == ["Bob", "Cara"]


def test_excluded_newer_membership_falls_back_to_older_eligible_one():
    older = make_membership(1, start=date(2024, 1, 1))
    newer_no_sale = make_membership(2, start=date(2024, 6, 1), journey_stage="no_sale")
    assert [m.id for m in resolve_active_memberships([older, newer_no_sale], AS_OF)] == [1]


def test_end_date_is_exclusive():
    ends_today = make_membership(1, end=AS_OF)
    assert not is_active_on(ends_today, AS_OF)
    assert is_active_on(make_membership(2, end=date(2024, 7, 16)), AS_OF)


def test_missing_end_date_is_not_active():
    assert not is_active_on(make_membership(1, end=None), AS_OF)


def test_historical_rule_requires_start_on_or_before_as_of():
    future_start = make_membership(1, start=date(2024, 8, 1))
    starts_today = make_membership(2, name="Bob", start=AS_OF)
    result = resolve_active_memberships([future_start, starts_today], AS_OF)
    assert [m.id for m in result] == [2]


def test_current_roster_ignores_start_date():
    # Pre-sold membership that has not started yet still shows on the current roster
    future_start = make_membership(1, start=date(2024, 8, 1))
    assert [m.id for m in resolve_current_roster([future_start], AS_OF)] == [1]
    assert resolve_active_memberships([future_start], AS_OF) == []


def test_current_roster_prefers_future_start_over_current_one():
    current = make_membership(1, start=date(2024, 1, 1))
    upcoming = make_membership(2, start=date(2024, 12, 1), end=date(2025, 12, 1))
    assert [m.id for m in resolve_current_roster([current, upcoming], AS_OF)] == [2]


def test_roster_sorted_by_member_name():
    records = [
        make_membership(1, name="Zed"),
        make_membership(2, name="Amy"),
        make_membership(3, name="Moe"),
    ]
    assert [m.member_name for m in resolve_current_roster(records, AS_OF)] == ["Amy", "Moe", "Zed"]


def test_enrich_resolves_all_three_coaches(staff_lookup):
    membership = make_membership(1, coach_id=1, programming_coach_id=2, handoff_coach_id=3)
    entry = enrich_with_coaches(membership, staff_lookup)
    assert entry.coach_name == "Coach Kim"
    assert entry.programming_coach_name == "Coach Lee"
    assert entry.handoff_coach_name == "Coach Ng"
    assert entry.member_name == "Alice"


def test_enrich_leaves_missing_or_unknown_coaches_absent(staff_lookup):
    membership = make_membership(1, coach_id=99, programming_coach_id=None, handoff_coach_id=2)
    entry = enrich_with_coaches(membership, staff_lookup)
    assert entry.coach_name is None
    assert entry.programming_coach_name is None
    assert entry.handoff_coach_name == "Coach Lee"


def test_build_current_roster_enriches_entries(staff_lookup):
    records = [
        make_membership(1, name="Bob", coach_id=2),
        make_membership(2, name="Alice", start=date(2024, 9, 1), coach_id=1),
    ]
    roster = build_current_roster(records, AS_OF, staff_lookup)
    assert [(e.member_name, e.coach_name) for e in roster] == [("Alice", "Coach Kim"), ("Bob", "Coach Lee")]
    # Historical rule drops Alice, whose membership starts later
    assert [e.member_name for e in build_roster(records, AS_OF, staff_lookup)] == ["Bob"]


def test_resolution_is_repeatable():
    records = [make_membership(i, name=f"M{i % 3}", start=date(2024, 1, i)) for i in range(1, 10)]
    first = resolve_active_memberships(records, AS_OF)
    second = resolve_active_memberships(records, AS_OF)
    assert first == second


def test_missing_start_date_loses_to_dated_membership_on_current_roster():
    undated = make_membership(1, start=None)
    dated = make_membership(2, start=date(2023, 1, 1))
    assert [m.id for m in resolve_current_roster([undated, dated], AS_OF)] == [2]
    # With no dated alternative the undated membership still counts for the current roster
    assert [m.id for m in resolve_current_roster([undated], AS_OF)] == [1]
    assert resolve_active_memberships([undated], AS_OF) == []
