import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from .config import (
    DEFAULT_MEMBERSHIP_WEEKS,
    GST_DIVISOR,
    PERFORM_PATTERN,
    RM_PATTERN,
    VO2_PATTERN,
    duration_weeks_rules,
    membership_class_keywords,
)
from .models import (
    CostBreakdown,
    Membership,
    MembershipClass,
    MembershipType,
    SaleMetadata,
    SystemConfigCost,
)

ZERO = Decimal("0")


def membership_weeks_true(test_duration: Optional[str]) -> int:
    """Maps a free-text duration such as '12 months' to a number of weeks."""
    if test_duration:
        for needle, weeks in duration_weeks_rules:
            if needle in test_duration:
                return weeks
    logging.debug(
        f"Unrecognised test duration {test_duration!r}, using {DEFAULT_MEMBERSHIP_WEEKS} weeks."
    )
    return DEFAULT_MEMBERSHIP_WEEKS


def classify_membership(type_name: Optional[str]) -> MembershipClass:
    lowered = (type_name or "").lower()
    for keyword, class_name in membership_class_keywords:
        if keyword in lowered:
            return MembershipClass[class_name]
    return MembershipClass.STANDARD


def adjusted_sessions(
    membership_class: MembershipClass, metadata: Optional[SaleMetadata], weeks: int
) -> Optional[int]:
    if membership_class is MembershipClass.ONLINE_COACHING or metadata is None:
        return None
    if membership_class is MembershipClass.PACK:
        return metadata.total_sessions
    if metadata.session_frequency_per_week is None:
        return None
    return metadata.session_frequency_per_week * weeks


def _base_cost(config: Mapping[str, SystemConfigCost], pattern: str) -> Optional[Decimal]:
    entry = config.get(pattern)
    return entry.base_cost if entry is not None else None


def warn_missing_patterns(config: Mapping[str, SystemConfigCost]) -> List[str]:
    """Logs one warning per cost pattern with no configured base cost."""
    missing = [p for p in (PERFORM_PATTERN, VO2_PATTERN, RM_PATTERN) if p not in config]
    for pattern in missing:
        logging.warning(f"No base cost configured for {pattern}; those costs will be left empty.")
    return missing


def _session_cost(sessions: Optional[int], base_cost: Optional[Decimal]) -> Optional[Decimal]:
    if sessions is None or base_cost is None:
        return None
    return sessions * base_cost


def compute_costs(
    membership: Membership,
    metadata: Optional[SaleMetadata],
    membership_type: Optional[MembershipType],
    config: Mapping[str, SystemConfigCost],
    renewal_metadata: Optional[SaleMetadata] = None,
) -> CostBreakdown:
    """
    Per-membership cost figures. `metadata` is the new-sale record; `renewal_metadata`
    is the fallback for both session counts and the sale value.
    Sale group totals and margins are filled in by compute_cost_report.
    """
    weeks = membership_weeks_true(membership.test_duration)
    membership_class = classify_membership(membership_type.name if membership_type else None)
    session_source = metadata if metadata is not None else renewal_metadata
    sessions = adjusted_sessions(membership_class, session_source, weeks)

    if membership_class in (MembershipClass.ONLINE_COACHING, MembershipClass.VO2):
        perform_cost = ZERO
    else:
        # Pack sessions are total_sessions, which adjusted_sessions already returns
        perform_cost = _session_cost(sessions, _base_cost(config, PERFORM_PATTERN))

    if membership_class is MembershipClass.VO2:
        vo2_cost = _session_cost(sessions, _base_cost(config, VO2_PATTERN))
    else:
        vo2_cost = ZERO

    if membership.is_child or membership_class in (
        MembershipClass.ONLINE_COACHING,
        MembershipClass.PACK,
    ):
        rm_cost = ZERO
    else:
        rm_base = _base_cost(config, RM_PATTERN)
        rm_cost = rm_base * weeks if rm_base is not None else None

    membership_value = None
    for source in (metadata, renewal_metadata):
        if source is not None and source.value is not None:
            membership_value = source.value
            break
    value_ex_gst = membership_value / GST_DIVISOR if membership_value is not None else None

    return CostBreakdown(
        membership_id=membership.id,
        member_name=membership.member_name,
        sale_group_id=membership.sale_group_id,
        is_child=membership.is_child,
        membership_class=membership_class,
        membership_weeks_true=weeks,
        adjusted_sessions=sessions,
        perform_cost=perform_cost,
        vo2_cost=vo2_cost,
        rm_cost=rm_cost,
        membership_value=membership_value,
        membership_value_ex_gst=value_ex_gst,
    )


def build_sale_group_index(memberships: Iterable[Membership]) -> Dict[int, int]:
    """First pass: membership id -> sale group key (primary id, or its own id).
    Raises ValueError for a membership without an id, since it cannot be grouped.
    """
    index = {}
    for m in memberships:
        if m.id is None:
            raise ValueError(f"Membership for '{m.member_name}' has no id; load it into the store first.")
        index[m.id] = m.sale_group_id
    return index


def apply_margin(breakdown: CostBreakdown, total_overall_cost: Decimal) -> CostBreakdown:
    breakdown.total_overall_cost = total_overall_cost
    if breakdown.membership_class is MembershipClass.ONLINE_COACHING:
        breakdown.margin = None
        breakdown.margin_percent = None
        return breakdown
    value_ex_gst = breakdown.membership_value_ex_gst
    if value_ex_gst is None:
        breakdown.margin = None
        breakdown.margin_percent = None
        return breakdown
    breakdown.margin = value_ex_gst - total_overall_cost
    if value_ex_gst == 0:
        breakdown.margin_percent = None
    else:
        breakdown.margin_percent = 1 - total_overall_cost / value_ex_gst
    return breakdown


def compute_cost_report(
    memberships: Iterable[Membership],
    membership_types: Mapping[int, MembershipType],
    new_sale_metadata: Mapping[int, SaleMetadata],
    renewal_metadata: Mapping[int, SaleMetadata],
    config: Mapping[str, SystemConfigCost],
) -> List[CostBreakdown]:
    """One CostBreakdown per membership, children included, in input order."""
    memberships = list(memberships)
    group_index = build_sale_group_index(memberships)
    warn_missing_patterns(config)

    breakdowns = []
    group_totals: Dict[int, Decimal] = {}
    for membership in memberships:
        breakdown = compute_costs(
            membership,
            new_sale_metadata.get(membership.new_sale_metadata_id),
            membership_types.get(membership.membership_type_id),
            config,
            renewal_metadata=renewal_metadata.get(membership.renewal_metadata_id),
        )
        group_key = group_index[membership.id]
        group_totals[group_key] = group_totals.get(group_key, ZERO) + breakdown.overall_cost
        breakdowns.append(breakdown)

    for breakdown in breakdowns:
        apply_margin(breakdown, group_totals[group_index[breakdown.membership_id]])
    logging.info(
        f"Computed costs for {len(breakdowns)} memberships across {len(group_totals)} sale groups."
    )
    return breakdowns
