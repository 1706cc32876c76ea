from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional


class MembershipClass(Enum):
    STANDARD = "standard"
    PACK = "pack"
    VO2 = "vo2"
    ONLINE_COACHING = "online_coaching"


@dataclass
class Staff:
    id: Optional[int]
    coach_name: str


@dataclass
class MembershipType:
    id: Optional[int]
    name: str


@dataclass
class SaleMetadata:
    id: Optional[int]
    value: Optional[Decimal] = None  # GST inclusive
    total_sessions: Optional[int] = None
    session_frequency_per_week: Optional[int] = None


@dataclass
class SystemConfigCost:
    pattern: str  # PERFORM, VO2 or RM
    base_cost: Decimal


@dataclass
class Membership:
    id: Optional[int]
    member_id: Optional[int]
    member_name: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    gym: Optional[str] = None
    status: Optional[str] = None  # free-form, e.g. 'active', 'indefinite_hold', 'f&f'
    journey_stage: Optional[str] = None  # e.g. 'new_member', 'renewed_member', 'no_sale'
    coach_id: Optional[int] = None
    programming_coach_id: Optional[int] = None
    handoff_coach_id: Optional[int] = None
    membership_type_id: Optional[int] = None
    primary_membership_id: Optional[int] = None
    test_duration: Optional[str] = None
    new_sale_metadata_id: Optional[int] = None
    renewal_metadata_id: Optional[int] = None

    @property
    def is_child(self) -> bool:
        return self.primary_membership_id is not None

    @property
    def sale_group_id(self) -> Optional[int]:
        return self.primary_membership_id if self.is_child else self.id


@dataclass
class ResolvedRosterEntry:
    membership: Membership
    # Fields with defaults come after non-default fields
    coach_name: Optional[str] = None
    programming_coach_name: Optional[str] = None
    handoff_coach_name: Optional[str] = None

    @property
    def member_name(self) -> Optional[str]:
        return self.membership.member_name


@dataclass
class MonthlySnapshot:
    month_end_date: date
    active_client_count: int
    gym_count: int
    unique_coaches: int
    gym_counts: Dict[str, int] = field(default_factory=dict)  # known gym label -> count


@dataclass
class CostBreakdown:
    membership_id: int
    member_name: Optional[str]
    sale_group_id: int
    is_child: bool
    membership_class: MembershipClass
    membership_weeks_true: int
    adjusted_sessions: Optional[int]
    perform_cost: Optional[Decimal]
    vo2_cost: Optional[Decimal]
    rm_cost: Optional[Decimal]
    membership_value: Optional[Decimal]
    membership_value_ex_gst: Optional[Decimal]
    # Filled in by the sale group pass
    total_overall_cost: Decimal = Decimal("0")
    margin: Optional[Decimal] = None
    margin_percent: Optional[Decimal] = None

    @property
    def overall_cost(self) -> Decimal:
        """Sum of this membership's own cost components; absent components count as zero."""
        return sum(
            (c for c in (self.perform_cost, self.vo2_cost, self.rm_cost) if c is not None),
            Decimal("0"),
        )


@dataclass
class ReportSet:
    """Roster, monthly history and costs computed from one read of the store."""
    as_of: date
    roster: List[ResolvedRosterEntry]
    history: List[MonthlySnapshot]
    costs: List[CostBreakdown]
