import sqlite3
from datetime import date
from typing import List, Optional, Sequence

from .costs import compute_cost_report
from .database import DB_FILE
from .database_manager import DatabaseManager
from .export import export_reports_excel
from .models import CostBreakdown, MonthlySnapshot, ReportSet, ResolvedRosterEntry
from .roster import build_current_roster
from .snapshots import generate_series


class AppAPI:
    """
    API layer for the membership reporter.
    Acts as a bridge between callers (dashboards, scripts) and the reporting logic.
    Each call reads every record kind it needs once, then computes in memory.
    StoreUnavailableError from the DatabaseManager is not caught here.
    """

    def __init__(self, connection: Optional[sqlite3.Connection] = None) -> None:
        if connection is None:
            connection = sqlite3.connect(DB_FILE, check_same_thread=False)
        self.db_manager: DatabaseManager = DatabaseManager(connection=connection)

    def get_current_roster(self, as_of: date) -> List[ResolvedRosterEntry]:
        memberships = self.db_manager.get_all_memberships()
        staff_lookup = self.db_manager.get_staff_lookup()
        return build_current_roster(memberships, as_of, staff_lookup)

    def get_monthly_history(
        self, now: date, known_gyms: Optional[Sequence[str]] = None
    ) -> List[MonthlySnapshot]:
        memberships = self.db_manager.get_all_memberships()
        staff_lookup = self.db_manager.get_staff_lookup()
        earliest = self.db_manager.get_earliest_start_date()
        return generate_series(memberships, earliest, now, staff_lookup, known_gyms)

    def get_cost_report(self) -> List[CostBreakdown]:
        return compute_cost_report(
            self.db_manager.get_all_memberships(),
            self.db_manager.get_membership_types(),
            self.db_manager.get_new_sale_metadata(),
            self.db_manager.get_renewal_metadata(),
            self.db_manager.get_config_costs(),
        )

    def generate_reports(
        self, as_of: date, known_gyms: Optional[Sequence[str]] = None
    ) -> ReportSet:
        """All three reports from a single read of each record kind."""
        memberships = self.db_manager.get_all_memberships()
        staff_lookup = self.db_manager.get_staff_lookup()
        earliest = self.db_manager.get_earliest_start_date()
        costs = compute_cost_report(
            memberships,
            self.db_manager.get_membership_types(),
            self.db_manager.get_new_sale_metadata(),
            self.db_manager.get_renewal_metadata(),
            self.db_manager.get_config_costs(),
        )
        return ReportSet(
            as_of=as_of,
            roster=build_current_roster(memberships, as_of, staff_lookup),
            history=generate_series(memberships, earliest, as_of, staff_lookup, known_gyms),
            costs=costs,
        )

    def export_reports(self, save_path, reports: ReportSet):
        """Writes already generated reports; does not touch the store."""
        return export_reports_excel(
            save_path,
            reports.roster,
            reports.history,
            reports.costs,
            as_of_label=reports.as_of.isoformat(),
        )
