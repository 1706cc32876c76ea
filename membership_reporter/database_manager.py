import logging
import sqlite3
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from .models import (
    Membership,
    MembershipType,
    SaleMetadata,
    Staff,
    SystemConfigCost,
)

# Basic logging configuration (can be overridden by application's config)
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)

METADATA_TABLES = ("new_sale_metadata", "renewal_metadata")

MEMBERSHIP_COLUMNS = (
    "id",
    "member_id",
    "member_name",
    "start_date",
    "end_date",
    "gym",
    "status",
    "journey_stage",
    "coach_id",
    "programming_coach_id",
    "handoff_coach_id",
    "membership_type_id",
    "primary_membership_id",
    "test_duration",
    "new_sale_metadata_id",
    "renewal_metadata_id",
)


class StoreUnavailableError(Exception):
    """Raised when the record store cannot serve a read."""


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    # Stored as YYYY-MM-DD, tolerate a trailing time component
    return date.fromisoformat(str(value)[:10])


def _parse_decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def _date_str(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


class DatabaseManager:
    def __init__(self, connection: sqlite3.Connection):
        self.conn = connection
        self.conn.row_factory = sqlite3.Row

    def _fetch_all(self, sql: str, params: tuple = (), context: str = "") -> List[sqlite3.Row]:
        """Runs a single bulk SELECT. Store failures propagate as StoreUnavailableError."""
        try:
            cursor = self.conn.cursor()
            cursor.execute(sql, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            logging.error(f"Database error in {context}: {e}", exc_info=True)
            raise StoreUnavailableError(f"Record store read failed in {context}: {e}") from e

    # Reads

    def get_all_memberships(self) -> List[Membership]:
        rows = self._fetch_all(
            f"SELECT {', '.join(MEMBERSHIP_COLUMNS)} FROM memberships ORDER BY id",
            context="get_all_memberships",
        )
        memberships = []
        for row in rows:
            data = dict(row)
            data["start_date"] = _parse_date(data["start_date"])
            data["end_date"] = _parse_date(data["end_date"])
            memberships.append(Membership(**data))
        logging.info(f"Loaded {len(memberships)} membership records.")
        return memberships

    def get_staff_lookup(self) -> Dict[int, Staff]:
        rows = self._fetch_all(
            "SELECT id, coach_name FROM staff", context="get_staff_lookup"
        )
        return {row["id"]: Staff(id=row["id"], coach_name=row["coach_name"]) for row in rows}

    def get_membership_types(self) -> Dict[int, MembershipType]:
        rows = self._fetch_all(
            "SELECT id, name FROM membership_types", context="get_membership_types"
        )
        return {row["id"]: MembershipType(id=row["id"], name=row["name"]) for row in rows}

    def _get_metadata(self, table: str) -> Dict[int, SaleMetadata]:
        rows = self._fetch_all(
            f"SELECT id, value, total_sessions, session_frequency_per_week FROM {table}",
            context=f"get {table}",
        )
        return {
            row["id"]: SaleMetadata(
                id=row["id"],
                value=_parse_decimal(row["value"]),
                total_sessions=row["total_sessions"],
                session_frequency_per_week=row["session_frequency_per_week"],
            )
            for row in rows
        }

    def get_new_sale_metadata(self) -> Dict[int, SaleMetadata]:
        return self._get_metadata("new_sale_metadata")

    def get_renewal_metadata(self) -> Dict[int, SaleMetadata]:
        return self._get_metadata("renewal_metadata")

    def get_config_costs(self) -> Dict[str, SystemConfigCost]:
        rows = self._fetch_all(
            "SELECT pattern, base_cost FROM system_config", context="get_config_costs"
        )
        return {
            row["pattern"]: SystemConfigCost(
                pattern=row["pattern"], base_cost=_parse_decimal(row["base_cost"])
            )
            for row in rows
        }

    def get_earliest_start_date(self) -> Optional[date]:
        rows = self._fetch_all(
            "SELECT MIN(start_date) AS earliest FROM memberships WHERE start_date IS NOT NULL",
            context="get_earliest_start_date",
        )
        return _parse_date(rows[0]["earliest"]) if rows else None

    # Writes, used when loading an extract into the store

    def add_staff(self, staff: Staff) -> Optional[Staff]:
        if not staff.coach_name or not staff.coach_name.strip():
            raise ValueError("Coach name cannot be empty.")
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                "INSERT INTO staff (id, coach_name) VALUES (?, ?)",
                (staff.id, staff.coach_name.strip()),
            )
            self.conn.commit()
            staff.id = cursor.lastrowid
            logging.info(f"Staff '{staff.coach_name}' added with ID {staff.id}.")
            return staff
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(
                f"Database error in add_staff for '{staff.coach_name}': {e}", exc_info=True
            )
            return None

    def add_membership_type(self, membership_type: MembershipType) -> Optional[MembershipType]:
        if not membership_type.name or not membership_type.name.strip():
            raise ValueError("Membership type name cannot be empty.")
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                "INSERT INTO membership_types (id, name) VALUES (?, ?)",
                (membership_type.id, membership_type.name.strip()),
            )
            self.conn.commit()
            membership_type.id = cursor.lastrowid
            logging.info(
                f"Membership type '{membership_type.name}' added with ID {membership_type.id}."
            )
            return membership_type
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(
                f"Database error in add_membership_type for '{membership_type.name}': {e}",
                exc_info=True,
            )
            return None

    def add_sale_metadata(self, metadata: SaleMetadata, renewal: bool = False) -> Optional[SaleMetadata]:
        """Adds a new-sale metadata record, or a renewal one when renewal=True."""
        table = METADATA_TABLES[1] if renewal else METADATA_TABLES[0]
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                f"INSERT INTO {table} (id, value, total_sessions, session_frequency_per_week) VALUES (?, ?, ?, ?)",
                (
                    metadata.id,
                    str(metadata.value) if metadata.value is not None else None,
                    metadata.total_sessions,
                    metadata.session_frequency_per_week,
                ),
            )
            self.conn.commit()
            metadata.id = cursor.lastrowid
            return metadata
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(f"Database error in add_sale_metadata ({table}): {e}", exc_info=True)
            return None

    def add_membership(self, membership: Membership) -> Optional[Membership]:
        """Adds a membership record.
        Raises ValueError if end_date is before start_date.
        Returns the membership with its id, or None if an error occurs.
        """
        if (
            membership.start_date
            and membership.end_date
            and membership.end_date < membership.start_date
        ):
            raise ValueError(
                f"End date {membership.end_date} is before start date {membership.start_date}."
            )
        values = []
        for column in MEMBERSHIP_COLUMNS:
            value = getattr(membership, column)
            if column in ("start_date", "end_date"):
                value = _date_str(value)
            values.append(value)
        placeholders = ", ".join("?" for _ in MEMBERSHIP_COLUMNS)
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                f"INSERT INTO memberships ({', '.join(MEMBERSHIP_COLUMNS)}) VALUES ({placeholders})",
                tuple(values),
            )
            self.conn.commit()
            membership.id = cursor.lastrowid
            logging.info(
                f"Membership ID {membership.id} added for '{membership.member_name}'."
            )
            return membership
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(
                f"Database error in add_membership for '{membership.member_name}': {e}",
                exc_info=True,
            )
            return None

    def set_config_cost(self, pattern: str, base_cost: Decimal) -> bool:
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                "INSERT OR REPLACE INTO system_config (pattern, base_cost) VALUES (?, ?)",
                (pattern, str(base_cost)),
            )
            self.conn.commit()
            logging.info(f"Base cost for {pattern} set to {base_cost}.")
            return True
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(f"Database error in set_config_cost for {pattern}: {e}", exc_info=True)
            return False
