import logging
import os
import sqlite3
from typing import Optional

from .config import DB_FILE


def create_database(db_name: str) -> Optional[sqlite3.Connection]:
    """
    Connects to an SQLite database and creates the reporting tables if they don't exist.
    Args:
        db_name (str): The name of the database file (e.g., 'membership_data.db' or ':memory:').
    Returns the open connection, or None if the schema could not be created.
    """
    conn = None
    try:
        conn = sqlite3.connect(db_name)
        cursor = conn.cursor()

        cursor.execute(
            """
        CREATE TABLE IF NOT EXISTS staff (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            coach_name TEXT NOT NULL
        );
        """
        )

        cursor.execute(
            """
        CREATE TABLE IF NOT EXISTS membership_types (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL
        );
        """
        )

        # New sale and renewal metadata share a shape
        for table in ("new_sale_metadata", "renewal_metadata"):
            cursor.execute(
                f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                value TEXT,
                total_sessions INTEGER,
                session_frequency_per_week INTEGER
            );
            """
            )

        cursor.execute(
            """
        CREATE TABLE IF NOT EXISTS system_config (
            pattern TEXT PRIMARY KEY,
            base_cost TEXT NOT NULL
        );
        """
        )

        cursor.execute(
            """
        CREATE TABLE IF NOT EXISTS memberships (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_id INTEGER,
            member_name TEXT,
            start_date TEXT,
            end_date TEXT,
            gym TEXT,
            status TEXT,
            journey_stage TEXT,
            coach_id INTEGER,
            programming_coach_id INTEGER,
            handoff_coach_id INTEGER,
            membership_type_id INTEGER,
            primary_membership_id INTEGER,
            test_duration TEXT,
            new_sale_metadata_id INTEGER,
            renewal_metadata_id INTEGER,
            FOREIGN KEY (coach_id) REFERENCES staff(id) ON DELETE SET NULL,
            FOREIGN KEY (programming_coach_id) REFERENCES staff(id) ON DELETE SET NULL,
            FOREIGN KEY (handoff_coach_id) REFERENCES staff(id) ON DELETE SET NULL,
            FOREIGN KEY (membership_type_id) REFERENCES membership_types(id),
            FOREIGN KEY (primary_membership_id) REFERENCES memberships(id),
            FOREIGN KEY (new_sale_metadata_id) REFERENCES new_sale_metadata(id),
            FOREIGN KEY (renewal_metadata_id) REFERENCES renewal_metadata(id)
        );
        """
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_memberships_member_name ON memberships (member_name, start_date);"
        )
        conn.commit()
    except sqlite3.Error as e:
        logging.error(f"Failed to create schema in {db_name}: {e}", exc_info=True)
        if conn:  # If connection was established before error, close it
            conn.close()
        return None
    return conn


def initialize_database(db_file: str = DB_FILE) -> Optional[sqlite3.Connection]:
    data_dir = os.path.dirname(db_file)
    if data_dir and not os.path.exists(data_dir):
        os.makedirs(data_dir)
        logging.info(f"Created data directory: {data_dir}")
    return create_database(db_file)
