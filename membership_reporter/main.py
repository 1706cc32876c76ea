import argparse
import logging
import sys
from datetime import date

from .app_api import AppAPI
from .config import DB_FILE, KNOWN_GYMS
from .database import initialize_database
from .database_manager import StoreUnavailableError


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Membership roster, history and cost reports")
    parser.add_argument("--db", default=DB_FILE, help="Path to the SQLite record store")
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Report date (YYYY-MM-DD), defaults to today",
    )
    parser.add_argument("--export", default=None, help="Write an .xlsx report to this path")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    as_of = args.as_of or date.today()

    conn = initialize_database(args.db)
    if conn is None:
        print(f"Error: could not open database at {args.db}")
        return 1
    api = AppAPI(connection=conn)

    try:
        reports = api.generate_reports(as_of, KNOWN_GYMS)
        if args.export:
            api.export_reports(args.export, reports)
    except StoreUnavailableError as e:
        logging.error(f"Reports could not be generated: {e}")
        return 1
    finally:
        conn.close()

    roster, history, costs = reports.roster, reports.history, reports.costs

    print(f"Active clients as of {as_of}: {len(roster)}")
    if history:
        latest = history[-1]
        print(
            f"Latest month end {latest.month_end_date}: {latest.active_client_count} clients, "
            f"{latest.gym_count} gyms, {latest.unique_coaches} coaches"
        )
        for gym, count in latest.gym_counts.items():
            print(f"  {gym}: {count}")
    margins = [c.margin for c in costs if c.margin is not None]
    print(f"Memberships costed: {len(costs)} ({len(margins)} with a margin)")

    if args.export:
        print(f"Report written to {args.export}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
