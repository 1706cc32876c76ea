import os
from datetime import date
from decimal import Decimal

from membership_reporter.database import create_database
from membership_reporter.database_manager import DatabaseManager
from membership_reporter.main import main, parse_args
from membership_reporter.models import Membership


def test_parse_args_reads_as_of_date():
    args = parse_args(["--db", "x.db", "--as-of", "2023-01-15"])
    assert args.db == "x.db"
    assert args.as_of == date(2023, 1, 15)
    assert args.export is None


def test_main_prints_summary_and_exports(tmp_path, capsys):
    db_path = os.path.join(tmp_path, "data", "reports.db")
    os.makedirs(os.path.dirname(db_path))
    conn = create_database(db_path)
    manager = DatabaseManager(conn)
    manager.set_config_cost("PERFORM", Decimal("10"))
    manager.set_config_cost("RM", Decimal("20"))
    manager.add_membership(
        Membership(
            id=None, member_id=1, member_name="Alice",
            start_date=date(2022, 10, 1), end_date=date(2023, 10, 1), gym="North",
        )
    )
    conn.close()

    export_path = os.path.join(tmp_path, "report.xlsx")
    exit_code = main(["--db", db_path, "--as-of", "2023-01-15", "--export", export_path])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Active clients as of 2023-01-15: 1" in output
    assert "Latest month end 2023-01-31: 1 clients" in output
    assert "Memberships costed: 1" in output
    assert os.path.exists(export_path)


def test_main_on_empty_database(tmp_path, capsys):
    db_path = os.path.join(tmp_path, "empty.db")
    assert main(["--db", db_path, "--as-of", "2023-01-15"]) == 0
    output = capsys.readouterr().out
    assert "Active clients as of 2023-01-15: 0" in output
    assert "Latest month end" not in output
