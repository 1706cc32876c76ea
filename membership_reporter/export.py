import logging
from typing import Sequence

import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .models import CostBreakdown, MonthlySnapshot, ResolvedRosterEntry

ROSTER_COLUMNS = [
    "Member Name", "Gym", "Start Date", "End Date", "Status", "Journey Stage",
    "Coach", "Programming Coach", "Handoff Coach",
]
HISTORY_COLUMNS = ["Month End", "Active Clients", "Gyms", "Unique Coaches"]
COST_COLUMNS = [
    "Membership ID", "Member Name", "Sale Group", "Child", "Class", "Weeks",
    "Adjusted Sessions", "PERFORM Cost", "VO2 Cost", "RM Cost", "Value",
    "Value ex GST", "Total Overall Cost", "Margin", "Margin %",
]
MONEY_COLUMNS = [
    "PERFORM Cost", "VO2 Cost", "RM Cost", "Value", "Value ex GST",
    "Total Overall Cost", "Margin",
]


def roster_to_dataframe(entries: Sequence[ResolvedRosterEntry]) -> pd.DataFrame:
    rows = [
        [
            e.membership.member_name,
            e.membership.gym,
            e.membership.start_date,
            e.membership.end_date,
            e.membership.status,
            e.membership.journey_stage,
            e.coach_name,
            e.programming_coach_name,
            e.handoff_coach_name,
        ]
        for e in entries
    ]
    return pd.DataFrame(rows, columns=ROSTER_COLUMNS)


def snapshots_to_dataframe(snapshots: Sequence[MonthlySnapshot]) -> pd.DataFrame:
    gym_labels = []
    for snapshot in snapshots:
        for label in snapshot.gym_counts:
            if label not in gym_labels:
                gym_labels.append(label)
    rows = [
        [s.month_end_date, s.active_client_count, s.gym_count, s.unique_coaches]
        + [s.gym_counts.get(label, 0) for label in gym_labels]
        for s in snapshots
    ]
    return pd.DataFrame(rows, columns=HISTORY_COLUMNS + gym_labels)


def _to_float(value):
    return float(value) if value is not None else None


def costs_to_dataframe(breakdowns: Sequence[CostBreakdown]) -> pd.DataFrame:
    rows = [
        [
            b.membership_id,
            b.member_name,
            b.sale_group_id,
            b.is_child,
            b.membership_class.value,
            b.membership_weeks_true,
            b.adjusted_sessions,
            _to_float(b.perform_cost),
            _to_float(b.vo2_cost),
            _to_float(b.rm_cost),
            _to_float(b.membership_value),
            _to_float(b.membership_value_ex_gst),
            _to_float(b.total_overall_cost),
            _to_float(b.margin),
            _to_float(b.margin_percent),
        ]
        for b in breakdowns
    ]
    return pd.DataFrame(rows, columns=COST_COLUMNS)


def _display_len(value) -> int:
    # Absent values (None, NaN) are written as empty cells
    if value is None or pd.isna(value):
        return 0
    return len(str(value))


def _style_sheet(sheet, df: pd.DataFrame, title: str) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
    title_font = Font(bold=True, size=16)
    border_style = Side(style="thin", color="000000")
    thin_border = Border(left=border_style, right=border_style, top=border_style, bottom=border_style)

    sheet.cell(row=1, column=1, value=title).font = title_font
    for col_num, column_title in enumerate(df.columns, 1):
        cell = sheet.cell(row=2, column=col_num)
        cell.font = header_font
        cell.fill = header_fill
        cell.border = thin_border
        max_len = max([len(str(column_title))] + [_display_len(v) for v in df[column_title]]) + 2
        sheet.column_dimensions[get_column_letter(col_num)].width = min(max_len, 50)
        if column_title in MONEY_COLUMNS:
            for row_num in range(3, sheet.max_row + 1):
                sheet.cell(row=row_num, column=col_num).number_format = '"$"#,##0.00'
        elif column_title == "Margin %":
            for row_num in range(3, sheet.max_row + 1):
                sheet.cell(row=row_num, column=col_num).number_format = "0.0%"

    for row_idx_offset, _ in enumerate(df.index):
        for col_idx, _ in enumerate(df.columns):
            sheet.cell(row=row_idx_offset + 3, column=col_idx + 1).border = thin_border


def export_reports_excel(
    save_path,
    roster: Sequence[ResolvedRosterEntry],
    snapshots: Sequence[MonthlySnapshot],
    breakdowns: Sequence[CostBreakdown],
    as_of_label: str = "",
) -> str:
    """Writes Roster, Monthly History and Costs sheets. save_path may be a path or a BytesIO."""
    sheets = [
        ("Roster", roster_to_dataframe(roster), f"Active Roster {as_of_label}".strip()),
        ("Monthly History", snapshots_to_dataframe(snapshots), "Monthly Active Clients"),
        ("Costs", costs_to_dataframe(breakdowns), "Membership Costs & Margin"),
    ]
    with pd.ExcelWriter(save_path, engine="openpyxl") as writer:
        for sheet_name, df, title in sheets:
            df.to_excel(writer, sheet_name=sheet_name, index=False, startrow=1)
            _style_sheet(writer.sheets[sheet_name], df, title)
    logging.info(f"Reports exported to {save_path}.")
    return save_path
