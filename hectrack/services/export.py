from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Font

from hectrack.services.models import Project, utc_now

DATE_RANGES = ("currentMonth", "lastMonth", "currentQuarter")
FORMATS = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
}


class EmptyExportError(ValueError):
    pass


@dataclass
class ExportFilters:
    state: str = "all"
    date_range: str = "currentMonth"
    include_labours: bool = True
    include_materials: bool = True
    format: str = "xlsx"


@dataclass
class ExportFile:
    filename: str
    content: bytes
    media_type: str
    project_count: int


def format_inr(amount: float) -> str:
    """Rupee amount with Indian digit grouping, e.g. 1234567 -> '₹12,34,567'."""
    sign = "-" if amount < 0 else ""
    digits = str(int(round(abs(amount))))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    return f"{sign}₹{digits}"


def _months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    for candidate in (day.day, 30, 29, 28):
        try:
            return date(year, month, candidate)
        except ValueError:
            continue
    raise ValueError(f"Cannot step {months} months back from {day}")


def window_start(date_range: str, now: datetime) -> datetime:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    today = now.date()
    if date_range == "lastMonth":
        start = _months_back(today, 1)
    elif date_range == "currentQuarter":
        start = _months_back(today, 3)
    elif date_range == "currentMonth":
        start = today.replace(day=1)
    else:
        raise ValueError(f"date_range must be one of: {', '.join(DATE_RANGES)}")
    return datetime.combine(start, time.min, tzinfo=timezone.utc)


def _iso(day: Optional[date]) -> str:
    return day.isoformat() if day else "N/A"


def _project_rows(projects: list[Project]) -> list[dict[str, Any]]:
    return [
        {
            "Project ID": project.id,
            "Project Name": project.name,
            "Description": project.description,
            "State": project.state,
            "Status": project.status.value,
            "Site Engineer": project.engineer,
            "Start Date": _iso(project.start_date),
            "Completion Date": _iso(project.target_date),
            "Project Value (₹)": project.value,
            "Total Labour Entries": len(project.labours),
            "Total Material Entries": len(project.materials),
            "Created Date": project.created_at.date().isoformat(),
        }
        for project in projects
    ]


def _labour_rows(projects: list[Project]) -> list[dict[str, Any]]:
    return [
        {
            "Project ID": project.id,
            "Project Name": project.name,
            "State": project.state,
            "Date": _iso(entry.work_date),
            "Number of Labours": entry.count,
            "Daily Salary (₹)": entry.daily_rate,
            "Total Daily Salary (₹)": entry.daily_cost,
            "Work Description": entry.work_description,
        }
        for project in projects
        for entry in project.labours
    ]


def _material_rows(projects: list[Project]) -> list[dict[str, Any]]:
    return [
        {
            "Project ID": project.id,
            "Project Name": project.name,
            "State": project.state,
            "Material Name": entry.name,
            "Unit Cost (₹)": entry.unit_cost,
            "Quantity": entry.quantity,
            "Total Cost (₹)": entry.line_cost,
            "Purchase Date": _iso(entry.purchase_date),
            "Supplier": entry.supplier,
        }
        for project in projects
        for entry in project.materials
    ]


def _workbook_bytes(sheets: list[tuple[str, list[dict[str, Any]]]]) -> bytes:
    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets:
        sheet = workbook.create_sheet(title)
        headers = list(rows[0].keys())
        sheet.append(headers)
        for cell in sheet[1]:
            cell.font = Font(bold=True)
        for row in rows:
            sheet.append([row[header] for header in headers])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _csv_bytes(sheets: list[tuple[str, list[dict[str, Any]]]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    for index, (title, rows) in enumerate(sheets):
        if index:
            writer.writerow([])
        writer.writerow([f"# {title}"])
        headers = list(rows[0].keys())
        writer.writerow(headers)
        for row in rows:
            writer.writerow([row[header] for header in headers])
    return buffer.getvalue().encode("utf-8-sig")


def _render(sheets: list[tuple[str, list[dict[str, Any]]]], fmt: str) -> bytes:
    if fmt == "csv":
        return _csv_bytes(sheets)
    return _workbook_bytes(sheets)


def select_projects(projects: Iterable[Project], filters: ExportFilters, now: datetime) -> list[Project]:
    start = window_start(filters.date_range, now)
    return [
        project
        for project in projects
        if (filters.state == "all" or project.state == filters.state) and project.created_at >= start
    ]


def build_export(
    projects: Iterable[Project],
    filters: ExportFilters,
    now: Optional[datetime] = None,
) -> ExportFile:
    if filters.format not in FORMATS:
        raise ValueError(f"format must be one of: {', '.join(FORMATS)}")

    now = now or utc_now()
    selected = select_projects(projects, filters, now)
    if not selected:
        raise EmptyExportError("No data available to export.")

    labours = _labour_rows(selected)
    materials = _material_rows(selected)
    sheets: list[tuple[str, list[dict[str, Any]]]] = [("Projects", _project_rows(selected))]
    if filters.include_labours and labours:
        sheets.append(("Labours", labours))
    if filters.include_materials and materials:
        sheets.append(("Materials", materials))
    sheets.append(
        (
            "Summary",
            [
                {
                    "Report Generated": now.strftime("%Y-%m-%d %H:%M:%S"),
                    "Total Projects": len(selected),
                    "Total Project Value": format_inr(sum(project.value for project in selected)),
                    "Total Labour Entries": len(labours),
                    "Total Material Entries": len(materials),
                }
            ],
        )
    )

    filename = f"HEC_Export_{filters.date_range}_{now:%B}_{now:%Y}.{filters.format}"
    return ExportFile(filename, _render(sheets, filters.format), FORMATS[filters.format], len(selected))


def build_quick_export(projects: Iterable[Project], now: Optional[datetime] = None) -> ExportFile:
    now = now or utc_now()
    selected = list(projects)
    if not selected:
        raise EmptyExportError("No data available to export.")

    content = _workbook_bytes([("Projects", _project_rows(selected))])
    return ExportFile(f"HEC_Quick_Export_{now:%B}_{now:%Y}.xlsx", content, FORMATS["xlsx"], len(selected))
