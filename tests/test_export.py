from __future__ import annotations

import io
from datetime import date, datetime, timezone

import pytest
from openpyxl import load_workbook

from hectrack.services.export import (
    EmptyExportError,
    ExportFilters,
    build_export,
    build_quick_export,
    format_inr,
    window_start,
)
from hectrack.services.models import LabourEntry, MaterialEntry, Project

NOW = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)


def _projects() -> list[Project]:
    return [
        Project(
            id="dl-1",
            name="Dwarka Flyover",
            state="Delhi",
            engineer="Amit",
            value=4_200_000,
            created_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
            labours=[LabourEntry(work_date=date(2026, 3, 3), count=10, daily_rate=800, work_description="Formwork")],
            materials=[MaterialEntry(name="Ready Mix", unit_cost=6400, quantity=3, supplier="Delhi RMC")],
        ),
        Project(
            id="dl-2",
            name="Rohini Hall",
            state="Delhi",
            value=380_000,
            created_at=datetime(2026, 2, 20, tzinfo=timezone.utc),
        ),
        Project(
            id="tn-1",
            name="Adyar Bridge",
            state="Tamil Nadu",
            value=1_850_000,
            created_at=datetime(2026, 3, 5, tzinfo=timezone.utc),
        ),
    ]


@pytest.mark.parametrize(
    "amount, expected",
    [(0, "₹0"), (999, "₹999"), (100000, "₹1,00,000"), (1234567, "₹12,34,567"), (-1500, "-₹1,500")],
)
def test_format_inr(amount, expected) -> None:
    assert format_inr(amount) == expected


def test_window_start() -> None:
    assert window_start("currentMonth", NOW).date() == date(2026, 3, 1)
    assert window_start("lastMonth", NOW).date() == date(2026, 2, 10)
    assert window_start("currentQuarter", NOW).date() == date(2025, 12, 10)
    assert window_start("lastMonth", datetime(2026, 3, 31)).date() == date(2026, 2, 28)
    with pytest.raises(ValueError):
        window_start("lastDecade", NOW)


def test_workbook_export_for_one_state() -> None:
    export = build_export(_projects(), ExportFilters(state="Delhi"), NOW)

    assert export.filename == "HEC_Export_currentMonth_March_2026.xlsx"
    assert export.project_count == 1

    workbook = load_workbook(io.BytesIO(export.content))
    assert workbook.sheetnames == ["Projects", "Labours", "Materials", "Summary"]
    projects = list(workbook["Projects"].iter_rows(values_only=True))
    assert projects[0][:2] == ("Project ID", "Project Name")
    assert projects[1][:2] == ("dl-1", "Dwarka Flyover")
    labours = list(workbook["Labours"].iter_rows(values_only=True))
    assert labours[1][6] == 8000
    summary = dict(zip(*workbook["Summary"].iter_rows(values_only=True)))
    assert summary["Total Projects"] == 1
    assert summary["Total Project Value"] == "₹42,00,000"
    assert summary["Total Material Entries"] == 1


def test_optional_sheets_are_left_out() -> None:
    filters = ExportFilters(date_range="lastMonth", include_labours=False)

    export = build_export(_projects(), filters, NOW)

    workbook = load_workbook(io.BytesIO(export.content))
    assert workbook.sheetnames == ["Projects", "Materials", "Summary"]
    assert export.project_count == 3


def test_csv_export_has_one_section_per_table() -> None:
    export = build_export(_projects(), ExportFilters(date_range="currentQuarter", format="csv"), NOW)

    text = export.content.decode("utf-8-sig")
    assert export.filename.endswith(".csv")
    assert export.media_type == "text/csv"
    assert text.startswith("# Projects")
    assert "# Labours" in text
    assert "# Summary" in text
    assert "Rohini Hall" in text


def test_empty_selection_and_bad_format() -> None:
    with pytest.raises(EmptyExportError, match="No data available to export"):
        build_export(_projects(), ExportFilters(state="Uttar Pradesh"), NOW)
    with pytest.raises(ValueError) as excinfo:
        build_export(_projects(), ExportFilters(format="pdf"), NOW)
    assert not isinstance(excinfo.value, EmptyExportError)
    with pytest.raises(EmptyExportError):
        build_quick_export([], NOW)


def test_quick_export_includes_every_project() -> None:
    export = build_quick_export(_projects(), NOW)

    assert export.filename == "HEC_Quick_Export_March_2026.xlsx"
    workbook = load_workbook(io.BytesIO(export.content))
    assert workbook.sheetnames == ["Projects"]
    assert workbook["Projects"].max_row == 4
