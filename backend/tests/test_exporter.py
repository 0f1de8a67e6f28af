import csv
import io
from datetime import date, datetime, timezone
from decimal import Decimal

from openpyxl import load_workbook

from revrec.engine.revenue import calculate_straight_line_revenue
from revrec.schemas.contract import ContractResponse, MilestoneResponse
from revrec.services.exporter import export_to_csv, export_to_xlsx, format_currency


def make_contract(**overrides) -> ContractResponse:
    data = {
        "id": 7,
        "filename": "acme-msa.pdf",
        "status": "completed",
        "extraction_method": "native",
        "contract_value": Decimal("3000"),
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 3, 31),
        "work_start_date": None,
        "work_end_date": None,
        "billing_start_date": None,
        "billing_end_date": None,
        "client_name": "Acme Corp",
        "description": None,
        "payment_terms": None,
        "confidence": 0.9,
        "reasoning": None,
        "milestones": [
            MilestoneResponse(id=1, name="Kickoff", amount=Decimal("1000"), due_date=date(2025, 1, 31), completed=False),
            MilestoneResponse(id=2, name="Handover", amount=Decimal("2000"), due_date=None, completed=False),
        ],
        "created_at": "2025-01-02T10:00:00",
    }
    data.update(overrides)
    return ContractResponse(**data)


def test_format_currency():
    assert format_currency(Decimal("1234.5")) == "1234.50"
    assert format_currency(None) == "0.00"


def test_csv_report_sections_and_total():
    allocations = calculate_straight_line_revenue(Decimal("3000"), date(2025, 1, 1), date(2025, 3, 31))

    content = export_to_csv(make_contract(), allocations, datetime(2025, 6, 15, 9, 30, tzinfo=timezone.utc))
    rows = list(csv.reader(io.StringIO(content)))

    assert rows[0] == ["Contract Analysis Report"]
    assert rows[1] == ["Generated:", "2025-06-15T09:30:00+00:00"]
    assert ["Client Name", "Acme Corp"] in rows
    assert ["Description", "Not specified"] in rows
    assert ["Kickoff", "1000.00", "2025-01-31"] in rows
    assert ["Handover", "2000.00", ""] in rows
    assert ["Month 1 of 3 — Straight-line allocation", "1000.00", "2025-01-31", "monthly"] in rows
    assert rows[-1] == ["Total", "3000.00", "", ""]


def test_csv_without_schedule_omits_revenue_section():
    content = export_to_csv(make_contract(milestones=[]), [], datetime(2025, 6, 15, tzinfo=timezone.utc))

    assert "Revenue Recognition Schedule" not in content
    assert "Milestones" not in content


def test_xlsx_has_revenue_and_billing_sheets():
    allocations = calculate_straight_line_revenue(Decimal("3000"), date(2025, 1, 1), date(2025, 3, 31))

    wb = load_workbook(io.BytesIO(export_to_xlsx(make_contract(), allocations)))

    assert wb.sheetnames == ["Revenue Schedule", "Billing Schedule"]
    revenue = wb["Revenue Schedule"]
    assert revenue["A1"].value == "File Name"
    assert revenue.max_row == 4
    assert revenue["F2"].value == 1000.0
    assert revenue["F2"].number_format == "$#,##0.00"
    assert revenue["G4"].value == "2025-03-31"
    billing = wb["Billing Schedule"]
    assert [billing["E2"].value, billing["E3"].value] == ["Kickoff", "Handover"]
    assert billing.column_dimensions["E"].width == 30


def test_xlsx_without_schedule_or_milestones_has_placeholder():
    wb = load_workbook(io.BytesIO(export_to_xlsx(make_contract(milestones=[]), [])))

    assert wb.sheetnames == ["Billing Schedule"]
    assert wb["Billing Schedule"]["A2"].value == "No billing milestones found"
