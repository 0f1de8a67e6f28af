"""CSV and Excel exports of a contract and its revenue schedule."""
import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Sequence

from openpyxl import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from revrec.engine.revenue import RevenueAllocation
from revrec.schemas.contract import ContractResponse

CURRENCY_FORMAT = "$#,##0.00"
SHEET_HEADERS_PREFIX = ["File Name", "Client Name", "Contract Value", "Contract Description"]
REVENUE_HEADERS = SHEET_HEADERS_PREFIX + ["Revenue Description", "Amount", "Recognition Date"]
BILLING_HEADERS = SHEET_HEADERS_PREFIX + ["Milestone Name", "Amount", "Due Date"]
REVENUE_WIDTHS = [40, 25, 15, 50, 40, 15, 15]
BILLING_WIDTHS = [40, 25, 15, 50, 30, 15, 15]


def format_currency(amount: Decimal | None) -> str:
    if amount is None:
        return "0.00"
    return f"{amount:.2f}"


def format_date(value: date | None) -> str:
    return value.isoformat() if value else ""


def export_to_csv(
    contract: ContractResponse,
    allocations: Sequence[RevenueAllocation],
    generated_at: datetime,
) -> str:
    """Single-sheet report: contract info, milestones, then the schedule with a total row."""
    rows: list[list[str]] = [
        ["Contract Analysis Report"],
        ["Generated:", generated_at.isoformat()],
        [],
        ["Contract Information"],
        ["Field", "Value"],
        ["File Name", contract.filename],
        ["Client Name", contract.client_name or "Not specified"],
        ["Contract Value", format_currency(contract.contract_value)],
        ["Start Date", format_date(contract.start_date)],
        ["End Date", format_date(contract.end_date)],
        ["Description", contract.description or "Not specified"],
        [],
    ]

    if contract.milestones:
        rows.append(["Milestones"])
        rows.append(["Name", "Amount", "Due Date"])
        for m in contract.milestones:
            rows.append([m.name, format_currency(m.amount), format_date(m.due_date)])
        rows.append([])

    if allocations:
        rows.append(["Revenue Recognition Schedule"])
        rows.append(["Description", "Amount", "Recognition Date", "Type"])
        for a in allocations:
            rows.append([a.description, format_currency(a.amount), format_date(a.recognition_date), a.type.value])
        total = sum((a.amount for a in allocations), Decimal(0))
        rows.append([])
        rows.append(["Total", format_currency(total), "", ""])

    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerows(rows)
    return buffer.getvalue()


def _contract_columns(contract: ContractResponse) -> list:
    return [
        contract.filename,
        contract.client_name or "",
        float(contract.contract_value or 0),
        contract.description or "",
    ]


def _finish_sheet(ws: Worksheet, widths: list[int], currency_columns: tuple[str, ...] = ("C", "F")) -> None:
    for row in range(2, ws.max_row + 1):
        for col in currency_columns:
            cell = ws[f"{col}{row}"]
            if isinstance(cell.value, (int, float)):
                cell.number_format = CURRENCY_FORMAT
    for i, width in enumerate(widths):
        ws.column_dimensions[chr(ord("A") + i)].width = width


def export_to_xlsx(contract: ContractResponse, allocations: Sequence[RevenueAllocation]) -> bytes:
    """Workbook with a 'Revenue Schedule' sheet (when there is a schedule) and a 'Billing Schedule' sheet."""
    wb = Workbook()
    wb.remove(wb.active)

    if allocations:
        ws_revenue = wb.create_sheet("Revenue Schedule")
        ws_revenue.append(REVENUE_HEADERS)
        for a in allocations:
            ws_revenue.append(
                _contract_columns(contract)
                + [a.description, float(a.amount), format_date(a.recognition_date)]
            )
        _finish_sheet(ws_revenue, REVENUE_WIDTHS)

    ws_billing = wb.create_sheet("Billing Schedule")
    ws_billing.append(BILLING_HEADERS)
    if contract.milestones:
        for m in contract.milestones:
            ws_billing.append(
                _contract_columns(contract) + [m.name, float(m.amount), format_date(m.due_date)]
            )
    else:
        ws_billing.append(["No billing milestones found", "", "", "", "", "", ""])
    _finish_sheet(ws_billing, BILLING_WIDTHS)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
