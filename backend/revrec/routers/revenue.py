"""Revenue schedule, forward book and export API routes."""
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from revrec.config import Settings, get_settings
from revrec.database import get_db
from revrec.deps import get_today
from revrec.engine.revenue import (
    AllocationType,
    BilledLabelStyle,
    MilestoneInput,
    RevenueAllocation,
    RevenueCalculationParams,
    calculate_forward_book_revenue,
    calculate_revenue_allocations,
    months_between,
)
from revrec.models.contract import Contract
from revrec.routers.contracts import contract_to_response, get_contract_or_404
from revrec.schemas.revenue import (
    ForwardBookResponse,
    RevenueAllocationResponse,
    RevenueCalculationRequest,
    RevenueScheduleResponse,
)
from revrec.services.exporter import export_to_csv, export_to_xlsx

logger = logging.getLogger(__name__)

router = APIRouter(tags=["revenue"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ScheduleInputError(ValueError):
    """A stored contract lacks what the requested allocation type needs."""


def _schedule_dates(contract: Contract, allocation_type: AllocationType) -> tuple[date | None, date | None]:
    """Work dates drive service-period methods, billing dates drive billed-basis; both fall back to the term."""
    if allocation_type in (AllocationType.STRAIGHT_LINE, AllocationType.PERCENTAGE_COMPLETE):
        return contract.work_start_date or contract.start_date, contract.work_end_date or contract.end_date
    if allocation_type == AllocationType.BILLED_BASIS:
        return contract.billing_start_date or contract.start_date, contract.billing_end_date or contract.end_date
    return contract.start_date, contract.end_date


def contract_schedule_params(
    contract: Contract,
    allocation_type: AllocationType,
    billed_label_style: BilledLabelStyle,
    settings: Settings,
) -> RevenueCalculationParams:
    start_date, end_date = _schedule_dates(contract, allocation_type)
    if contract.contract_value is None or start_date is None or end_date is None:
        raise ScheduleInputError("Contract value, start date and end date are required to calculate revenue")
    if start_date > end_date:
        raise ScheduleInputError("Start date must be on or before end date")
    if months_between(start_date, end_date) > settings.max_schedule_months:
        raise ScheduleInputError(f"Date range exceeds {settings.max_schedule_months} months")

    milestones = []
    if allocation_type in (AllocationType.MILESTONE_BASED, AllocationType.BILLED_BASIS):
        for m in contract.milestones:
            if m.due_date is None:
                raise ScheduleInputError(f"Milestone '{m.name}' has no due date")
            milestones.append(MilestoneInput(name=m.name, amount=Decimal(m.value), due_date=m.due_date))

    return RevenueCalculationParams(
        total_value=Decimal(contract.contract_value),
        start_date=start_date,
        end_date=end_date,
        allocation_type=allocation_type,
        milestones=tuple(milestones),
        billed_label_style=billed_label_style,
    )


def _schedule_response(
    params: RevenueCalculationParams,
    allocations: list[RevenueAllocation],
    actual_revenue: Decimal,
    as_of: date,
) -> RevenueScheduleResponse:
    summary = calculate_forward_book_revenue(allocations, actual_revenue, as_of)
    return RevenueScheduleResponse(
        allocation_type=AllocationType(params.allocation_type).value,
        start_date=params.start_date,
        end_date=params.end_date,
        as_of=as_of,
        allocations=[RevenueAllocationResponse.from_allocation(a) for a in allocations],
        forward_book=ForwardBookResponse.from_summary(summary),
    )


@router.post("/revenue/calculate", response_model=RevenueScheduleResponse)
async def calculate_revenue(
    data: RevenueCalculationRequest,
    today: Annotated[date, Depends(get_today)],
):
    """Compute a revenue schedule and forward book for ad-hoc terms. Nothing is persisted."""
    params = data.to_params()
    allocations = calculate_revenue_allocations(params)
    return _schedule_response(params, allocations, data.actual_revenue, today)


@router.get("/contracts/{contract_id}/revenue", response_model=RevenueScheduleResponse)
async def get_contract_revenue(
    contract_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    today: Annotated[date, Depends(get_today)],
    settings: Annotated[Settings, Depends(get_settings)],
    allocation_type: AllocationType = Query(AllocationType.STRAIGHT_LINE),
    actual_revenue: Decimal = Query(Decimal(0), ge=0),
    billed_label_style: BilledLabelStyle = Query(BilledLabelStyle.SEQUENCE),
):
    contract = await get_contract_or_404(db, contract_id)
    try:
        params = contract_schedule_params(contract, allocation_type, billed_label_style, settings)
    except ScheduleInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    allocations = calculate_revenue_allocations(params)
    logger.info(
        "Contract %d: %d %s allocations as of %s",
        contract_id,
        len(allocations),
        allocation_type.value,
        today,
    )
    return _schedule_response(params, allocations, actual_revenue, today)


@router.get("/contracts/{contract_id}/export")
async def export_contract(
    contract_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    format: Literal["csv", "xlsx"] = Query("csv"),
    allocation_type: AllocationType = Query(AllocationType.STRAIGHT_LINE),
    billed_label_style: BilledLabelStyle = Query(BilledLabelStyle.SEQUENCE),
):
    """Download the contract and its schedule; contracts that cannot be scheduled export without one."""
    contract = await get_contract_or_404(db, contract_id)
    try:
        params = contract_schedule_params(contract, allocation_type, billed_label_style, settings)
        allocations = calculate_revenue_allocations(params)
    except ScheduleInputError as e:
        logger.info("Exporting contract %d without a schedule: %s", contract_id, e)
        allocations = []

    response_data = contract_to_response(contract)
    if format == "xlsx":
        return Response(
            content=export_to_xlsx(response_data, allocations),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="contract-analysis-{contract_id}.xlsx"'},
        )
    return Response(
        content=export_to_csv(response_data, allocations, datetime.now(timezone.utc)),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="contract-analysis-{contract_id}.csv"'},
    )
