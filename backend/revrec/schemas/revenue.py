"""Revenue schedule schemas."""
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from revrec.config import get_settings
from revrec.engine.revenue import (
    AllocationType,
    BilledLabelStyle,
    ForwardBookSummary,
    MilestoneInput,
    RevenueAllocation,
    RevenueCalculationParams,
    months_between,
)


class MilestoneInputSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., ge=0)
    due_date: date


class RevenueCalculationRequest(BaseModel):
    total_value: Decimal = Field(..., ge=0)
    start_date: date
    end_date: date
    allocation_type: AllocationType = AllocationType.STRAIGHT_LINE
    milestones: list[MilestoneInputSchema] = []
    billed_label_style: BilledLabelStyle = BilledLabelStyle.SEQUENCE
    actual_revenue: Decimal = Field(Decimal(0), ge=0)

    @model_validator(mode="after")
    def check_date_range(self) -> "RevenueCalculationRequest":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        limit = get_settings().max_schedule_months
        if months_between(self.start_date, self.end_date) > limit:
            raise ValueError(f"Date range exceeds {limit} months")
        return self

    def to_params(self) -> RevenueCalculationParams:
        return RevenueCalculationParams(
            total_value=self.total_value,
            start_date=self.start_date,
            end_date=self.end_date,
            allocation_type=self.allocation_type,
            milestones=tuple(
                MilestoneInput(name=m.name, amount=m.amount, due_date=m.due_date)
                for m in self.milestones
            ),
            billed_label_style=self.billed_label_style,
        )


class RevenueAllocationResponse(BaseModel):
    amount: Decimal
    recognition_date: date
    type: str
    description: str

    @classmethod
    def from_allocation(cls, allocation: RevenueAllocation) -> "RevenueAllocationResponse":
        return cls(
            amount=allocation.amount,
            recognition_date=allocation.recognition_date,
            type=allocation.type.value,
            description=allocation.description,
        )


class ForwardBookResponse(BaseModel):
    total_contracted: Decimal
    earned_to_date: Decimal
    unearned: Decimal
    forward_book: Decimal

    @classmethod
    def from_summary(cls, summary: ForwardBookSummary) -> "ForwardBookResponse":
        return cls(
            total_contracted=summary.total_contracted,
            earned_to_date=summary.earned_to_date,
            unearned=summary.unearned,
            forward_book=summary.forward_book,
        )


class RevenueScheduleResponse(BaseModel):
    allocation_type: str
    start_date: date | None
    end_date: date | None
    as_of: date
    allocations: list[RevenueAllocationResponse]
    forward_book: ForwardBookResponse
