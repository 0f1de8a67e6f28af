"""Revenue allocation engine - deterministic, Decimal only, no I/O and no clock reads."""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from enum import Enum as PyEnum
from typing import Callable, Iterable, Sequence

from dateutil.relativedelta import relativedelta


class AllocationType(str, PyEnum):
    STRAIGHT_LINE = "straight-line"
    MILESTONE_BASED = "milestone-based"
    PERCENTAGE_COMPLETE = "percentage-complete"
    BILLED_BASIS = "billed-basis"


class AllocationKind(str, PyEnum):
    MILESTONE = "milestone"
    MONTHLY = "monthly"
    PERCENTAGE = "percentage"
    BILLED = "billed"


class BilledLabelStyle(str, PyEnum):
    SEQUENCE = "sequence"
    ACHIEVEMENT = "achievement"


@dataclass(frozen=True)
class MilestoneInput:
    name: str
    amount: Decimal
    due_date: date


@dataclass(frozen=True)
class RevenueCalculationParams:
    """Input to the engine. Dates are calendar dates; milestones keep caller order."""

    total_value: Decimal
    start_date: date
    end_date: date
    allocation_type: AllocationType = AllocationType.STRAIGHT_LINE
    milestones: tuple[MilestoneInput, ...] = ()
    billed_label_style: BilledLabelStyle = BilledLabelStyle.SEQUENCE


@dataclass(frozen=True)
class RevenueAllocation:
    amount: Decimal
    recognition_date: date
    type: AllocationKind
    description: str


@dataclass(frozen=True)
class ForwardBookSummary:
    total_contracted: Decimal
    earned_to_date: Decimal
    unearned: Decimal
    forward_book: Decimal


CompletionCurve = Callable[[int, int], Decimal]

CENT = Decimal("0.01")


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def linear_completion(buckets_done: int, bucket_count: int) -> Decimal:
    """Cumulative completion fraction after `buckets_done` of `bucket_count` months."""
    return Decimal(buckets_done) / Decimal(bucket_count)


# Calendar helpers


def month_end(value: date) -> date:
    """Last calendar day of the month containing `value`."""
    return value + relativedelta(day=31)


def next_month_end(value: date) -> date:
    """Step one calendar month forward and re-anchor to month end (Jan 31 -> Feb 28/29)."""
    return month_end(value + relativedelta(months=1))


def months_between(start: date, end: date) -> int:
    """Inclusive calendar months from start to end, never less than 1.

    Aug 1 to Dec 31 is Aug, Sep, Oct, Nov, Dec = 5. Same-month and inverted
    ranges clamp to a single bucket.
    """
    months = (end.year - start.year) * 12 + (end.month - start.month) + 1
    return max(1, months)


def _month_ends(start: date, count: int) -> list[date]:
    dates = []
    current = month_end(start)
    for _ in range(count):
        dates.append(current)
        current = next_month_end(current)
    return dates


# Allocators


def calculate_straight_line_revenue(
    total_value: Decimal,
    start_date: date,
    end_date: date,
) -> list[RevenueAllocation]:
    """Monthly amount = Total / Months, truncated to cents; the last month takes the non-negative remainder."""
    total_months = months_between(start_date, end_date)
    monthly_amount = (total_value / Decimal(total_months)).quantize(CENT, rounding=ROUND_DOWN)
    allocations = []
    for i, recognition_date in enumerate(_month_ends(start_date, total_months)):
        amount = monthly_amount
        if i == total_months - 1:
            amount = total_value - monthly_amount * (total_months - 1)
        allocations.append(
            RevenueAllocation(
                amount=amount,
                recognition_date=recognition_date,
                type=AllocationKind.MONTHLY,
                description=f"Month {i + 1} of {total_months} — Straight-line allocation",
            )
        )
    return allocations


def calculate_percentage_complete_revenue(
    total_value: Decimal,
    start_date: date,
    end_date: date,
    completion: CompletionCurve = linear_completion,
) -> list[RevenueAllocation]:
    """Month i amount = Total × completion(i+1) - Total × completion(i)."""
    total_months = months_between(start_date, end_date)
    allocations = []
    for i, recognition_date in enumerate(_month_ends(start_date, total_months)):
        fraction = completion(i + 1, total_months)
        cumulative_revenue = _round(total_value * fraction)
        previous_revenue = _round(total_value * completion(i, total_months)) if i else Decimal(0)
        percentage = (fraction * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        allocations.append(
            RevenueAllocation(
                amount=cumulative_revenue - previous_revenue,
                recognition_date=recognition_date,
                type=AllocationKind.PERCENTAGE,
                description=f"{percentage}% complete",
            )
        )
    return allocations


def _sequence_label(index: int, milestone: MilestoneInput) -> str:
    return f"Billed amount {index + 1}: {milestone.name}"


def _achievement_label(index: int, milestone: MilestoneInput) -> str:
    return f"Billed on achievement: {milestone.name}"


def _milestone_label(index: int, milestone: MilestoneInput) -> str:
    return f"Milestone: {milestone.name}"


_BILLED_LABELS: dict[BilledLabelStyle, Callable[[int, MilestoneInput], str]] = {
    BilledLabelStyle.SEQUENCE: _sequence_label,
    BilledLabelStyle.ACHIEVEMENT: _achievement_label,
}


def _allocate_on_due_dates(
    milestones: Iterable[MilestoneInput],
    kind: AllocationKind,
    label: Callable[[int, MilestoneInput], str],
) -> list[RevenueAllocation]:
    """One entry per milestone, in caller order, amount and date copied verbatim."""
    return [
        RevenueAllocation(
            amount=m.amount,
            recognition_date=m.due_date,
            type=kind,
            description=label(i, m),
        )
        for i, m in enumerate(milestones)
    ]


def calculate_milestone_revenue(milestones: Iterable[MilestoneInput]) -> list[RevenueAllocation]:
    return _allocate_on_due_dates(milestones, AllocationKind.MILESTONE, _milestone_label)


def calculate_billed_basis_revenue(
    milestones: Iterable[MilestoneInput],
    label_style: BilledLabelStyle = BilledLabelStyle.SEQUENCE,
) -> list[RevenueAllocation]:
    return _allocate_on_due_dates(milestones, AllocationKind.BILLED, _BILLED_LABELS[label_style])


_STRATEGIES: dict[AllocationType, Callable[[RevenueCalculationParams], list[RevenueAllocation]]] = {
    AllocationType.STRAIGHT_LINE: lambda p: calculate_straight_line_revenue(
        p.total_value, p.start_date, p.end_date
    ),
    AllocationType.MILESTONE_BASED: lambda p: calculate_milestone_revenue(p.milestones),
    AllocationType.PERCENTAGE_COMPLETE: lambda p: calculate_percentage_complete_revenue(
        p.total_value, p.start_date, p.end_date
    ),
    AllocationType.BILLED_BASIS: lambda p: calculate_billed_basis_revenue(
        p.milestones, p.billed_label_style
    ),
}


def calculate_revenue_allocations(params: RevenueCalculationParams) -> list[RevenueAllocation]:
    """Build a fresh, ordered revenue schedule for the selected allocation type."""
    strategy = _STRATEGIES[AllocationType(params.allocation_type)]
    return strategy(params)


def calculate_forward_book_revenue(
    allocations: Sequence[RevenueAllocation],
    actual_revenue: Decimal,
    as_of: date,
) -> ForwardBookSummary:
    """
    Forward book as of a given day.

    Earned = Σ amounts recognized on or before `as_of` (schedule driven).
    Unearned = max(0, Contracted - actual revenue) (driven by the booked figure).
    Forward Book = max(0, Contracted - Earned).
    """
    total_contracted = sum((a.amount for a in allocations), Decimal(0))
    earned_to_date = sum(
        (a.amount for a in allocations if a.recognition_date <= as_of),
        Decimal(0),
    )
    return ForwardBookSummary(
        total_contracted=total_contracted,
        earned_to_date=earned_to_date,
        unearned=max(Decimal(0), total_contracted - actual_revenue),
        forward_book=max(Decimal(0), total_contracted - earned_to_date),
    )
