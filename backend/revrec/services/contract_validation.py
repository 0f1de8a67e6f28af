"""Sanity checks on extracted contract data. Problems are reported, never raised."""
from datetime import date
from decimal import Decimal

from revrec.config import Settings, get_settings
from revrec.schemas.contract import ExtractedContractData, ValidationResult


def validate_extracted_data(
    data: ExtractedContractData,
    today: date,
    settings: Settings | None = None,
) -> ValidationResult:
    """Errors block the 'completed' status; warnings only flag the contract for review."""
    settings = settings or get_settings()
    errors: list[str] = []
    warnings: list[str] = []

    value = data.contract_value
    if value is not None and (
        value <= Decimal(str(settings.contract_value_min))
        or value > Decimal(str(settings.contract_value_max))
    ):
        warnings.append("Contract value seems unusually high or low")

    if data.start_date and data.end_date:
        if data.start_date >= data.end_date:
            errors.append("Start date must be before end date")
        if data.end_date < today:
            warnings.append("End date is in the past")

    if data.milestones:
        total_milestone_value = Decimal(0)
        for i, milestone in enumerate(data.milestones, start=1):
            if not milestone.name.strip():
                errors.append(f"Milestone {i} is missing a name")
            if milestone.amount <= 0:
                errors.append(f"Milestone {i} has invalid amount")
            total_milestone_value += milestone.amount
        if value:
            tolerance = value * Decimal(str(settings.milestone_divergence_pct)) / Decimal(100)
            if abs(total_milestone_value - value) > tolerance:
                warnings.append("Total milestone value differs significantly from contract value")

    if data.confidence < settings.confidence_warning_threshold:
        warnings.append("Low confidence in extracted data - manual review recommended")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
