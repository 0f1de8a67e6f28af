"""Pydantic schemas."""
from revrec.schemas.contract import (
    ContractListItem,
    ContractListResponse,
    ContractResponse,
    ContractUpdate,
    ContractUpdateResponse,
    ContractUploadResponse,
    ExtractedContractData,
    MilestoneData,
    MilestoneResponse,
    ValidationResult,
)
from revrec.schemas.revenue import (
    ForwardBookResponse,
    MilestoneInputSchema,
    RevenueAllocationResponse,
    RevenueCalculationRequest,
    RevenueScheduleResponse,
)

__all__ = [
    "ContractListItem",
    "ContractListResponse",
    "ContractResponse",
    "ContractUpdate",
    "ContractUpdateResponse",
    "ContractUploadResponse",
    "ExtractedContractData",
    "MilestoneData",
    "MilestoneResponse",
    "ValidationResult",
    "ForwardBookResponse",
    "MilestoneInputSchema",
    "RevenueAllocationResponse",
    "RevenueCalculationRequest",
    "RevenueScheduleResponse",
]
