"""Contract extraction and storage schemas."""
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class MilestoneData(BaseModel):
    """Milestone as extracted by the AI or edited by the user."""
    name: str = Field(default="", max_length=500)
    amount: Decimal
    due_date: date | None = None


class ExtractedContractData(BaseModel):
    contract_value: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None
    work_start_date: date | None = None
    work_end_date: date | None = None
    billing_start_date: date | None = None
    billing_end_date: date | None = None
    client_name: str | None = None
    description: str | None = None
    milestones: list[MilestoneData] = []
    payment_terms: str | None = None
    deliverables: list[str] = []
    confidence: float = Field(default=0.0, ge=0, le=1)
    reasoning: str = "No reasoning provided"


class ValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = []
    warnings: list[str] = []


class MilestoneResponse(BaseModel):
    id: int
    name: str
    amount: Decimal
    due_date: date | None
    completed: bool

    class Config:
        from_attributes = True


class ContractResponse(BaseModel):
    id: int
    filename: str
    status: str
    extraction_method: str
    contract_value: Decimal | None
    start_date: date | None
    end_date: date | None
    work_start_date: date | None
    work_end_date: date | None
    billing_start_date: date | None
    billing_end_date: date | None
    client_name: str | None
    description: str | None
    payment_terms: str | None
    deliverables: list[str] = []
    confidence: float | None
    reasoning: str | None
    milestones: list[MilestoneResponse] = []
    created_at: str

    class Config:
        from_attributes = True


class ContractUploadResponse(BaseModel):
    success: bool = True
    contract: ContractResponse
    ai_extracted_data: ExtractedContractData
    validation: ValidationResult
    text_length: int


class ContractListItem(BaseModel):
    id: int
    filename: str
    client_name: str | None
    status: str
    contract_value: Decimal | None
    start_date: date | None
    end_date: date | None
    milestone_count: int
    created_at: str


class ContractListResponse(BaseModel):
    items: list[ContractListItem]
    total: int


class ContractUpdate(BaseModel):
    """Editor changes; a provided milestones list replaces the stored set."""
    contract_value: Decimal | None = Field(None, ge=0)
    start_date: date | None = None
    end_date: date | None = None
    work_start_date: date | None = None
    work_end_date: date | None = None
    billing_start_date: date | None = None
    billing_end_date: date | None = None
    client_name: str | None = Field(None, max_length=255)
    description: str | None = None
    payment_terms: str | None = None
    deliverables: list[str] | None = None
    milestones: list[MilestoneData] | None = None


class ContractUpdateResponse(BaseModel):
    contract: ContractResponse
    validation: ValidationResult
