"""Contract upload and editing API routes."""
import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from revrec.database import get_db
from revrec.deps import get_field_extractor, get_ocr_client, get_today
from revrec.models.contract import Contract, ContractStatus, ExtractionMethod, Milestone
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
from revrec.services.ai_extractor import AIExtractionError, AIExtractionErrorKind, ContractFieldExtractor
from revrec.services.contract_validation import validate_extracted_data
from revrec.services.document_extractor import DocumentExtractionError, extract_text_from_file
from revrec.services.ocr import AzureReadClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts", tags=["contracts"])


def _enum_value(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


def contract_to_response(contract: Contract) -> ContractResponse:
    return ContractResponse(
        id=contract.id,
        filename=contract.filename,
        status=_enum_value(contract.status),
        extraction_method=_enum_value(contract.extraction_method),
        contract_value=contract.contract_value,
        start_date=contract.start_date,
        end_date=contract.end_date,
        work_start_date=contract.work_start_date,
        work_end_date=contract.work_end_date,
        billing_start_date=contract.billing_start_date,
        billing_end_date=contract.billing_end_date,
        client_name=contract.client_name,
        description=contract.description,
        payment_terms=contract.payment_terms,
        deliverables=list(contract.deliverables or []),
        confidence=float(contract.confidence) if contract.confidence is not None else None,
        reasoning=contract.reasoning,
        milestones=[
            MilestoneResponse(id=m.id, name=m.name, amount=m.value, due_date=m.due_date, completed=m.completed)
            for m in contract.milestones
        ],
        created_at=contract.created_at.isoformat() if contract.created_at else "",
    )


def _contract_to_extracted(contract: Contract) -> ExtractedContractData:
    """Current stored terms in the shape the validator checks."""
    return ExtractedContractData(
        contract_value=contract.contract_value,
        start_date=contract.start_date,
        end_date=contract.end_date,
        work_start_date=contract.work_start_date,
        work_end_date=contract.work_end_date,
        billing_start_date=contract.billing_start_date,
        billing_end_date=contract.billing_end_date,
        client_name=contract.client_name,
        description=contract.description,
        milestones=[MilestoneData(name=m.name, amount=m.value, due_date=m.due_date) for m in contract.milestones],
        payment_terms=contract.payment_terms,
        deliverables=list(contract.deliverables or []),
        confidence=float(contract.confidence or 0),
        reasoning=contract.reasoning or "No reasoning provided",
    )


def _milestone_rows(milestones: list[MilestoneData]) -> list[Milestone]:
    return [
        Milestone(name=m.name, value=m.amount, due_date=m.due_date, sort_order=i)
        for i, m in enumerate(milestones)
    ]


def _status_for(validation: ValidationResult) -> ContractStatus:
    return ContractStatus.COMPLETED if validation.is_valid else ContractStatus.NEEDS_REVIEW


async def get_contract_or_404(db: AsyncSession, contract_id: int) -> Contract:
    result = await db.execute(
        select(Contract)
        .where(Contract.id == contract_id)
        .options(selectinload(Contract.milestones))
        .execution_options(populate_existing=True)
    )
    contract = result.scalar_one_or_none()
    if not contract:
        raise HTTPException(status_code=404, detail="Contract not found")
    return contract


@router.post("/upload", response_model=ContractUploadResponse)
async def upload_contract(
    db: Annotated[AsyncSession, Depends(get_db)],
    today: Annotated[date, Depends(get_today)],
    ocr_client: Annotated[AzureReadClient | None, Depends(get_ocr_client)],
    extractor: Annotated[ContractFieldExtractor | None, Depends(get_field_extractor)],
    file: Annotated[UploadFile | None, File()] = None,
    extracted_text: Annotated[str | None, Form()] = None,
    file_name: Annotated[str | None, Form()] = None,
):
    """Upload a contract (PDF, DOCX, TXT) or pre-extracted text and extract its commercial terms."""
    if file is None and not (extracted_text and extracted_text.strip()):
        raise HTTPException(status_code=400, detail="No file or text provided")
    filename = file_name or (file.filename if file else None) or "unknown.pdf"

    if extracted_text and extracted_text.strip():
        text = extracted_text
        method = ExtractionMethod.PROVIDED
        logger.info("Using provided text for %s (%d characters)", filename, len(text))
    else:
        content = await file.read()
        try:
            result = await run_in_threadpool(extract_text_from_file, content, filename, ocr_client)
        except DocumentExtractionError as e:
            logger.warning("Text extraction failed for %s: %s", filename, e)
            raise HTTPException(
                status_code=400,
                detail={"error": "Failed to extract text from file", "details": str(e), "kind": e.kind.value},
            )
        text = result.text
        method = ExtractionMethod(result.method)

    if extractor is None:
        raise HTTPException(
            status_code=503,
            detail="OpenAI API key not configured. Please add OPENAI_API_KEY to environment variables.",
        )
    try:
        data = await extractor.extract(text)
    except AIExtractionError as e:
        logger.error("AI extraction failed for %s (%s): %s", filename, e.kind.value, e)
        status_code = 503 if e.kind == AIExtractionErrorKind.NOT_CONFIGURED else 502
        raise HTTPException(
            status_code=status_code,
            detail={"error": "AI extraction failed", "details": str(e), "kind": e.kind.value},
        )

    validation = validate_extracted_data(data, today)
    contract = Contract(
        filename=filename[:255],
        original_text=text,
        status=_status_for(validation),
        extraction_method=method,
        contract_value=data.contract_value,
        start_date=data.start_date,
        end_date=data.end_date,
        work_start_date=data.work_start_date,
        work_end_date=data.work_end_date,
        billing_start_date=data.billing_start_date,
        billing_end_date=data.billing_end_date,
        client_name=data.client_name,
        description=data.description,
        payment_terms=data.payment_terms,
        deliverables=data.deliverables,
        confidence=data.confidence,
        reasoning=data.reasoning,
        milestones=_milestone_rows(data.milestones),
    )
    db.add(contract)
    await db.flush()
    contract = await get_contract_or_404(db, contract.id)
    logger.info(
        "Stored contract %d (%s, %d milestones, confidence %.2f)",
        contract.id,
        _enum_value(contract.status),
        len(contract.milestones),
        data.confidence,
    )
    return ContractUploadResponse(
        contract=contract_to_response(contract),
        ai_extracted_data=data,
        validation=validation,
        text_length=len(text),
    )


@router.get("", response_model=ContractListResponse)
async def list_contracts(
    db: Annotated[AsyncSession, Depends(get_db)],
    search: str | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
):
    q = select(Contract).options(selectinload(Contract.milestones)).order_by(Contract.id.desc())
    if search:
        q = q.where(Contract.filename.ilike(f"%{search}%") | Contract.client_name.ilike(f"%{search}%"))
    result = await db.execute(q.offset(skip).limit(limit))
    items = [
        ContractListItem(
            id=c.id,
            filename=c.filename,
            client_name=c.client_name,
            status=_enum_value(c.status),
            contract_value=c.contract_value,
            start_date=c.start_date,
            end_date=c.end_date,
            milestone_count=len(c.milestones),
            created_at=c.created_at.isoformat() if c.created_at else "",
        )
        for c in result.scalars().all()
    ]
    return ContractListResponse(items=items, total=len(items))


@router.get("/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    contract = await get_contract_or_404(db, contract_id)
    return contract_to_response(contract)


@router.patch("/{contract_id}", response_model=ContractUpdateResponse)
async def update_contract(
    contract_id: int,
    data: ContractUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    today: Annotated[date, Depends(get_today)],
):
    """Apply editor changes, re-validate and update the review status."""
    contract = await get_contract_or_404(db, contract_id)
    changes = data.model_dump(exclude_unset=True, exclude={"milestones"})
    for field, value in changes.items():
        setattr(contract, field, value)
    if data.milestones is not None:
        contract.milestones = _milestone_rows(data.milestones)

    validation = validate_extracted_data(_contract_to_extracted(contract), today)
    contract.status = _status_for(validation)
    await db.flush()
    contract = await get_contract_or_404(db, contract_id)
    return ContractUpdateResponse(contract=contract_to_response(contract), validation=validation)


@router.delete("/{contract_id}", status_code=204)
async def delete_contract(
    contract_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    contract = await get_contract_or_404(db, contract_id)
    await db.delete(contract)
