"""Contract and milestone models."""
from datetime import date
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from revrec.database import Base


class ContractStatus(str, PyEnum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    NEEDS_REVIEW = "needs_review"


class ExtractionMethod(str, PyEnum):
    NATIVE = "native"
    OCR = "ocr"
    PROVIDED = "provided"


class Contract(Base):
    """Uploaded contract with AI-extracted commercial terms."""

    __tablename__ = "contracts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    original_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(ContractStatus),
        nullable=False,
        default=ContractStatus.PROCESSING,
    )
    extraction_method: Mapped[str] = mapped_column(
        Enum(ExtractionMethod),
        nullable=False,
        default=ExtractionMethod.NATIVE,
    )
    contract_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # Work period drives straight-line / percentage-complete; billing period drives billed-basis
    work_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    work_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    billing_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    billing_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    client_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(Text, nullable=True)
    deliverables: Mapped[list[Any] | None] = mapped_column(JSON, nullable=True)
    confidence: Mapped[Decimal | None] = mapped_column(Numeric(4, 3), nullable=True)
    reasoning: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    milestones: Mapped[list["Milestone"]] = relationship(
        "Milestone",
        back_populates="contract",
        order_by="Milestone.sort_order",
        cascade="all, delete-orphan",
    )


class Milestone(Base):
    """Named, dated, amount-bearing contract event. sort_order keeps extraction order."""

    __tablename__ = "milestones"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    contract_id: Mapped[int] = mapped_column(
        ForeignKey("contracts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    contract: Mapped["Contract"] = relationship("Contract", back_populates="milestones")
