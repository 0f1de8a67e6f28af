"""SQLAlchemy models."""
from revrec.models.contract import Contract, ContractStatus, ExtractionMethod, Milestone

__all__ = [
    "Contract",
    "ContractStatus",
    "ExtractionMethod",
    "Milestone",
]
