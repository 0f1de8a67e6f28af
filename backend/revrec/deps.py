"""Injectable collaborators for FastAPI routes. Tests override these via app.dependency_overrides."""
from datetime import date
from typing import Annotated

from fastapi import Depends

from revrec.config import Settings, get_settings
from revrec.services.ai_extractor import ContractFieldExtractor, build_field_extractor
from revrec.services.ocr import AzureReadClient, build_ocr_client


def get_today() -> date:
    """The only wall-clock read in the request path."""
    return date.today()


def get_ocr_client(settings: Annotated[Settings, Depends(get_settings)]) -> AzureReadClient | None:
    return build_ocr_client(settings)


def get_field_extractor(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ContractFieldExtractor | None:
    return build_field_extractor(settings)
