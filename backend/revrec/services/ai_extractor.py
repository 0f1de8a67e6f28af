"""AI contract field extraction service."""
import json
import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum as PyEnum
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from revrec.config import Settings
from revrec.schemas.contract import ExtractedContractData, MilestoneData

logger = logging.getLogger(__name__)


EXTRACTION_PROMPT = """You are a contract analysis AI that extracts key commercial terms from consulting and professional services contracts.

Analyze the following contract text and extract structured data. Be precise and conservative - only extract information you're confident about.

Extract these specific fields:
- Contract Value: Total monetary value (number only, no currency symbols)
- Start Date / End Date: Overall contract term (ISO format YYYY-MM-DD)
- Work Start Date / Work End Date: Period in which services are performed, if stated separately
- Billing Start Date / Billing End Date: Period in which invoices are issued, if stated separately
- Client Name: The client/customer organization name
- Description: Brief project description (1-2 sentences)
- Milestones: List of project milestones or payments with amounts and dates
- Payment Terms: Payment schedule/terms summary
- Deliverables: List of key deliverables/outputs
- Confidence: Your overall confidence in the extraction (0-1)
- Reasoning: Brief reasoning for your extraction

Return ONLY a valid JSON object with this exact structure:
{
  "contractValue": number | null,
  "startDate": "YYYY-MM-DD" | null,
  "endDate": "YYYY-MM-DD" | null,
  "workStartDate": "YYYY-MM-DD" | null,
  "workEndDate": "YYYY-MM-DD" | null,
  "billingStartDate": "YYYY-MM-DD" | null,
  "billingEndDate": "YYYY-MM-DD" | null,
  "clientName": string | null,
  "description": string | null,
  "milestones": [
    {
      "name": string,
      "amount": number,
      "dueDate": "YYYY-MM-DD"
    }
  ],
  "paymentTerms": string | null,
  "deliverables": [string],
  "confidence": number,
  "reasoning": string
}

Contract text to analyze:"""


class AIExtractionErrorKind(str, PyEnum):
    NOT_CONFIGURED = "not_configured"
    EMPTY_RESPONSE = "empty_response"
    INVALID_JSON = "invalid_json"
    API_ERROR = "api_error"


class AIExtractionError(RuntimeError):
    """Field extraction failed; `kind` says why."""

    def __init__(self, kind: AIExtractionErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


def _field(data: dict[str, Any], camel: str, snake: str) -> Any:
    return data.get(camel, data.get(snake))


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    raw = str(value).strip().replace("$", "").replace(",", "")
    if not raw:
        return None
    try:
        result = Decimal(raw)
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def _to_date(value: Any) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def _to_text(value: Any, limit: int | None = None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text[:limit] if limit else text


def _to_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    return min(1.0, max(0.0, confidence))


def _load_json_object(content: str) -> dict[str, Any]:
    content = re.sub(r"^```\w*\n?", "", content.strip())
    content = re.sub(r"\n?```$", "", content)
    try:
        data = json.loads(content.strip())
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", content)
        if not match:
            raise AIExtractionError(AIExtractionErrorKind.INVALID_JSON, "Could not parse AI response as JSON")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise AIExtractionError(
                AIExtractionErrorKind.INVALID_JSON,
                f"Could not parse AI response as JSON: {exc}",
            ) from exc
    if not isinstance(data, dict):
        raise AIExtractionError(AIExtractionErrorKind.INVALID_JSON, "AI response is not a valid object")
    return data


def parse_extraction_response(content: str) -> ExtractedContractData:
    """Turn the model's JSON reply into ExtractedContractData, defaulting missing fields."""
    data = _load_json_object(content)

    milestones = []
    raw_milestones = data.get("milestones")
    for i, m in enumerate(raw_milestones if isinstance(raw_milestones, list) else []):
        if not isinstance(m, dict):
            continue
        amount = _to_decimal(m.get("amount", m.get("value")))
        if amount is None:
            logger.warning("Dropping milestone %d without a usable amount: %r", i + 1, m)
            continue
        milestones.append(
            MilestoneData(
                name=_to_text(m.get("name"), 500) or "",
                amount=amount,
                due_date=_to_date(_field(m, "dueDate", "due_date")),
            )
        )

    raw_deliverables = data.get("deliverables")
    deliverables = [
        str(d).strip() for d in (raw_deliverables if isinstance(raw_deliverables, list) else []) if str(d).strip()
    ]

    contract_value = _to_decimal(_field(data, "contractValue", "contract_value"))
    return ExtractedContractData(
        contract_value=contract_value if contract_value else None,
        start_date=_to_date(_field(data, "startDate", "start_date")),
        end_date=_to_date(_field(data, "endDate", "end_date")),
        work_start_date=_to_date(_field(data, "workStartDate", "work_start_date")),
        work_end_date=_to_date(_field(data, "workEndDate", "work_end_date")),
        billing_start_date=_to_date(_field(data, "billingStartDate", "billing_start_date")),
        billing_end_date=_to_date(_field(data, "billingEndDate", "billing_end_date")),
        client_name=_to_text(_field(data, "clientName", "client_name"), 255),
        description=_to_text(data.get("description"), 2000),
        milestones=milestones,
        payment_terms=_to_text(_field(data, "paymentTerms", "payment_terms")),
        deliverables=deliverables,
        confidence=_to_confidence(data.get("confidence")),
        reasoning=_to_text(data.get("reasoning")) or "No reasoning provided",
    )


class ContractFieldExtractor:
    """Extract structured contract terms from text with an OpenAI chat model."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-4o-mini",
        temperature: float = 0.1,
        max_tokens: int = 2000,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def extract(self, contract_text: str) -> ExtractedContractData:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": EXTRACTION_PROMPT},
                    {"role": "user", "content": contract_text},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as exc:
            raise AIExtractionError(
                AIExtractionErrorKind.API_ERROR,
                f"Failed to extract contract data with AI: {exc}",
            ) from exc
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIExtractionError(AIExtractionErrorKind.EMPTY_RESPONSE, "No response from OpenAI")
        return parse_extraction_response(content)


def build_field_extractor(settings: Settings) -> ContractFieldExtractor | None:
    """Extractor wired to a real OpenAI client, or None without an API key."""
    if not settings.openai_api_key:
        return None
    return ContractFieldExtractor(
        client=AsyncOpenAI(api_key=settings.openai_api_key),
        model=settings.openai_model,
        temperature=settings.openai_temperature,
        max_tokens=settings.openai_max_tokens,
    )
