import asyncio
import json
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from revrec.config import Settings
from revrec.services.ai_extractor import (
    AIExtractionError,
    AIExtractionErrorKind,
    ContractFieldExtractor,
    build_field_extractor,
    parse_extraction_response,
)

FULL_RESPONSE = {
    "contractValue": "$250,000",
    "startDate": "2025-01-01",
    "endDate": "2025-12-31T00:00:00Z",
    "workStartDate": "2025-02-01",
    "workEndDate": None,
    "clientName": "  Globex Corporation ",
    "description": "Data platform migration",
    "milestones": [
        {"name": "Discovery", "amount": 50000, "dueDate": "2025-03-31"},
        {"name": "Migration", "amount": "200,000", "dueDate": "not a date"},
        {"name": "Bonus", "amount": "TBD", "dueDate": "2025-12-31"},
    ],
    "paymentTerms": "Net 45",
    "deliverables": ["Architecture document", "", "Migrated warehouse"],
    "confidence": 0.85,
    "reasoning": "Value and dates in the fees schedule",
}


def fake_openai(content: str | None = None, error: Exception | None = None):
    calls = []

    async def create(**kwargs):
        calls.append(kwargs)
        if error:
            raise error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, calls


def test_parse_full_response():
    data = parse_extraction_response(json.dumps(FULL_RESPONSE))

    assert data.contract_value == Decimal("250000")
    assert data.start_date == date(2025, 1, 1)
    assert data.end_date == date(2025, 12, 31)
    assert data.work_start_date == date(2025, 2, 1)
    assert data.work_end_date is None
    assert data.client_name == "Globex Corporation"
    assert data.payment_terms == "Net 45"
    assert data.deliverables == ["Architecture document", "Migrated warehouse"]
    assert data.confidence == 0.85


def test_milestones_keep_order_and_drop_unusable_amounts():
    data = parse_extraction_response(json.dumps(FULL_RESPONSE))

    assert [m.name for m in data.milestones] == ["Discovery", "Migration"]
    assert data.milestones[1].amount == Decimal("200000")
    assert data.milestones[1].due_date is None


def test_parse_strips_markdown_fences():
    content = "```json\n" + json.dumps({"contractValue": 1000, "confidence": 0.5}) + "\n```"

    data = parse_extraction_response(content)

    assert data.contract_value == Decimal("1000")


def test_parse_finds_object_embedded_in_prose():
    content = 'Here is the extraction: {"clientName": "Initech", "confidence": 2} Let me know.'

    data = parse_extraction_response(content)

    assert data.client_name == "Initech"
    assert data.confidence == 1.0


def test_missing_fields_get_defaults():
    data = parse_extraction_response("{}")

    assert data.contract_value is None
    assert data.milestones == []
    assert data.deliverables == []
    assert data.confidence == 0.0
    assert data.reasoning == "No reasoning provided"


def test_zero_contract_value_is_treated_as_missing():
    assert parse_extraction_response('{"contractValue": 0}').contract_value is None


@pytest.mark.parametrize("content", ["no json here", "[1, 2, 3]", "{broken: json"])
def test_unparseable_responses_are_invalid_json(content):
    with pytest.raises(AIExtractionError) as exc_info:
        parse_extraction_response(content)

    assert exc_info.value.kind == AIExtractionErrorKind.INVALID_JSON


def test_extract_sends_prompt_and_contract_text():
    client, calls = fake_openai(content=json.dumps({"clientName": "Umbrella", "confidence": 0.7}))
    extractor = ContractFieldExtractor(client, model="gpt-4o-mini", temperature=0.1, max_tokens=500)

    data = asyncio.run(extractor.extract("This agreement is made with Umbrella"))

    assert data.client_name == "Umbrella"
    assert calls[0]["model"] == "gpt-4o-mini"
    assert calls[0]["max_tokens"] == 500
    assert calls[0]["messages"][1] == {"role": "user", "content": "This agreement is made with Umbrella"}


def test_extract_reports_empty_response():
    client, _ = fake_openai(content="")

    with pytest.raises(AIExtractionError) as exc_info:
        asyncio.run(ContractFieldExtractor(client).extract("text"))

    assert exc_info.value.kind == AIExtractionErrorKind.EMPTY_RESPONSE


def test_extract_wraps_api_errors():
    client, _ = fake_openai(error=OpenAIError("rate limited"))

    with pytest.raises(AIExtractionError) as exc_info:
        asyncio.run(ContractFieldExtractor(client).extract("text"))

    assert exc_info.value.kind == AIExtractionErrorKind.API_ERROR
    assert "rate limited" in str(exc_info.value)


def test_build_field_extractor_requires_api_key():
    assert build_field_extractor(Settings(openai_api_key="")) is None

    extractor = build_field_extractor(Settings(openai_api_key="sk-test", openai_model="gpt-4o"))

    assert isinstance(extractor, ContractFieldExtractor)
    assert extractor.model == "gpt-4o"
