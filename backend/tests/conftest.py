import os
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

# Must be set before revrec.database builds its engine
_DB_DIR = tempfile.mkdtemp(prefix="revrec-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{Path(_DB_DIR) / 'test.db'}"

from fastapi.testclient import TestClient  # noqa: E402

from revrec.deps import get_field_extractor, get_ocr_client, get_today  # noqa: E402
from revrec.main import app  # noqa: E402
from revrec.schemas.contract import ExtractedContractData, MilestoneData  # noqa: E402

TODAY = date(2025, 6, 15)


class FakeExtractor:
    """Stands in for ContractFieldExtractor; returns canned data and records the text it saw."""

    def __init__(self, data: ExtractedContractData | None = None, error: Exception | None = None):
        self.data = data
        self.error = error
        self.texts: list[str] = []

    async def extract(self, contract_text: str) -> ExtractedContractData:
        self.texts.append(contract_text)
        if self.error:
            raise self.error
        return self.data


def sample_extracted_data(**overrides) -> ExtractedContractData:
    data = {
        "contract_value": Decimal("120000"),
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 12, 31),
        "work_start_date": date(2025, 2, 1),
        "work_end_date": date(2025, 7, 31),
        "client_name": "Acme Corp",
        "description": "ERP implementation services",
        "milestones": [
            MilestoneData(name="Kickoff", amount=Decimal("30000"), due_date=date(2025, 3, 31)),
            MilestoneData(name="Go-live", amount=Decimal("90000"), due_date=date(2025, 9, 30)),
        ],
        "payment_terms": "Net 30",
        "deliverables": ["Configured ERP", "Training"],
        "confidence": 0.9,
        "reasoning": "Terms stated in section 4",
    }
    data.update(overrides)
    return ExtractedContractData(**data)


@pytest.fixture(scope="session")
def api_client():
    with TestClient(app) as client:
        yield client


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor(sample_extracted_data())


@pytest.fixture
def client(api_client, fake_extractor):
    app.dependency_overrides[get_today] = lambda: TODAY
    app.dependency_overrides[get_ocr_client] = lambda: None
    app.dependency_overrides[get_field_extractor] = lambda: fake_extractor
    yield api_client
    app.dependency_overrides.clear()


@pytest.fixture
def upload_contract(client):
    """Upload pre-extracted text and return the stored contract JSON."""

    def _upload(file_name: str = "acme-msa.pdf", text: str = "Master services agreement") -> dict:
        resp = client.post("/contracts/upload", data={"extracted_text": text, "file_name": file_name})
        assert resp.status_code == 200, resp.text
        return resp.json()["contract"]

    return _upload
