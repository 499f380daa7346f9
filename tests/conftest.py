import os

import mongomock
import pytest
import requests
from fastapi.testclient import TestClient

# Ensure critical env vars are set before hcx_toolkit imports
os.environ.setdefault("ENVIRONMENT", "dev")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LLM_PROVIDER", "mock")
os.environ.setdefault("MONGO_DB_NAME", "hcx-toolkit-test")
os.environ.setdefault("NHCX_BASE_URL", "http://nhcx.test/hcx/v1")
os.environ.setdefault("SESSION_API_URL", "http://nhcx.test/sessions")


class FakeResponse:
    def __init__(self, status_code=202, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeLLM:
    """Returns a canned reply and remembers the prompts it was given."""

    def __init__(self, reply):
        self.reply = reply
        self.prompts = []

    def generate_json(self, prompt):
        self.prompts.append(prompt)
        return self.reply


@pytest.fixture
def mongo_db(monkeypatch):
    from hcx_toolkit import database
    from hcx_toolkit.config import get_settings

    get_settings.cache_clear()
    database.reset_client()
    monkeypatch.setattr(database, "MongoClient", mongomock.MongoClient)
    db = database.get_database()
    try:
        yield db
    finally:
        database.reset_client()
        get_settings.cache_clear()


@pytest.fixture
def hcx_outbox(monkeypatch):
    """Capture outbound HCX posts instead of sending them."""
    sent = []

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.append({"url": url, "json": json, "headers": headers or {}, "timeout": timeout})
        if url.endswith("/sessions"):
            return FakeResponse(200, {"accessToken": "token-123"})
        return FakeResponse(202, {"result": "accepted"})

    monkeypatch.setattr("hcx_toolkit.services.hcx_client.requests.post", fake_post)
    return sent


@pytest.fixture
def hcx_down(monkeypatch):
    def fake_post(url, json=None, headers=None, timeout=None):
        raise requests.ConnectionError("gateway unreachable")

    monkeypatch.setattr("hcx_toolkit.services.hcx_client.requests.post", fake_post)


@pytest.fixture
def payer_client(mongo_db):
    from hcx_toolkit.main import create_app

    with TestClient(create_app("payer")) as client:
        yield client


@pytest.fixture
def provider_client(mongo_db):
    from hcx_toolkit.main import create_app

    with TestClient(create_app("provider")) as client:
        yield client


@pytest.fixture
def fhir_client():
    from hcx_toolkit.main import create_app

    with TestClient(create_app("fhir_utilities")) as client:
        yield client


@pytest.fixture
def converter_app():
    from hcx_toolkit.main import create_app

    app = create_app("converter")
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def converter_client(converter_app):
    with TestClient(converter_app) as client:
        yield client


@pytest.fixture
def llm_reply(converter_app):
    """Point the converter routes at a FakeLLM returning the given reply."""
    from hcx_toolkit.api.converter import get_converter
    from hcx_toolkit.services.insurance_plan_converter import InsurancePlanConverter

    def _set(reply):
        llm = FakeLLM(reply)
        converter_app.dependency_overrides[get_converter] = lambda: InsurancePlanConverter(llm_client=llm)
        return llm

    return _set


@pytest.fixture
def patient_form():
    return {
        "name": "Rajesh Kumar",
        "abha_id": "91-1234-5678-9012",
        "gender": "male",
        "birth_date": "1985-06-15",
        "phone": "+91-9876543210",
    }


@pytest.fixture
def eligibility_form(patient_form):
    return {
        "patient": patient_form,
        "insurer": {"name": "Star Health Insurance", "code": "1000003538@hcx"},
        "provider": {"name": "City Hospital", "code": "1000004178@hcx"},
        "policy_number": "POL-2024-001",
        "plan_name": "Family Health Optima",
        "purpose": ["benefits", "validation"],
        "serviced_date": "2024-06-01",
        "items": [{"code": "IPD", "display": "Inpatient stay", "category": "hospitalization", "unit_price": 5000}],
    }


@pytest.fixture
def claim_form(patient_form):
    return {
        "use": "claim",
        "claim_type": "institutional",
        "patient": patient_form,
        "insurer": {"name": "Star Health Insurance", "code": "1000003538@hcx"},
        "provider": {"name": "City Hospital", "code": "1000004178@hcx"},
        "policy_number": "POL-2024-001",
        "diagnoses": [{"code": "K35.80", "display": "Acute appendicitis"}],
        "items": [
            {"code": "44970", "display": "Laparoscopic appendectomy", "quantity": 1, "unit_price": 45000},
            {"code": "ROOM", "display": "Room rent", "quantity": 3, "unit_price": 2500.5},
        ],
        "billable_start": "2024-06-01",
        "billable_end": "2024-06-04",
    }
