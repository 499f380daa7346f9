import json

import pytest

from hcx_toolkit.config import Settings
from hcx_toolkit.services.fhir_validator import add_profile, validate_fhir_resource
from hcx_toolkit.services.llm_client import MOCK_BUNDLE, MockLLMClient, OpenAIClient, get_llm_client
from hcx_toolkit.services.prompt_builder import build_insurance_plan_prompt


def test_mock_provider_returns_bundle_json():
    client = get_llm_client(Settings(LLM_PROVIDER="MOCK"))
    assert isinstance(client, MockLLMClient)
    assert json.loads(client.generate_json("anything")) == MOCK_BUNDLE


def test_openai_requires_api_key():
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        get_llm_client(Settings(LLM_PROVIDER="openai", OPENAI_API_KEY=""))


def test_openai_client_is_built_with_key():
    client = get_llm_client(Settings(LLM_PROVIDER="openai", OPENAI_API_KEY="sk-test", OPENAI_DEFAULT_MODEL="gpt-4o"))
    assert isinstance(client, OpenAIClient)
    assert client.model == "gpt-4o"


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"GOOGLE_PROJECT_ID": "", "GOOGLE_LOCATION_ID": "us-central1"}, "GOOGLE_PROJECT_ID"),
        ({"GOOGLE_PROJECT_ID": "proj", "GOOGLE_LOCATION_ID": ""}, "GOOGLE_LOCATION_ID"),
    ],
)
def test_google_requires_project_and_location(overrides, message):
    with pytest.raises(RuntimeError, match=message):
        get_llm_client(Settings(LLM_PROVIDER="google", **overrides))


def test_unknown_provider():
    with pytest.raises(RuntimeError, match="Unsupported or misconfigured LLM provider"):
        get_llm_client(Settings(LLM_PROVIDER="anthropic"))


def test_prompt_embeds_input_and_profile():
    prompt = build_insurance_plan_prompt("excel_data", '{"Plan": "Gold"}', "https://nrces.in/profile")
    assert "Input kind: excel_data" in prompt
    assert '<<<BEGIN_INPUT>>>\n{"Plan": "Gold"}\n<<<END_INPUT>>>' in prompt
    assert 'meta.profile to ["https://nrces.in/profile"]' in prompt


def test_prompt_without_profile_uses_base_r4():
    assert "use base FHIR R4" in build_insurance_plan_prompt("pdf_text", "text")


def test_validator_accepts_minimal_plan_with_warnings():
    result = validate_fhir_resource({"resourceType": "InsurancePlan", "id": "p1"})
    assert result["is_valid"] is True
    assert result["warnings"] == ["InsurancePlan p1 has no name", "InsurancePlan p1 has no status"]


@pytest.mark.parametrize(
    "resource,error",
    [
        ("nope", "Resource is not an object"),
        ({"resourceType": "Claim"}, "resourceType must be InsurancePlan"),
    ],
)
def test_validator_rejects(resource, error):
    result = validate_fhir_resource(resource)
    assert result["is_valid"] is False
    assert result["errors"] == [error]


def test_validator_leaves_field_types_alone():
    resource = {"resourceType": "InsurancePlan", "status": "active", "name": "Gold", "meta": {"versionId": 1}}
    result = validate_fhir_resource(resource)
    assert result == {"is_valid": True, "errors": [], "warnings": []}

    odd_name = validate_fhir_resource({"resourceType": "InsurancePlan", "name": ["not", "a", "string"]})
    assert odd_name["is_valid"] is True
    assert odd_name["errors"] == []


def test_add_profile_is_idempotent():
    resource = {"resourceType": "InsurancePlan", "meta": {"profile": ["a"]}}
    add_profile(resource, "b")
    add_profile(resource, "b")
    assert resource["meta"]["profile"] == ["a", "b"]

    bare = {"resourceType": "InsurancePlan"}
    add_profile(bare, "b")
    assert bare["meta"] == {"profile": ["b"]}
