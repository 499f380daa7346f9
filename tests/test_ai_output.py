import json
import string

import pytest
from hypothesis import given, strategies as st

from hcx_toolkit.services.ai_output import (
    ConversionError,
    clean_llm_text,
    extract_json,
    normalize_ai_output,
    parse_simple_json,
)


def test_fenced_block_wins_over_surrounding_text():
    raw = 'Here you go {"note": "ignore me"}\n```json\n{"resourceType": "InsurancePlan", "name": "Gold"}\n```\nThanks!'
    assert extract_json(raw) == {"resourceType": "InsurancePlan", "name": "Gold"}


def test_bare_fence_is_accepted():
    raw = '```\n{"resourceType": "Bundle", "type": "collection"}\n```'
    assert extract_json(raw)["resourceType"] == "Bundle"


def test_falls_back_to_outer_braces():
    raw = 'Sure! {"resourceType": "InsurancePlan", "coverage": [{"benefit": []}]} Hope that helps.'
    assert extract_json(raw)["coverage"] == [{"benefit": []}]


def test_whole_string_array_is_parsed():
    assert extract_json('[{"error": "no plan"}]') == [{"error": "no plan"}]


def test_tags_are_stripped_before_parsing():
    raw = '<output>{"resourceType": "InsurancePlan"}</output>'
    assert clean_llm_text(raw) == '{"resourceType": "InsurancePlan"}'
    assert extract_json(raw) == {"resourceType": "InsurancePlan"}


def test_unparseable_reply_raises_with_cause():
    with pytest.raises(ValueError, match="Failed to parse JSON response"):
        extract_json("I could not find any plans in this document.")


_SAFE_TEXT = st.text(alphabet=string.ascii_letters + string.digits + " _-.", max_size=10)


@given(st.dictionaries(_SAFE_TEXT.filter(bool), st.integers() | _SAFE_TEXT, max_size=5))
def test_fenced_object_round_trips(payload):
    raw = f"Result:\n```json\n{json.dumps(payload)}\n```\nDone."
    assert extract_json(raw) == payload


def test_error_object_is_reported():
    with pytest.raises(ConversionError) as exc_info:
        normalize_ai_output({"error": "Input is not an insurance plan"})
    assert exc_info.value.status_code == 400
    assert exc_info.value.body == {"message": "LLM reported error", "error": "Input is not an insurance plan"}


def test_single_plan_is_wrapped_in_collection():
    bundle = normalize_ai_output({"resourceType": "InsurancePlan", "name": "Gold"})
    assert bundle["resourceType"] == "Bundle"
    assert bundle["type"] == "collection"
    assert bundle["entry"] == [{"resource": {"resourceType": "InsurancePlan", "name": "Gold"}}]


def test_bundle_is_used_as_is():
    bundle = {"resourceType": "Bundle", "type": "collection", "entry": []}
    assert normalize_ai_output(bundle) is bundle


def test_all_error_array_lists_every_error():
    parsed = [{"error": "sheet 1 empty"}, {"error": "sheet 2 unreadable"}]
    with pytest.raises(ConversionError) as exc_info:
        normalize_ai_output(parsed)
    assert exc_info.value.status_code == 400
    assert exc_info.value.body["message"] == "LLM reported errors"
    assert exc_info.value.body["errors"] == parsed


def test_mixed_array_drops_errors():
    bundle = normalize_ai_output([{"error": "skip"}, {"resourceType": "InsurancePlan", "name": "A"}])
    assert [e["resource"]["name"] for e in bundle["entry"]] == ["A"]


def test_insurance_plans_key_is_wrapped():
    bundle = normalize_ai_output({"insurancePlans": [{"resourceType": "InsurancePlan"}, {"resourceType": "InsurancePlan"}]})
    assert len(bundle["entry"]) == 2


@pytest.mark.parametrize("parsed", [{"resourceType": "Patient"}, None, 42])
def test_unexpected_output_is_rejected(parsed):
    with pytest.raises(ConversionError) as exc_info:
        normalize_ai_output(parsed)
    assert exc_info.value.body == {"message": "Unexpected AI output. Expected InsurancePlan or Bundle."}


def test_simple_json_uses_first_object_match():
    assert parse_simple_json('Answer: {"answer": "yes"}') == {"answer": "yes"}


def test_simple_json_without_object_fails():
    with pytest.raises(ValueError, match="LLM did not return valid JSON"):
        parse_simple_json("yes")


@pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
def test_non_standard_constants_are_rejected(constant):
    raw = '{"resourceType": "InsurancePlan", "extension": [{"valueDecimal": %s}]}' % constant
    with pytest.raises(ValueError, match="Failed to parse JSON response"):
        extract_json(raw)
    with pytest.raises(ValueError, match="LLM did not return valid JSON"):
        parse_simple_json(raw)
