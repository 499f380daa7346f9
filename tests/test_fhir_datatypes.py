import logging
from datetime import date, datetime, timezone

import pytest

from hcx_toolkit.services.fhir_datatypes import (
    generate_narrative,
    generate_short_uuid,
    normalize_fhir_date,
    profile_url,
    remove_empty_elements,
    transform_codeable_concept,
    transform_contact_point,
    transform_extension,
    transform_human_name,
    transform_identifier,
    transform_money,
    transform_reference,
)


def test_short_uuid_prefix_and_length():
    for _ in range(50):
        value = generate_short_uuid("Claim")
        assert value.startswith("cl")
        assert 10 <= len(value) <= 12


def test_profile_url_uses_nrces_base():
    assert profile_url("Claim") == "https://nrces.in/ndhm/fhir/r4/StructureDefinition/Claim"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-03-15", "2024-03-15"),
        ("2024/03/15", "2024-03-15"),
        ("2024-03-15T10:00:00Z", "2024-03-15"),
        ("2024-03", "2024-03"),
        (1710460800, "2024-03-15"),
        (1710460800000, "2024-03-15"),
        ("1710460800000", "2024-03-15"),
        (date(2024, 3, 15), "2024-03-15"),
        (datetime(2024, 3, 15, 23, 0, tzinfo=timezone.utc), "2024-03-15"),
        ("15-03-2024", None),
        (None, None),
    ],
)
def test_normalize_fhir_date(value, expected):
    assert normalize_fhir_date(value) == expected


def test_codeable_concept_shorthands():
    assert transform_codeable_concept("Room rent") == {"text": "Room rent"}
    assert transform_codeable_concept({"system": "http://snomed.info/sct", "code": "123", "display": "Thing"}) == {
        "coding": [{"system": "http://snomed.info/sct", "code": "123", "display": "Thing"}],
        "text": "Thing",
    }


def test_reference_string_shorthand():
    assert transform_reference("Patient/1") == {"reference": "Patient/1"}


def test_identifier_use_defaults_to_usual():
    assert transform_identifier({"value": "ABC"}) == {"use": "usual", "value": "ABC"}


def test_human_name_text_is_assembled():
    name = transform_human_name({"prefix": "Dr", "given": ["Priya", "Devi"], "family": "Singh"})
    assert name["text"] == "Dr Priya Devi Singh"
    assert name["prefix"] == ["Dr"]


def test_contact_point_defaults_to_phone():
    assert transform_contact_point({"value": "+91-44-2856-7890"})["system"] == "phone"


def test_money_defaults_to_inr():
    assert transform_money(250) == {"value": 250, "currency": "INR"}
    assert transform_money({"value": 10, "currency": "USD"}) == {"value": 10, "currency": "USD"}


def test_extension_with_value_loses_nested_extensions(caplog):
    extension = {
        "url": "http://example.org/ext",
        "valueString": "x",
        "extension": [{"url": "nested", "valueString": "y"}],
    }
    with caplog.at_level(logging.WARNING):
        result = transform_extension(extension)
    assert "extension" not in result
    assert result["valueString"] == "x"
    assert "dropping nested extensions" in caplog.text


def test_remove_empty_elements_prunes_recursively():
    value = {"a": "", "b": [], "c": {"d": None, "e": [{}]}, "f": 0, "g": False, "h": ["x", ""]}
    assert remove_empty_elements(value) == {"f": 0, "g": False, "h": ["x"]}


def test_narrative_carries_language():
    text = generate_narrative("<strong>Plan</strong>", "en_IN")
    assert text["status"] == "generated"
    assert 'lang="en-IN"' in text["div"]
    assert text["div"].endswith("<strong>Plan</strong></div>")
