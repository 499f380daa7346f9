import pytest

from hcx_toolkit.services.fhir_bundles import (
    build_claim_bundle,
    build_claim_response_bundle,
    build_communication_bundle,
    build_communication_request_bundle,
    build_coverage_eligibility_request_bundle,
    build_coverage_eligibility_response_bundle,
    build_insurance_plan_request_bundle,
    insurance_plan_from_record,
    make_bundle,
)
from hcx_toolkit.services.fhir_mapping import map_claim, map_communication, map_coverage_eligibility_request


def _types(bundle):
    return [entry["resource"]["resourceType"] for entry in bundle["entry"]]


def test_eligibility_bundle_maps_back(eligibility_form):
    bundle = build_coverage_eligibility_request_bundle(eligibility_form)
    assert bundle["type"] == "collection"
    assert _types(bundle) == ["CoverageEligibilityRequest", "Patient", "Organization", "Organization", "Coverage"]

    summary = map_coverage_eligibility_request(bundle)
    assert summary["purpose"] == ["benefits", "validation"]
    assert summary["patient"]["name"] == "Rajesh Kumar"
    assert summary["patient"]["identifier"] == "91-1234-5678-9012"
    assert summary["patient"]["dob"] == "1985-06-15"
    assert summary["insurer"] == {
        "id": summary["insurer"]["id"],
        "name": "Star Health Insurance",
        "code": "1000003538@hcx",
    }
    assert summary["organization"]["name"] == "City Hospital"
    assert summary["insurance"][0]["coverage"]["policyNumber"] == "POL-2024-001"
    assert summary["insurance"][0]["coverage"]["plan"] == "Family Health Optima"
    assert summary["serviced"] == {"date": "2024-06-01"}
    assert summary["items"][0]["productOrService"] == {"code": "IPD", "display": "Inpatient stay"}


def test_eligibility_response_references_request(eligibility_form):
    request_bundle = build_coverage_eligibility_request_bundle(eligibility_form)
    request = request_bundle["entry"][0]["resource"]
    response_bundle = build_coverage_eligibility_response_bundle(
        request_bundle,
        {
            "outcome": "complete",
            "disposition": "Policy is active",
            "inforce": True,
            "benefit_start": "2024-01-01",
            "benefit_end": "2024-12-31",
            "items": [{"category": "hospitalization", "benefits": [{"type": "benefit", "allowed_amount": 500000}]}],
        },
    )
    response = response_bundle["entry"][0]["resource"]
    assert response["resourceType"] == "CoverageEligibilityResponse"
    assert response["request"] == {"reference": f"CoverageEligibilityRequest/{request['id']}"}
    assert response["patient"] == request["patient"]
    insurance = response["insurance"][0]
    assert insurance["inforce"] is True
    assert insurance["benefitPeriod"] == {"start": "2024-01-01", "end": "2024-12-31"}
    assert insurance["item"][0]["benefit"][0]["allowedMoney"] == {"value": 500000.0, "currency": "INR"}


def test_eligibility_response_requires_request():
    with pytest.raises(ValueError, match="CoverageEligibilityRequest"):
        build_coverage_eligibility_response_bundle(make_bundle([]), {})


def test_claim_bundle_totals_and_mapping(claim_form):
    bundle = build_claim_bundle(claim_form)
    claim = bundle["entry"][0]["resource"]
    assert claim["total"] == {"value": 52501.5, "currency": "INR"}
    assert claim["billablePeriod"] == {"start": "2024-06-01", "end": "2024-06-04"}

    summary = map_claim(bundle)
    assert summary["claimId"] == claim["identifier"][0]["value"]
    assert summary["fhirRefId"] == claim["id"]
    assert summary["use"] == "claim"
    assert summary["type"]["code"] == "institutional"
    assert summary["priority"] == "normal"
    assert summary["diagnosis"] == [{"code": "K35.80", "display": "Acute appendicitis"}]
    assert [item["net"] for item in summary["items"]] == [45000.0, 7501.5]
    assert summary["provider"]["code"] == "1000004178@hcx"


def test_map_claim_errors():
    with pytest.raises(ValueError, match="Bundle.entry is empty"):
        map_claim(make_bundle([]))
    with pytest.raises(ValueError, match="Available resource types: Patient"):
        map_claim(make_bundle([{"resourceType": "Patient", "id": "p1"}]))
    with pytest.raises(ValueError, match="Invalid FHIR Bundle"):
        map_claim({"resourceType": "Claim"})


def test_claim_mapping_falls_back_to_reference_display():
    bundle = make_bundle(
        [
            {
                "resourceType": "Claim",
                "id": "c1",
                "patient": {"reference": "Patient/missing", "display": "Asha Rao"},
                "insurer": {"reference": "Organization/ins"},
            }
        ]
    )
    summary = map_claim(bundle)
    assert summary["claimId"] == "c1"
    assert summary["patient"] == {"id": "missing", "name": "Asha Rao", "dob": "", "gender": "", "identifier": ""}
    assert summary["insurer"]["id"] == "ins"


def test_claim_response_partial_approval(claim_form):
    claim_bundle = build_claim_bundle(claim_form)
    response_bundle = build_claim_response_bundle(
        claim_bundle,
        {"decision": "approved", "items": [{"sequence": 2, "approved_amount": 5000, "reason": "Room cap"}]},
    )
    response = response_bundle["entry"][0]["resource"]
    assert response["disposition"] == "Approved"
    totals = {t["category"]["coding"][0]["code"]: t["amount"]["value"] for t in response["total"]}
    assert totals == {"submitted": 52501.5, "benefit": 50000.0}
    assert response["payment"]["amount"] == {"value": 50000.0, "currency": "INR"}
    assert "preAuthRef" not in response


def test_claim_response_rejection_pays_nothing(claim_form):
    claim_form["use"] = "preauthorization"
    response_bundle = build_claim_response_bundle(
        build_claim_bundle(claim_form), {"decision": "rejected", "preauth_ref": "PA-1"}
    )
    response = response_bundle["entry"][0]["resource"]
    assert response["disposition"] == "Rejected"
    assert "payment" not in response
    assert response["preAuthRef"] == "PA-1"
    benefit = [t for t in response["total"] if t["category"]["coding"][0]["code"] == "benefit"][0]
    assert benefit["amount"]["value"] == 0.0


def test_communication_round_trip(claim_form):
    claim_bundle = build_claim_bundle(claim_form)
    claim = claim_bundle["entry"][0]["resource"]
    request_bundle = build_communication_request_bundle(
        claim_bundle,
        {"message": "Please send discharge summary", "requested_documents": ["Discharge summary"], "due_date": "2024-07-01"},
    )
    request_summary = map_communication(request_bundle)
    assert request_summary["communicationType"] == "request"
    assert request_summary["claimFhirId"] == claim["id"]
    assert request_summary["claimId"] == claim["identifier"][0]["value"]
    assert request_summary["messages"] == ["Please send discharge summary", "Requested document: Discharge summary"]
    assert request_summary["dueDate"] == "2024-07-01"
    assert request_summary["subject"]["name"] == "Rajesh Kumar"

    response_bundle = build_communication_bundle(
        request_bundle,
        {"message": "Attached", "attachments": [{"url": "https://files.example/ds.pdf", "title": "Discharge summary"}]},
    )
    response_summary = map_communication(response_bundle)
    assert response_summary["communicationType"] == "response"
    assert response_summary["status"] == "completed"
    assert response_summary["inResponseTo"] == request_summary["communicationId"]
    assert response_summary["claimId"] == request_summary["claimId"]
    assert response_summary["attachments"] == [
        {"contentType": "application/pdf", "url": "https://files.example/ds.pdf", "title": "Discharge summary"}
    ]


def test_map_communication_without_resource():
    with pytest.raises(ValueError, match="No Communication"):
        map_communication(make_bundle([{"resourceType": "Patient", "id": "p1"}]))


def test_insurance_plan_request_bundle(patient_form):
    bundle = build_insurance_plan_request_bundle(
        {"patient": patient_form, "insurer": {"name": "Star Health Insurance"}, "policy_number": None}
    )
    assert _types(bundle) == ["Patient", "Organization"]


def test_insurance_plan_from_record():
    plan = insurance_plan_from_record(
        {
            "planId": "PLAN-001",
            "name": "Star Health Gold",
            "premium": 15000,
            "deductible": 5000,
            "coveragePercentage": 80,
            "maxCoverageAmount": 500000,
            "benefits": ["Room rent", "ICU"],
        },
        policy_number="POL-2024-001",
        insurer={"name": "Star Health"},
    )
    assert plan["id"] == "plan-001"
    assert plan["status"] == "active"
    assert plan["ownedBy"] == {"display": "Star Health"}
    assert [b["type"]["text"] for b in plan["coverage"][0]["benefit"]] == ["Room rent", "ICU"]
    costs = {c["type"]["coding"][0]["code"]: c["cost"]["value"] for c in plan["plan"][0]["generalCost"]}
    assert costs == {"premium": 15000.0, "deductible": 5000.0}
    assert plan["plan"][0]["identifier"] == [{"system": "https://hcx.abdm.gov.in/policy", "value": "POL-2024-001"}]
