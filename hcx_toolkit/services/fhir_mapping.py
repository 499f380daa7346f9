"""Flatten received FHIR bundles into the documents the stubs store and list."""
from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ..models.fhir import Bundle


def _load(bundle: Any) -> Bundle:
    try:
        return Bundle.model_validate(bundle)
    except ValidationError as exc:
        raise ValueError("Invalid FHIR Bundle") from exc


def _index(bundle: Bundle) -> dict[str, dict[str, Any]]:
    index = {}
    for resource in bundle.resources():
        if resource.get("resourceType") and resource.get("id"):
            index[f"{resource['resourceType']}/{resource['id']}"] = resource
    return index


def _resolve(index: dict[str, dict[str, Any]], reference: Any) -> dict[str, Any] | None:
    if not isinstance(reference, dict) or not reference.get("reference"):
        return None
    return index.get(reference["reference"])


def _ref_id(reference: Any) -> str:
    if isinstance(reference, dict) and reference.get("reference"):
        return reference["reference"].split("/")[-1]
    return ""


def _first_coding(concept: Any) -> dict[str, str]:
    if not isinstance(concept, dict):
        return {}
    codings = concept.get("coding") or []
    coding = codings[0] if codings else {}
    return {"code": coding.get("code", ""), "display": coding.get("display") or concept.get("text", "")}


def _human_name(resource: dict[str, Any], fallback: str = "") -> str:
    names = resource.get("name") or []
    if not names:
        return fallback
    name = names[0]
    if name.get("text"):
        return name["text"]
    parts = [*(name.get("prefix") or []), *(name.get("given") or []), name.get("family")]
    return " ".join(part for part in parts if part) or fallback


def _patient(index, reference) -> dict[str, Any]:
    resource = _resolve(index, reference)
    display = (reference or {}).get("display", "") if isinstance(reference, dict) else ""
    if resource is None:
        return {"id": _ref_id(reference), "name": display, "dob": "", "gender": "", "identifier": ""}
    identifiers = resource.get("identifier") or []
    return {
        "id": resource.get("id", ""),
        "name": _human_name(resource, display),
        "dob": resource.get("birthDate", ""),
        "gender": resource.get("gender", ""),
        "identifier": identifiers[0].get("value", "") if identifiers else "",
    }


def _organization(index, reference) -> dict[str, Any]:
    resource = _resolve(index, reference)
    display = reference.get("display", "") if isinstance(reference, dict) else ""
    if resource is None:
        return {"id": _ref_id(reference), "name": display, "code": ""}
    identifiers = resource.get("identifier") or []
    return {
        "id": resource.get("id", ""),
        "name": resource.get("name") or display,
        "code": identifiers[0].get("value", "") if identifiers else "",
    }


def _coverage(index, reference) -> dict[str, Any]:
    resource = _resolve(index, reference)
    if resource is None:
        return {"id": _ref_id(reference), "policyNumber": "", "status": "", "plan": ""}
    classes = resource.get("class") or []
    return {
        "id": resource.get("id", ""),
        "policyNumber": resource.get("subscriberId", ""),
        "status": resource.get("status", ""),
        "plan": classes[0].get("value", "") if classes else "",
    }


def map_coverage_eligibility_request(bundle: Any) -> dict[str, Any]:
    parsed = _load(bundle)
    request = parsed.first("CoverageEligibilityRequest")
    if request is None:
        raise ValueError("No CoverageEligibilityRequest found in bundle")
    index = _index(parsed)

    serviced: dict[str, Any] = {}
    if request.get("servicedPeriod"):
        serviced = {"period": request["servicedPeriod"]}
    elif request.get("servicedDate"):
        serviced = {"date": request["servicedDate"]}

    return {
        "fhirRefId": request.get("id", ""),
        "status": request.get("status", "active"),
        "purpose": request.get("purpose") or [],
        "patient": _patient(index, request.get("patient")),
        "insurer": _organization(index, request.get("insurer")),
        "organization": _organization(index, request.get("provider")),
        "insurance": [
            {"focal": ins.get("focal", False), "coverage": _coverage(index, ins.get("coverage"))}
            for ins in request.get("insurance") or []
        ],
        "serviced": serviced,
        "items": [
            {
                "category": _first_coding(item.get("category")),
                "productOrService": _first_coding(item.get("productOrService")),
                "quantity": item.get("quantity") or {},
                "unitPrice": item.get("unitPrice") or {},
            }
            for item in request.get("item") or []
        ],
        "created": request.get("created", ""),
    }


def map_claim(bundle: Any) -> dict[str, Any]:
    parsed = _load(bundle)
    if not parsed.entry:
        raise ValueError("Bundle.entry is empty")
    claim = parsed.first("Claim")
    if claim is None:
        available = ", ".join(r.get("resourceType", "") for r in parsed.resources())
        raise ValueError(f"No Claim found in bundle. Available resource types: {available}")
    index = _index(parsed)

    identifiers = claim.get("identifier") or []
    return {
        "claimId": identifiers[0].get("value") if identifiers else claim.get("id", ""),
        "fhirRefId": claim.get("id", ""),
        "status": claim.get("status", "active"),
        "use": claim.get("use", "claim"),
        "type": _first_coding(claim.get("type")),
        "priority": _first_coding(claim.get("priority")).get("code", ""),
        "patient": _patient(index, claim.get("patient")),
        "insurer": _organization(index, claim.get("insurer")),
        "provider": _organization(index, claim.get("provider")),
        "billablePeriod": claim.get("billablePeriod") or {},
        "diagnosis": [
            _first_coding(diag.get("diagnosisCodeableConcept")) for diag in claim.get("diagnosis") or []
        ],
        "insurance": [
            {"focal": ins.get("focal", False), "coverage": _coverage(index, ins.get("coverage"))}
            for ins in claim.get("insurance") or []
        ],
        "items": [
            {
                "sequence": item.get("sequence"),
                "productOrService": _first_coding(item.get("productOrService")),
                "quantity": (item.get("quantity") or {}).get("value"),
                "unitPrice": (item.get("unitPrice") or {}).get("value"),
                "net": (item.get("net") or {}).get("value"),
            }
            for item in claim.get("item") or []
        ],
        "total": claim.get("total") or {},
        "created": claim.get("created", ""),
    }


def _payload_text(payload: list[dict[str, Any]] | None) -> tuple[list[str], list[dict[str, Any]]]:
    messages, attachments = [], []
    for part in payload or []:
        if part.get("contentString"):
            messages.append(part["contentString"])
        if part.get("contentAttachment"):
            attachments.append(part["contentAttachment"])
    return messages, attachments


def map_communication(bundle: Any) -> dict[str, Any]:
    """Flatten a Communication or CommunicationRequest bundle."""
    parsed = _load(bundle)
    resource = parsed.first("Communication") or parsed.first("CommunicationRequest")
    if resource is None:
        raise ValueError("No Communication or CommunicationRequest found in bundle")
    index = _index(parsed)

    about = resource.get("about") or []
    claim_ref = next((a for a in about if str(a.get("reference", "")).startswith("Claim/")), None)
    claim = _resolve(index, claim_ref)
    claim_identifiers = (claim or {}).get("identifier") or []
    in_response_to = resource.get("inResponseTo") or []
    messages, attachments = _payload_text(resource.get("payload"))
    return {
        "communicationId": resource.get("id", ""),
        "communicationType": "response" if resource["resourceType"] == "Communication" else "request",
        "status": resource.get("status", ""),
        "priority": resource.get("priority", "routine"),
        "claimFhirId": _ref_id(claim_ref),
        "claimId": claim_identifiers[0].get("value") if claim_identifiers else _ref_id(claim_ref),
        "inResponseTo": _ref_id(in_response_to[0]) if in_response_to else "",
        "subject": _patient(index, resource.get("subject")),
        "messages": messages,
        "attachments": attachments,
        "dueDate": resource.get("occurrenceDateTime", ""),
        "sent": resource.get("sent") or resource.get("authoredOn", ""),
    }
