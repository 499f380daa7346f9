"""Form-to-bundle templates used by the payer and provider stubs.

Builders take the ``model_dump(mode="json")`` of a form and return a FHIR
``collection`` Bundle. Resources reference each other as ``Type/id`` so the
mapping helpers can resolve them inside the bundle.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from .fhir_datatypes import profile_url, remove_empty_elements
from ..models.fhir import Bundle

ABHA_SYSTEM = "https://healthid.abdm.gov.in"
PARTICIPANT_SYSTEM = "https://hcx.abdm.gov.in/participant"
POLICY_SYSTEM = "https://hcx.abdm.gov.in/policy"
CLAIM_TYPE_SYSTEM = "http://terminology.hl7.org/CodeSystem/claim-type"
PRIORITY_SYSTEM = "http://terminology.hl7.org/CodeSystem/processpriority"
ADJUDICATION_SYSTEM = "http://terminology.hl7.org/CodeSystem/adjudication"
PLAN_TYPE_SYSTEM = "https://nrces.in/ndhm/fhir/r4/CodeSystem/ndhm-insuranceplan-type"
COVERAGE_TYPE_SYSTEM = "https://nrces.in/ndhm/fhir/r4/CodeSystem/ndhm-coverage-type"
COST_TYPE_SYSTEM = "https://nrces.in/ndhm/fhir/r4/CodeSystem/cost-type"
DIAGNOSIS_SYSTEM = "http://hl7.org/fhir/sid/icd-10"
COMMUNICATION_CATEGORY_SYSTEM = "http://terminology.hl7.org/CodeSystem/communication-category"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _new_id() -> str:
    return str(uuid.uuid4())


def _resource(resource_type: str, **fields: Any) -> dict[str, Any]:
    resource = {
        "resourceType": resource_type,
        "id": fields.pop("id", None) or _new_id(),
        "meta": {"profile": [profile_url(resource_type)]},
    }
    resource.update({key: value for key, value in fields.items() if value is not None})
    return resource


def ref(resource: dict[str, Any], display: str | None = None) -> dict[str, Any]:
    reference = {"reference": f"{resource['resourceType']}/{resource['id']}"}
    if display:
        reference["display"] = display
    return reference


def make_bundle(resources: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "resourceType": "Bundle",
        "id": _new_id(),
        "meta": {"lastUpdated": _now()},
        "type": "collection",
        "timestamp": _now(),
        "entry": [{"fullUrl": f"urn:uuid:{resource['id']}", "resource": resource} for resource in resources],
    }


def _coding(system: str | None, code: str | None, display: str | None = None) -> dict[str, Any]:
    coding = {"system": system, "code": code, "display": display}
    return {"coding": [{k: v for k, v in coding.items() if v is not None}], "text": display or code}


def patient_resource(patient: dict[str, Any]) -> dict[str, Any]:
    telecom = [{"system": "phone", "value": patient["phone"]}] if patient.get("phone") else None
    return _resource(
        "Patient",
        identifier=[
            {
                "type": _coding("http://terminology.hl7.org/CodeSystem/v2-0203", "MR", "ABHA number"),
                "system": ABHA_SYSTEM,
                "value": patient["abha_id"],
            }
        ],
        name=[{"text": patient["name"]}],
        gender=patient.get("gender") or "unknown",
        birthDate=patient.get("birth_date"),
        telecom=telecom,
    )


def organization_resource(org: dict[str, Any]) -> dict[str, Any]:
    identifier = [{"system": PARTICIPANT_SYSTEM, "value": org["code"]}] if org.get("code") else None
    return _resource("Organization", name=org["name"], identifier=identifier)


def coverage_resource(policy_number: str, patient: dict, insurer: dict, plan_name: str | None = None) -> dict[str, Any]:
    plan_class = [{"type": _coding(None, "plan", "Plan"), "value": plan_name}] if plan_name else None
    return _resource(
        "Coverage",
        identifier=[{"system": POLICY_SYSTEM, "value": policy_number}],
        status="active",
        subscriberId=policy_number,
        beneficiary=ref(patient),
        payor=[ref(insurer, insurer.get("name"))],
        **{"class": plan_class},
    )


def _service_concept(item: dict[str, Any]) -> dict[str, Any]:
    return _coding(None, item["code"], item.get("display"))


def _money(value: float | None) -> dict[str, Any] | None:
    if value is None:
        return None
    return {"value": round(float(value), 2), "currency": "INR"}


def build_coverage_eligibility_request_bundle(form: dict[str, Any]) -> dict[str, Any]:
    patient = patient_resource(form["patient"])
    insurer = organization_resource(form["insurer"])
    provider = organization_resource(form["provider"])
    coverage = coverage_resource(form["policy_number"], patient, insurer, form.get("plan_name"))

    items = [
        {
            "category": _coding(None, item["category"]) if item.get("category") else None,
            "productOrService": _service_concept(item),
            "quantity": {"value": item.get("quantity") or 1},
            "unitPrice": _money(item.get("unit_price")),
        }
        for item in form.get("items") or []
    ]
    request = _resource(
        "CoverageEligibilityRequest",
        identifier=[{"system": "https://hcx.abdm.gov.in/coverageeligibility", "value": _new_id()}],
        status="active",
        priority=_coding(PRIORITY_SYSTEM, "normal", "Normal"),
        purpose=form.get("purpose") or ["benefits"],
        patient=ref(patient, form["patient"]["name"]),
        servicedDate=form.get("serviced_date"),
        created=_now(),
        enterer=ref(provider, provider["name"]),
        provider=ref(provider, provider["name"]),
        insurer=ref(insurer, insurer["name"]),
        facility=ref(provider, provider["name"]),
        insurance=[{"focal": True, "coverage": ref(coverage)}],
        item=[{k: v for k, v in item.items() if v is not None} for item in items] or None,
    )
    return make_bundle([request, patient, insurer, provider, coverage])


def build_coverage_eligibility_response_bundle(request_bundle: dict[str, Any], decision: dict[str, Any]) -> dict[str, Any]:
    bundle = Bundle.model_validate(request_bundle)
    request = bundle.first("CoverageEligibilityRequest")
    if request is None:
        raise ValueError("No CoverageEligibilityRequest found in bundle")

    benefit_period = None
    if decision.get("benefit_start") or decision.get("benefit_end"):
        benefit_period = {
            k: v for k, v in {"start": decision.get("benefit_start"), "end": decision.get("benefit_end")}.items() if v
        }
    items = []
    for item in decision.get("items") or []:
        fhir_item = {
            "category": _coding(None, item["category"]) if item.get("category") else None,
            "productOrService": _coding(None, item.get("product_code"), item.get("product_display"))
            if item.get("product_code")
            else None,
            "excluded": item.get("excluded"),
            "authorizationRequired": item.get("authorization_required"),
            "benefit": [
                {
                    k: v
                    for k, v in {
                        "type": _coding(None, benefit["type"]),
                        "allowedMoney": _money(benefit.get("allowed_amount")),
                        "usedMoney": _money(benefit.get("used_amount")),
                    }.items()
                    if v is not None
                }
                for benefit in item.get("benefits") or []
            ]
            or None,
        }
        items.append({k: v for k, v in fhir_item.items() if v is not None})

    insurance = [
        {
            k: v
            for k, v in {
                "coverage": ins.get("coverage"),
                "inforce": decision.get("inforce", True),
                "benefitPeriod": benefit_period,
                "item": items or None,
            }.items()
            if v is not None
        }
        for ins in request.get("insurance") or []
    ]
    response = _resource(
        "CoverageEligibilityResponse",
        identifier=[{"system": "https://hcx.abdm.gov.in/coverageeligibility-response", "value": _new_id()}],
        status="active",
        purpose=request.get("purpose"),
        patient=request.get("patient"),
        created=_now(),
        request={"reference": f"CoverageEligibilityRequest/{request['id']}"},
        outcome=decision.get("outcome") or "complete",
        disposition=decision.get("disposition") or None,
        insurer=request.get("insurer"),
        insurance=insurance or None,
        error=[{"code": {"text": message}} for message in decision.get("errors") or []] or None,
    )
    supporting = bundle.resources("Patient") + bundle.resources("Organization") + bundle.resources("Coverage")
    return make_bundle([response, *supporting])


def build_claim_bundle(form: dict[str, Any]) -> dict[str, Any]:
    patient = patient_resource(form["patient"])
    insurer = organization_resource(form["insurer"])
    provider = organization_resource(form["provider"])
    coverage = coverage_resource(form["policy_number"], patient, insurer)

    items = []
    total = 0.0
    for sequence, item in enumerate(form["items"], start=1):
        quantity = item.get("quantity") or 1
        net = (item.get("unit_price") or 0) * quantity
        total += net
        fhir_item = {
            "sequence": sequence,
            "diagnosisSequence": [1],
            "productOrService": _service_concept(item),
            "quantity": {"value": quantity},
            "unitPrice": _money(item.get("unit_price")),
            "net": _money(net),
        }
        if item.get("category"):
            fhir_item["category"] = _coding(None, item["category"])
        items.append({k: v for k, v in fhir_item.items() if v is not None})

    billable = None
    if form.get("billable_start"):
        billable = {"start": form["billable_start"], "end": form.get("billable_end") or form["billable_start"]}
    claim = _resource(
        "Claim",
        identifier=[{"system": "https://hcx.abdm.gov.in/claim", "value": _new_id()}],
        status="active",
        type=_coding(CLAIM_TYPE_SYSTEM, form.get("claim_type") or "institutional"),
        use=form.get("use") or "claim",
        patient=ref(patient, form["patient"]["name"]),
        billablePeriod=billable,
        created=_now(),
        insurer=ref(insurer, insurer["name"]),
        provider=ref(provider, provider["name"]),
        priority=_coding(PRIORITY_SYSTEM, form.get("priority") or "normal"),
        diagnosis=[
            {
                "sequence": sequence,
                "diagnosisCodeableConcept": _coding(DIAGNOSIS_SYSTEM, diag["code"], diag.get("display")),
            }
            for sequence, diag in enumerate(form["diagnoses"], start=1)
        ],
        insurance=[{"sequence": 1, "focal": True, "coverage": ref(coverage)}],
        item=items,
        total=_money(total),
    )
    return make_bundle([claim, patient, insurer, provider, coverage])


def _adjudication(category: str, amount: float | None) -> dict[str, Any]:
    entry = {"category": _coding(ADJUDICATION_SYSTEM, category)}
    if amount is not None:
        entry["amount"] = _money(amount)
    return entry


def build_claim_response_bundle(claim_bundle: dict[str, Any], decision: dict[str, Any]) -> dict[str, Any]:
    bundle = Bundle.model_validate(claim_bundle)
    claim = bundle.first("Claim")
    if claim is None:
        raise ValueError("No Claim found in bundle")

    approved = decision.get("decision") == "approved"
    overrides = {item["sequence"]: item for item in decision.get("items") or []}
    items = []
    submitted_total = 0.0
    benefit_total = 0.0
    for item in claim.get("item") or []:
        submitted = (item.get("net") or {}).get("value") or 0.0
        override = overrides.get(item.get("sequence"))
        if not approved:
            benefit = 0.0
        elif override is not None:
            benefit = override["approved_amount"]
        else:
            benefit = submitted
        submitted_total += submitted
        benefit_total += benefit
        adjudication = [_adjudication("submitted", submitted), _adjudication("benefit", benefit)]
        if override and override.get("reason"):
            adjudication.append({"category": _coding(ADJUDICATION_SYSTEM, "eligible"), "reason": {"text": override["reason"]}})
        items.append({"itemSequence": item.get("sequence"), "adjudication": adjudication})

    payment = None
    if approved:
        payment = {
            "type": _coding("http://terminology.hl7.org/CodeSystem/ex-paymenttype", "complete"),
            "date": decision.get("payment_date") or datetime.now(timezone.utc).date().isoformat(),
            "amount": _money(benefit_total),
        }
    response = _resource(
        "ClaimResponse",
        identifier=[{"system": "https://hcx.abdm.gov.in/claim-response", "value": _new_id()}],
        status="active",
        type=claim.get("type"),
        use=claim.get("use"),
        patient=claim.get("patient"),
        created=_now(),
        insurer=claim.get("insurer"),
        requestor=claim.get("provider"),
        request={"reference": f"Claim/{claim['id']}"},
        outcome=decision.get("outcome") or "complete",
        disposition=decision.get("disposition") or ("Approved" if approved else "Rejected"),
        preAuthRef=decision.get("preauth_ref") if claim.get("use") == "preauthorization" else None,
        item=items or None,
        total=[_adjudication("submitted", submitted_total), _adjudication("benefit", benefit_total)],
        payment=payment,
    )
    supporting = bundle.resources("Patient") + bundle.resources("Organization")
    return make_bundle([response, *supporting])


def build_communication_request_bundle(claim_bundle: dict[str, Any], form: dict[str, Any]) -> dict[str, Any]:
    bundle = Bundle.model_validate(claim_bundle)
    claim = bundle.first("Claim")
    if claim is None:
        raise ValueError("No Claim found in bundle")

    payload = [{"contentString": form["message"]}]
    payload.extend({"contentString": f"Requested document: {doc}"} for doc in form.get("requested_documents") or [])
    due_date = form.get("due_date") or (datetime.now(timezone.utc) + timedelta(days=7)).date().isoformat()
    request = _resource(
        "CommunicationRequest",
        identifier=[{"system": "https://hcx.abdm.gov.in/communication-request", "value": _new_id()}],
        status="active",
        category=[_coding(COMMUNICATION_CATEGORY_SYSTEM, "instruction", "Instruction")],
        priority=form.get("priority") or "routine",
        subject=claim.get("patient"),
        about=[{"reference": f"Claim/{claim['id']}"}],
        payload=payload,
        occurrenceDateTime=due_date,
        authoredOn=_now(),
        requester=claim.get("insurer"),
        recipient=[claim["provider"]] if claim.get("provider") else None,
    )
    return make_bundle([request, claim, *bundle.resources("Patient")])


def build_communication_bundle(request_bundle: dict[str, Any], form: dict[str, Any]) -> dict[str, Any]:
    bundle = Bundle.model_validate(request_bundle)
    request = bundle.first("CommunicationRequest")
    if request is None:
        raise ValueError("No CommunicationRequest found in bundle")

    payload = [{"contentString": form.get("message") or "Response from provider with requested information."}]
    for attachment in form.get("attachments") or []:
        content = {
            "contentType": attachment.get("content_type") or "application/pdf",
            "url": attachment["url"],
            "title": attachment.get("title") or "Supporting Document",
            "size": attachment.get("size"),
        }
        payload.append({"contentAttachment": {k: v for k, v in content.items() if v is not None}})

    communication = _resource(
        "Communication",
        identifier=[{"system": "https://hcx.abdm.gov.in/communication", "value": _new_id()}],
        status="completed",
        subject=request.get("subject"),
        about=request.get("about"),
        basedOn=[{"reference": f"CommunicationRequest/{request['id']}"}],
        inResponseTo=[{"reference": f"CommunicationRequest/{request['id']}"}],
        sent=_now(),
        recipient=[request["requester"]] if request.get("requester") else None,
        sender=(request.get("recipient") or [None])[0],
        payload=payload,
    )
    return make_bundle([communication, *bundle.resources("Claim"), *bundle.resources("Patient")])


def build_insurance_plan_request_bundle(form: dict[str, Any]) -> dict[str, Any]:
    patient = patient_resource(form["patient"])
    insurer = organization_resource(form["insurer"])
    resources = [patient, insurer]
    if form.get("policy_number"):
        resources.append(coverage_resource(form["policy_number"], patient, insurer))
    return make_bundle(resources)


def insurance_plan_from_record(plan: dict[str, Any], policy_number: str | None = None, insurer: dict | None = None) -> dict[str, Any]:
    benefits = plan.get("benefits") or ["Inpatient hospitalization"]
    resource = _resource(
        "InsurancePlan",
        id=str(plan["planId"]).lower(),
        identifier=[{"system": "https://hcx.abdm.gov.in/insurance-plan", "value": plan["planId"]}],
        status=plan.get("status") or "active",
        type=[_coding(PLAN_TYPE_SYSTEM, "01", "Hospitalisation Indemnity Policy")],
        name=plan.get("name"),
        ownedBy={"display": insurer["name"]} if insurer else None,
        coverage=[
            {
                "type": _coding(COVERAGE_TYPE_SYSTEM, "00", "In Patient Hospitalization"),
                "benefit": [
                    {
                        "type": {"text": benefit},
                        "limit": [{"value": {"value": plan.get("maxCoverageAmount"), "unit": "INR"}}],
                    }
                    for benefit in benefits
                ],
            }
        ],
        plan=[
            {
                "identifier": [{"system": POLICY_SYSTEM, "value": policy_number}] if policy_number else None,
                "generalCost": [
                    {"type": _coding(COST_TYPE_SYSTEM, "premium", "Premium"), "cost": _money(plan.get("premium"))},
                    {"type": _coding(COST_TYPE_SYSTEM, "deductible", "Deductible"), "cost": _money(plan.get("deductible"))},
                ],
                "specificCost": [
                    {
                        "category": {"text": "Co-insurance"},
                        "benefit": [
                            {
                                "type": {"text": "coverage-percentage"},
                                "cost": [{"type": {"text": "percentage"}, "value": {"value": plan.get("coveragePercentage"), "unit": "%"}}],
                            }
                        ],
                    }
                ],
            }
        ],
    )
    return remove_empty_elements(resource)


def build_insurance_plan_bundle(plans: list[dict[str, Any]]) -> dict[str, Any]:
    return make_bundle(plans)
