"""Builders turning loosely typed input into NRCES-profiled FHIR resources.

Each builder follows the same pipeline: validate the input, map it onto the
FHIR shape, enforce the extension invariant, prune empty elements and stamp
the system fields (id, meta, narrative).
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ValidationError

from ..models.fhir_inputs import (
    ClaimInput,
    CoverageEligibilityRequestInput,
    CoverageInput,
    InsurancePlanInput,
    PatientInput,
)
from .fhir_datatypes import (
    generate_narrative,
    generate_short_uuid,
    narrative_summary,
    normalize_fhir_date,
    profile_url,
    remove_empty_elements,
    transform_address,
    transform_codeable_concept,
    transform_contact_point,
    transform_extension,
    transform_human_name,
    transform_identifier,
    transform_meta,
    transform_money,
    transform_period,
    transform_quantity,
    transform_reference,
)


class BuilderValidationError(ValueError):
    def __init__(self, details: list[str]):
        super().__init__("Validation failed")
        self.details = details


def format_validation_errors(exc: ValidationError) -> list[str]:
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "Invalid value")
        details.append(f"{location}: {message}" if location else message)
    return details


def _refs(values: list | None) -> list[dict] | None:
    if not values:
        return None
    return [transform_reference(value) for value in values]


def _concepts(values: list | None) -> list[dict] | None:
    if not values:
        return None
    return [transform_codeable_concept(value) for value in values]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class FHIRResourceBuilder:
    resource_type: str = ""
    input_model: type[BaseModel]

    def create(self, payload: Any) -> dict[str, Any]:
        value = self.validate(payload)
        resource = self.transform_to_fhir(value)
        self.ensure_fhir_constraints(resource)
        resource = remove_empty_elements(resource)
        return self.add_system_fields(resource)

    def validate(self, payload: Any) -> dict[str, Any]:
        if not isinstance(payload, dict):
            raise BuilderValidationError(["Request body must be a JSON object"])
        try:
            model = self.input_model.model_validate(payload)
        except ValidationError as exc:
            raise BuilderValidationError(format_validation_errors(exc)) from exc
        return model.model_dump(by_alias=True, exclude_none=True)

    def schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema(by_alias=True)

    def transform_to_fhir(self, value: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def ensure_fhir_constraints(self, node: Any) -> None:
        if isinstance(node, dict):
            if isinstance(node.get("extension"), list):
                node["extension"] = [transform_extension(ext) for ext in node["extension"] if ext]
            for item in node.values():
                self.ensure_fhir_constraints(item)
        elif isinstance(node, list):
            for item in node:
                self.ensure_fhir_constraints(item)

    def narrative(self, resource: dict[str, Any]) -> str:
        return ""

    def add_system_fields(self, resource: dict[str, Any]) -> dict[str, Any]:
        system_fields = {
            "resourceType": self.resource_type,
            "id": generate_short_uuid(self.resource_type),
            "meta": transform_meta({"profile": [profile_url(self.resource_type)]}),
            "text": generate_narrative(self.narrative(resource), resource.get("language")),
        }
        return {**system_fields, **resource}

    def _base(self, value: dict[str, Any]) -> dict[str, Any]:
        return {
            "resourceType": self.resource_type,
            "language": value.get("language"),
            "extension": value.get("extension"),
            "identifier": [transform_identifier(i) for i in value.get("identifier") or []],
        }


class PatientBuilder(FHIRResourceBuilder):
    resource_type = "Patient"
    input_model = PatientInput

    def transform_to_fhir(self, value):
        resource = self._base(value)
        resource.update(
            {
                "active": value.get("active"),
                "name": [transform_human_name(n) for n in value.get("name") or []],
                "telecom": [transform_contact_point(t) for t in value.get("telecom") or []],
                "gender": value.get("gender"),
                "birthDate": normalize_fhir_date(value.get("birthDate")),
                "address": [transform_address(a) for a in value.get("address") or []],
            }
        )
        return resource

    def narrative(self, resource):
        names = resource.get("name") or []
        official = next((n for n in names if n.get("use") == "official"), names[0] if names else {})
        return narrative_summary(official.get("text"), resource.get("gender"))


class CoverageBuilder(FHIRResourceBuilder):
    resource_type = "Coverage"
    input_model = CoverageInput

    def transform_to_fhir(self, value):
        resource = self._base(value)
        resource.update(
            {
                "status": value.get("status"),
                "type": transform_codeable_concept(value.get("type")),
                "subscriber": transform_reference(value.get("subscriber")),
                "subscriberId": value.get("subscriberId"),
                "beneficiary": transform_reference(value.get("beneficiary")),
                "relationship": transform_codeable_concept(value.get("relationship")),
                "period": transform_period(value.get("period")),
                "payor": _refs(value.get("payor")),
                "class": [
                    {
                        "type": transform_codeable_concept(item.get("type")),
                        "value": item.get("value"),
                        "name": item.get("name"),
                    }
                    for item in value.get("class") or []
                ],
            }
        )
        return resource

    def narrative(self, resource):
        return narrative_summary(resource.get("subscriberId") or "Coverage", resource.get("status"))


class ClaimBuilder(FHIRResourceBuilder):
    resource_type = "Claim"
    input_model = ClaimInput

    def transform_to_fhir(self, value):
        items = [self._item(item) for item in value.get("item") or []]
        total = transform_money(value.get("total"))
        if total is None:
            nets = [item["net"] for item in items if item.get("net")]
            if nets:
                total = {"value": round(sum(n["value"] for n in nets), 2), "currency": nets[0]["currency"]}

        resource = self._base(value)
        resource.update(
            {
                "status": value.get("status"),
                "type": transform_codeable_concept(value.get("type")),
                "subType": transform_codeable_concept(value.get("subType")),
                "use": value.get("use"),
                "patient": transform_reference(value.get("patient")),
                "billablePeriod": transform_period(value.get("billablePeriod")),
                "created": value.get("created") or _now_iso(),
                "enterer": transform_reference(value.get("enterer")),
                "insurer": transform_reference(value.get("insurer")),
                "provider": transform_reference(value.get("provider")),
                "priority": transform_codeable_concept(value.get("priority")),
                "careTeam": [
                    {
                        "sequence": member["sequence"],
                        "provider": transform_reference(member.get("provider")),
                        "responsible": member.get("responsible"),
                        "role": transform_codeable_concept(member.get("role")),
                    }
                    for member in value.get("careTeam") or []
                ],
                "diagnosis": [
                    {
                        "sequence": diag["sequence"],
                        "diagnosisCodeableConcept": transform_codeable_concept(diag.get("diagnosisCodeableConcept")),
                        "diagnosisReference": transform_reference(diag.get("diagnosisReference")),
                        "type": _concepts(diag.get("type")),
                    }
                    for diag in value.get("diagnosis") or []
                ],
                "insurance": [
                    {
                        "sequence": ins["sequence"],
                        "focal": ins["focal"],
                        "coverage": transform_reference(ins.get("coverage")),
                        "preAuthRef": ins.get("preAuthRef"),
                    }
                    for ins in value.get("insurance") or []
                ],
                "item": items,
                "total": total,
            }
        )
        return resource

    def _item(self, item: dict[str, Any]) -> dict[str, Any]:
        quantity = transform_quantity(item.get("quantity"))
        unit_price = transform_money(item.get("unitPrice"))
        net = transform_money(item.get("net"))
        if net is None and unit_price is not None:
            count = (quantity or {}).get("value") or 1
            factor = item.get("factor") or 1
            net = {"value": round(unit_price["value"] * count * factor, 2), "currency": unit_price["currency"]}
        return {
            "sequence": item["sequence"],
            "careTeamSequence": item.get("careTeamSequence"),
            "diagnosisSequence": item.get("diagnosisSequence"),
            "category": transform_codeable_concept(item.get("category")),
            "productOrService": transform_codeable_concept(item.get("productOrService")),
            "servicedDate": normalize_fhir_date(item.get("servicedDate")),
            "servicedPeriod": transform_period(item.get("servicedPeriod")),
            "quantity": quantity,
            "unitPrice": unit_price,
            "factor": item.get("factor"),
            "net": net,
        }

    def narrative(self, resource):
        return narrative_summary(f"Claim ({resource.get('use')})", resource.get("status"))


class CoverageEligibilityRequestBuilder(FHIRResourceBuilder):
    resource_type = "CoverageEligibilityRequest"
    input_model = CoverageEligibilityRequestInput

    def transform_to_fhir(self, value):
        resource = self._base(value)
        resource.update(
            {
                "status": value.get("status"),
                "priority": transform_codeable_concept(value.get("priority")),
                "purpose": value.get("purpose"),
                "patient": transform_reference(value.get("patient")),
                "servicedDate": normalize_fhir_date(value.get("servicedDate")),
                "servicedPeriod": transform_period(value.get("servicedPeriod")),
                "created": value.get("created") or _now_iso(),
                "enterer": transform_reference(value.get("enterer")),
                "provider": transform_reference(value.get("provider")),
                "insurer": transform_reference(value.get("insurer")),
                "facility": transform_reference(value.get("facility")),
                "insurance": [
                    {
                        "focal": ins.get("focal"),
                        "coverage": transform_reference(ins.get("coverage")),
                        "businessArrangement": ins.get("businessArrangement"),
                    }
                    for ins in value.get("insurance") or []
                ],
                "item": [
                    {
                        "category": transform_codeable_concept(item.get("category")),
                        "productOrService": transform_codeable_concept(item.get("productOrService")),
                        "quantity": transform_quantity(item.get("quantity")),
                        "unitPrice": transform_money(item.get("unitPrice")),
                    }
                    for item in value.get("item") or []
                ],
            }
        )
        return resource

    def narrative(self, resource):
        return narrative_summary("Coverage eligibility request", ", ".join(resource.get("purpose") or []))


class InsurancePlanBuilder(FHIRResourceBuilder):
    resource_type = "InsurancePlan"
    input_model = InsurancePlanInput

    def transform_to_fhir(self, value):
        resource = self._base(value)
        resource.update(
            {
                "status": value.get("status"),
                "type": [transform_codeable_concept(value.get("type"))],
                "name": value.get("name"),
                "alias": value.get("alias"),
                "period": transform_period(value.get("period")),
                "ownedBy": transform_reference(value.get("ownedBy")),
                "administeredBy": transform_reference(value.get("administeredBy")),
                "coverageArea": _refs(value.get("coverageArea")),
                "contact": [
                    {
                        "purpose": transform_codeable_concept(contact.get("purpose")),
                        "name": transform_human_name(contact.get("name")),
                        "telecom": [transform_contact_point(t) for t in contact.get("telecom") or []],
                        "address": transform_address(contact.get("address")),
                    }
                    for contact in value.get("contact") or []
                ],
                "endpoint": _refs(value.get("endpoint")),
                "network": _refs(value.get("network")),
                "coverage": [self._coverage(coverage) for coverage in value.get("coverage") or []],
                "plan": [self._plan(plan) for plan in value.get("plan") or []],
            }
        )
        return resource

    def _coverage(self, coverage: dict[str, Any]) -> dict[str, Any]:
        return {
            "type": transform_codeable_concept(coverage.get("type")),
            "network": _refs(coverage.get("network")),
            "benefit": [
                {
                    "type": transform_codeable_concept(benefit.get("type")),
                    "requirement": benefit.get("requirement"),
                    "limit": [
                        {
                            "value": transform_quantity(limit.get("value")),
                            "code": transform_codeable_concept(limit.get("code")),
                        }
                        for limit in benefit.get("limit") or []
                    ],
                }
                for benefit in coverage.get("benefit") or []
            ],
        }

    def _plan(self, plan: dict[str, Any]) -> dict[str, Any]:
        return {
            "identifier": [transform_identifier(i) for i in plan.get("identifier") or []],
            "type": transform_codeable_concept(plan.get("type")),
            "coverageArea": _refs(plan.get("coverageArea")),
            "network": _refs(plan.get("network")),
            "generalCost": [
                {
                    "type": transform_codeable_concept(cost.get("type")),
                    "groupSize": cost.get("groupSize"),
                    "cost": transform_money(cost.get("cost")),
                    "comment": cost.get("comment"),
                }
                for cost in plan.get("generalCost") or []
            ],
        }

    def narrative(self, resource):
        return narrative_summary(resource.get("name"), resource.get("status"))


BUILDERS: dict[str, type[FHIRResourceBuilder]] = {
    "patient": PatientBuilder,
    "coverage": CoverageBuilder,
    "claim": ClaimBuilder,
    "coverage-eligibility-request": CoverageEligibilityRequestBuilder,
    "insurance-plan": InsurancePlanBuilder,
}


def get_builder(resource: str) -> FHIRResourceBuilder:
    try:
        return BUILDERS[resource]()
    except KeyError:
        raise ValueError(f"Unsupported FHIR resource: {resource}") from None
