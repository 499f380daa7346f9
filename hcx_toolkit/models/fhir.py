"""Passive FHIR R4 shapes.

Only the fields the toolkit reads are declared; every other element passes
through untouched (``extra="allow"``) so a bundle survives a validate/dump
round trip unchanged.
"""
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class FHIRModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_fhir(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Coding(FHIRModel):
    system: Optional[str] = None
    code: Optional[str] = None
    display: Optional[str] = None


class CodeableConcept(FHIRModel):
    coding: Optional[list[Coding]] = None
    text: Optional[str] = None


class Reference(FHIRModel):
    reference: Optional[str] = None
    display: Optional[str] = None


class Meta(FHIRModel):
    versionId: Optional[str] = None
    lastUpdated: Optional[str] = None
    profile: Optional[list[str]] = None


class Resource(FHIRModel):
    resourceType: str
    id: Optional[str] = None
    meta: Optional[Meta] = None


class BundleEntry(FHIRModel):
    fullUrl: Optional[str] = None
    resource: Optional[dict[str, Any]] = None


class Bundle(FHIRModel):
    resourceType: Literal["Bundle"] = "Bundle"
    id: Optional[str] = None
    meta: Optional[Meta] = None
    type: Optional[str] = None
    timestamp: Optional[str] = None
    entry: list[BundleEntry] = Field(default_factory=list)

    def resources(self, resource_type: str | None = None) -> list[dict[str, Any]]:
        found = []
        for entry in self.entry:
            resource = entry.resource
            if not isinstance(resource, dict):
                continue
            if resource_type is None or resource.get("resourceType") == resource_type:
                found.append(resource)
        return found

    def first(self, resource_type: str) -> dict[str, Any] | None:
        matches = self.resources(resource_type)
        return matches[0] if matches else None


class Claim(Resource):
    resourceType: Literal["Claim"]
    status: Optional[str] = None
    use: Optional[str] = None
    patient: Optional[Reference] = None
    insurer: Optional[Reference] = None
    provider: Optional[Reference] = None


class ClaimResponse(Resource):
    resourceType: Literal["ClaimResponse"]
    outcome: Optional[str] = None
    disposition: Optional[str] = None


class Communication(Resource):
    resourceType: Literal["Communication"]
    status: Optional[str] = None


class CommunicationRequest(Resource):
    resourceType: Literal["CommunicationRequest"]
    status: Optional[str] = None


class CoverageEligibilityRequest(Resource):
    resourceType: Literal["CoverageEligibilityRequest"]
    status: Optional[str] = None
    purpose: Optional[list[str]] = None
    patient: Optional[Reference] = None
    insurer: Optional[Reference] = None


class CoverageEligibilityResponse(Resource):
    resourceType: Literal["CoverageEligibilityResponse"]
    outcome: Optional[str] = None
    disposition: Optional[str] = None
