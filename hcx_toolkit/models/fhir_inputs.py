"""Input schemas accepted by the FHIR builder service.

Datatype slots accept either a plain string shorthand or the structured
form, the way the builder transforms expect them.
"""
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class InputModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class CodingInput(InputModel):
    system: Optional[str] = None
    code: Optional[str] = None
    display: Optional[str] = None
    version: Optional[str] = None


class CodeableConceptInput(InputModel):
    system: Optional[str] = None
    code: Optional[str] = None
    display: Optional[str] = None
    text: Optional[str] = None
    coding: Optional[list[CodingInput]] = None


Codeable = Union[str, CodeableConceptInput]


class ReferenceInput(InputModel):
    reference: Optional[str] = None
    type: Optional[str] = None
    display: Optional[str] = None
    identifier: Optional[dict] = None


Ref = Union[str, ReferenceInput]


class PeriodInput(InputModel):
    start: Optional[str] = None
    end: Optional[str] = None


class IdentifierInput(InputModel):
    use: Optional[Literal["usual", "official", "temp", "secondary", "old"]] = None
    type: Optional[Codeable] = None
    system: Optional[str] = None
    value: str
    period: Optional[PeriodInput] = None


class MoneyInput(InputModel):
    value: Union[int, float]
    currency: Optional[str] = None


class QuantityInput(InputModel):
    value: Optional[Union[int, float]] = None
    unit: Optional[str] = None
    system: Optional[str] = None
    code: Optional[str] = None


class HumanNameInput(InputModel):
    use: Optional[str] = None
    text: Optional[str] = None
    family: Optional[str] = None
    given: Optional[Union[str, list[str]]] = None
    prefix: Optional[Union[str, list[str]]] = None
    suffix: Optional[Union[str, list[str]]] = None


class ContactPointInput(InputModel):
    system: Optional[Literal["phone", "fax", "email", "pager", "url", "sms", "other"]] = None
    value: str
    use: Optional[Literal["home", "work", "temp", "old", "mobile"]] = None
    rank: Optional[int] = None


class AddressInput(InputModel):
    use: Optional[str] = None
    type: Optional[str] = None
    text: Optional[str] = None
    line: Optional[list[str]] = None
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = None


class PatientInput(InputModel):
    resourceType: Literal["Patient"]
    identifier: list[IdentifierInput] = Field(min_length=1)
    active: Optional[bool] = None
    name: Optional[list[HumanNameInput]] = None
    telecom: Optional[list[ContactPointInput]] = None
    gender: Optional[Literal["male", "female", "other", "unknown"]] = None
    birthDate: Optional[str] = None
    address: Optional[list[AddressInput]] = None
    language: Optional[str] = None


class CoverageClassInput(InputModel):
    type: Codeable
    value: str
    name: Optional[str] = None


class CoverageInput(InputModel):
    resourceType: Literal["Coverage"] = "Coverage"
    identifier: Optional[list[IdentifierInput]] = None
    status: Literal["active", "cancelled", "draft", "entered-in-error"]
    type: Optional[Codeable] = None
    subscriber: Optional[Ref] = None
    subscriberId: Optional[str] = None
    beneficiary: Ref
    relationship: Optional[Codeable] = None
    period: Optional[PeriodInput] = None
    payor: list[Ref] = Field(min_length=1)
    class_: Optional[list[CoverageClassInput]] = Field(default=None, alias="class")
    language: Optional[str] = None


class DiagnosisInput(InputModel):
    sequence: int = Field(ge=1)
    diagnosisCodeableConcept: Optional[Codeable] = None
    diagnosisReference: Optional[Ref] = None
    type: list[Codeable] = Field(min_length=1)


class ClaimInsuranceInput(InputModel):
    sequence: int = Field(ge=1)
    focal: bool
    coverage: Ref
    preAuthRef: Optional[list[str]] = None


class CareTeamInput(InputModel):
    sequence: int = Field(ge=1)
    provider: Ref
    responsible: Optional[bool] = None
    role: Optional[Codeable] = None


class ClaimItemInput(InputModel):
    sequence: int = Field(ge=1)
    careTeamSequence: Optional[list[int]] = None
    diagnosisSequence: Optional[list[int]] = None
    category: Optional[Codeable] = None
    productOrService: Codeable
    servicedDate: Optional[str] = None
    servicedPeriod: Optional[PeriodInput] = None
    quantity: Optional[QuantityInput] = None
    unitPrice: Optional[MoneyInput] = None
    factor: Optional[float] = None
    net: Optional[MoneyInput] = None


class ClaimInput(InputModel):
    resourceType: Literal["Claim"]
    identifier: list[IdentifierInput] = Field(min_length=1)
    status: Literal["active", "cancelled", "draft", "entered-in-error"]
    type: Codeable
    subType: Optional[Codeable] = None
    use: Literal["claim", "preauthorization", "predetermination"]
    patient: Ref
    billablePeriod: Optional[PeriodInput] = None
    created: Optional[str] = None
    enterer: Optional[Ref] = None
    insurer: Ref
    provider: Ref
    priority: Codeable
    careTeam: Optional[list[CareTeamInput]] = None
    diagnosis: list[DiagnosisInput] = Field(min_length=1)
    insurance: list[ClaimInsuranceInput] = Field(min_length=1)
    item: list[ClaimItemInput] = Field(min_length=1)
    total: Optional[MoneyInput] = None
    language: Optional[str] = None


class EligibilityInsuranceInput(InputModel):
    focal: Optional[bool] = None
    coverage: Ref
    businessArrangement: Optional[str] = None


class EligibilityItemInput(InputModel):
    category: Optional[Codeable] = None
    productOrService: Optional[Codeable] = None
    quantity: Optional[QuantityInput] = None
    unitPrice: Optional[MoneyInput] = None


class CoverageEligibilityRequestInput(InputModel):
    resourceType: Literal["CoverageEligibilityRequest"] = "CoverageEligibilityRequest"
    identifier: list[IdentifierInput] = Field(min_length=1)
    status: Literal["active", "cancelled", "draft", "entered-in-error"]
    priority: Codeable
    purpose: list[Literal["auth-requirements", "benefits", "discovery", "validation"]] = Field(min_length=1)
    patient: Ref
    servicedDate: Optional[str] = None
    servicedPeriod: Optional[PeriodInput] = None
    created: Optional[str] = None
    enterer: Ref
    provider: Ref
    insurer: Ref
    facility: Ref
    insurance: list[EligibilityInsuranceInput] = Field(min_length=1)
    item: Optional[list[EligibilityItemInput]] = None
    language: Optional[str] = None


class BenefitLimitInput(InputModel):
    value: Optional[QuantityInput] = None
    code: Optional[Codeable] = None


class BenefitInput(InputModel):
    type: Codeable
    requirement: Optional[str] = None
    limit: Optional[list[BenefitLimitInput]] = None


class PlanCoverageInput(InputModel):
    type: Codeable
    network: Optional[list[Ref]] = None
    benefit: list[BenefitInput] = Field(min_length=1)


class PlanCostInput(InputModel):
    type: Optional[Codeable] = None
    groupSize: Optional[int] = None
    cost: Optional[MoneyInput] = None
    comment: Optional[str] = None


class PlanInput(InputModel):
    identifier: Optional[list[IdentifierInput]] = None
    type: Optional[Codeable] = None
    coverageArea: Optional[list[Ref]] = None
    network: Optional[list[Ref]] = None
    generalCost: Optional[list[PlanCostInput]] = None


class InsurancePlanContactInput(InputModel):
    purpose: Optional[Codeable] = None
    name: Optional[HumanNameInput] = None
    telecom: Optional[list[ContactPointInput]] = None
    address: Optional[AddressInput] = None


class InsurancePlanInput(InputModel):
    resourceType: Literal["InsurancePlan"] = "InsurancePlan"
    identifier: list[IdentifierInput] = Field(min_length=1, max_length=1)
    status: Literal["draft", "active", "retired", "unknown"]
    type: Codeable
    name: str
    alias: Optional[list[str]] = None
    period: PeriodInput
    ownedBy: Ref
    administeredBy: Optional[Ref] = None
    coverageArea: Optional[list[Ref]] = None
    contact: Optional[list[InsurancePlanContactInput]] = None
    endpoint: Optional[list[Ref]] = None
    network: Optional[list[Ref]] = None
    coverage: list[PlanCoverageInput] = Field(min_length=1)
    plan: Optional[list[PlanInput]] = None
    language: Optional[str] = None
