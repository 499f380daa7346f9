from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PatientForm(StrictModel):
    name: str
    abha_id: str
    gender: Literal["male", "female", "other", "unknown"] = "unknown"
    birth_date: Optional[date] = None
    phone: Optional[str] = None


class OrganizationForm(StrictModel):
    name: str
    code: Optional[str] = None


class ServiceItemForm(StrictModel):
    code: str
    display: Optional[str] = None
    category: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    unit_price: Optional[float] = Field(default=None, ge=0)


class DiagnosisForm(StrictModel):
    code: str
    display: Optional[str] = None


class CoverageEligibilityForm(StrictModel):
    patient: PatientForm
    insurer: OrganizationForm
    provider: OrganizationForm
    policy_number: str
    plan_name: Optional[str] = None
    purpose: list[Literal["auth-requirements", "benefits", "discovery", "validation"]] = Field(
        default_factory=lambda: ["benefits"], min_length=1
    )
    serviced_date: Optional[date] = None
    items: list[ServiceItemForm] = Field(default_factory=list)


class ClaimForm(StrictModel):
    use: Literal["claim", "preauthorization"] = "claim"
    claim_type: Literal["institutional", "professional", "pharmacy", "oral", "vision"] = "institutional"
    patient: PatientForm
    insurer: OrganizationForm
    provider: OrganizationForm
    policy_number: str
    diagnoses: list[DiagnosisForm] = Field(min_length=1)
    items: list[ServiceItemForm] = Field(min_length=1)
    billable_start: Optional[date] = None
    billable_end: Optional[date] = None
    priority: Literal["stat", "normal", "deferred"] = "normal"

    @model_validator(mode="after")
    def _check_period(self):
        if self.billable_start and self.billable_end and self.billable_end < self.billable_start:
            raise ValueError("billable_end must not be before billable_start")
        return self


class BenefitForm(StrictModel):
    type: str
    allowed_amount: Optional[float] = None
    used_amount: Optional[float] = None


class EligibilityItemDecision(StrictModel):
    category: Optional[str] = None
    product_code: Optional[str] = None
    product_display: Optional[str] = None
    excluded: Optional[bool] = None
    authorization_required: Optional[bool] = None
    benefits: list[BenefitForm] = Field(default_factory=list)


class EligibilityDecisionForm(StrictModel):
    outcome: Literal["queued", "complete", "error", "partial"] = "complete"
    disposition: str = ""
    inforce: bool = True
    benefit_start: Optional[date] = None
    benefit_end: Optional[date] = None
    items: list[EligibilityItemDecision] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class EligibilityAdjudicationRequest(StrictModel):
    correlationId: str = Field(min_length=1)
    responseForm: EligibilityDecisionForm


class ItemAdjudicationForm(StrictModel):
    sequence: int = Field(ge=1)
    approved_amount: float = Field(ge=0)
    reason: Optional[str] = None


class ClaimAdjudicationRequest(StrictModel):
    correlationId: str = Field(min_length=1)
    decision: Literal["approved", "rejected"]
    outcome: Literal["queued", "complete", "error", "partial"] = "complete"
    disposition: str = ""
    items: list[ItemAdjudicationForm] = Field(default_factory=list)
    preauth_ref: Optional[str] = None
    payment_date: Optional[date] = None


class CommunicationRequestForm(StrictModel):
    correlationId: str = Field(min_length=1)
    message: str = Field(min_length=1)
    requested_documents: list[str] = Field(default_factory=list)
    priority: Literal["routine", "urgent", "asap", "stat"] = "routine"
    due_date: Optional[date] = None


class AttachmentForm(StrictModel):
    url: str
    title: str = "Supporting Document"
    content_type: str = "application/pdf"
    size: Optional[int] = None


class CommunicationResponseForm(StrictModel):
    communicationId: str = Field(min_length=1)
    message: str = "Response from provider with requested information."
    attachments: list[AttachmentForm] = Field(default_factory=list)


class InsurancePlanRequestForm(StrictModel):
    patient: PatientForm
    insurer: OrganizationForm
    policy_number: Optional[str] = None


class InsurancePlanRecord(StrictModel):
    planId: str
    companyId: str
    name: str
    description: Optional[str] = None
    premium: float = Field(ge=0)
    deductible: float = Field(ge=0)
    coveragePercentage: float = Field(ge=0, le=100)
    maxCoverageAmount: float = Field(ge=0)
    status: Literal["draft", "active", "retired", "unknown"] = "active"
    benefits: list[str] = Field(default_factory=list)


class InsurancePlanUpdate(StrictModel):
    name: Optional[str] = None
    description: Optional[str] = None
    premium: Optional[float] = Field(default=None, ge=0)
    deductible: Optional[float] = Field(default=None, ge=0)
    coveragePercentage: Optional[float] = Field(default=None, ge=0, le=100)
    maxCoverageAmount: Optional[float] = Field(default=None, ge=0)
    status: Optional[Literal["draft", "active", "retired", "unknown"]] = None
    benefits: Optional[list[str]] = None


class BeneficiaryRecord(StrictModel):
    abhaNumber: str = Field(pattern=r"^\d{2}-\d{4}-\d{4}-\d{4}$")
    name: str
    dob: date
    gender: Literal["Male", "Female", "Other"]


class PolicyRecord(StrictModel):
    coverageId: str
    patientAbhaNumber: str
    planId: str
    policyNumber: str
    subscriberId: str
    effectiveDate: date
    expirationDate: date
    isActive: bool = True
    copayAmount: float = Field(default=0, ge=0)
    yearToDateDeductible: float = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_dates(self):
        if self.expirationDate < self.effectiveDate:
            raise ValueError("expirationDate must not be before effectiveDate")
        return self
