from .fhir import (
    Bundle,
    BundleEntry,
    Claim,
    ClaimResponse,
    CodeableConcept,
    Coding,
    Communication,
    CommunicationRequest,
    CoverageEligibilityRequest,
    CoverageEligibilityResponse,
    FHIRModel,
    Meta,
    Reference,
    Resource,
)
from .transaction import CommunicationDirection, TransactionStatus, Workflow

__all__ = [
    "Bundle",
    "BundleEntry",
    "Claim",
    "ClaimResponse",
    "CodeableConcept",
    "Coding",
    "Communication",
    "CommunicationRequest",
    "CoverageEligibilityRequest",
    "CoverageEligibilityResponse",
    "FHIRModel",
    "Meta",
    "Reference",
    "Resource",
    "CommunicationDirection",
    "TransactionStatus",
    "Workflow",
]
