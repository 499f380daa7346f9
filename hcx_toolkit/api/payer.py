from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pymongo import DESCENDING

from ..config import get_settings
from ..database import get_db, serialize_document
from ..models.fhir import Bundle
from ..models.transaction import CommunicationDirection, TransactionStatus, Workflow
from ..services.fhir_bundles import (
    build_claim_response_bundle,
    build_communication_request_bundle,
    build_coverage_eligibility_response_bundle,
    build_insurance_plan_bundle,
    insurance_plan_from_record,
)
from ..services.fhir_mapping import map_claim, map_communication, map_coverage_eligibility_request
from ..services.hcx_client import HCXClient
from ..services.hcx_protocol import (
    BEN_ABHA_ID,
    CORRELATION_ID,
    RESPONSE_COMPLETE,
    SENDER_CODE,
    build_accepted_ack,
    build_protected_headers,
    response_headers,
)
from ..services.transaction_log import TransactionLogRepository
from ..timeutils import unix_timestamp, utcnow
from .exchange import (
    ProtocolError,
    forward,
    get_hcx_client,
    parse_form,
    read_envelope,
    session_token,
    transaction_listing,
)
from .schemas import ClaimAdjudicationRequest, CommunicationRequestForm, EligibilityAdjudicationRequest

logger = logging.getLogger(__name__)

PARTICIPANT = "payer"

router = APIRouter(tags=["payer"])


def get_transaction_log(db=Depends(get_db)) -> TransactionLogRepository:
    return TransactionLogRepository(db, PARTICIPANT)


def _accepted(headers: dict[str, Any], entity_type: str) -> JSONResponse:
    return JSONResponse(status_code=202, content=build_accepted_ack(headers, entity_type))


def _store_inbound(db, collection: str, doc: dict[str, Any]) -> None:
    db[collection].replace_one({"correlationId": doc["correlationId"]}, doc, upsert=True)


# Coverage eligibility


@router.post("/hcx/v1/coverageeligibility/check")
async def receive_coverage_eligibility(
    request: Request,
    db=Depends(get_db),
    log: TransactionLogRepository = Depends(get_transaction_log),
):
    headers, bundle = await read_envelope(request, "coverageeligibility")
    try:
        doc = map_coverage_eligibility_request(bundle)
    except ValueError as exc:
        raise ProtocolError(400, headers, "INVALID_PAYLOAD", str(exc), "coverageeligibility")

    correlation_id = headers[CORRELATION_ID]
    now = utcnow()
    doc.update(
        correlationId=correlation_id,
        protectedHeaders=headers,
        requestFHIR=bundle,
        responseFHIR=None,
        status=TransactionStatus.PENDING.value,
        createdAt=now,
        updatedAt=now,
    )
    _store_inbound(db, "coverage_eligibility_requests", doc)
    log.upsert(correlation_id, Workflow.COVERAGE_ELIGIBILITY, TransactionStatus.RECEIVED, headers, bundle)
    logger.info("Coverage eligibility request received correlation_id=%s", correlation_id)
    return _accepted(headers, "coverageeligibility")


@router.get("/hcx/v1/coverageeligibility/requests")
def list_coverage_eligibility_requests(status: Optional[str] = None, limit: int = 100, db=Depends(get_db)):
    query = {"status": status} if status else {}
    docs = list(db.coverage_eligibility_requests.find(query).sort("createdAt", DESCENDING).limit(limit))
    return {"requests": serialize_document(docs), "total": len(docs)}


@router.post("/hcx/v1/coverageeligibility/on_check")
def respond_coverage_eligibility(
    payload: dict = Body(...),
    db=Depends(get_db),
    log: TransactionLogRepository = Depends(get_transaction_log),
    client: HCXClient = Depends(get_hcx_client),
):
    form = parse_form(EligibilityAdjudicationRequest, payload)
    stored = db.coverage_eligibility_requests.find_one({"correlationId": form.correlationId})
    if stored is None:
        raise HTTPException(status_code=404, detail=f"No coverage eligibility request for {form.correlationId}")

    try:
        bundle = build_coverage_eligibility_response_bundle(
            stored["requestFHIR"], form.responseForm.model_dump(mode="json")
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    db.coverage_eligibility_requests.update_one(
        {"_id": stored["_id"]},
        {"$set": {"responseFHIR": bundle, "status": TransactionStatus.COMPLETE.value, "updatedAt": utcnow()}},
    )
    log.update_by_correlation_id(form.correlationId, responseFHIR=bundle)

    headers = response_headers(stored.get("protectedHeaders") or {}, RESPONSE_COMPLETE)
    forward_status = forward(
        client, log, "coverageeligibility/on_check", headers, bundle, TransactionStatus.COMPLETE
    )
    return {"correlationId": form.correlationId, "bundle": bundle, "forward": forward_status}


# Claims and pre-authorisation


@router.post("/hcx/v1/claim/submit")
async def receive_claim(
    request: Request,
    db=Depends(get_db),
    log: TransactionLogRepository = Depends(get_transaction_log),
):
    headers, bundle = await read_envelope(request, "claim")
    try:
        doc = map_claim(bundle)
    except ValueError as exc:
        raise ProtocolError(400, headers, "INVALID_PAYLOAD", str(exc), "claim")

    correlation_id = headers[CORRELATION_ID]
    workflow = Workflow.PREAUTH if doc["use"] == "preauthorization" else Workflow.CLAIM
    now = utcnow()
    doc.update(
        correlationId=correlation_id,
        workflow=workflow.value,
        protectedHeaders=headers,
        requestFHIR=bundle,
        responseFHIR=None,
        status=TransactionStatus.PENDING.value,
        createdAt=now,
        updatedAt=now,
    )
    _store_inbound(db, "claims", doc)
    log.upsert(correlation_id, workflow, TransactionStatus.RECEIVED, headers, bundle)
    logger.info("%s received correlation_id=%s", workflow.value, correlation_id)
    return _accepted(headers, "claim")


@router.get("/hcx/v1/claim/requests")
@router.get("/api/claims")
def list_claims(
    status: Optional[str] = None,
    use: Optional[str] = None,
    limit: int = 100,
    db=Depends(get_db),
):
    query: dict[str, Any] = {}
    if status:
        query["status"] = status
    if use:
        query["use"] = use
    docs = list(db.claims.find(query).sort("createdAt", DESCENDING).limit(limit))
    return {"claims": serialize_document(docs), "total": len(docs)}


@router.post("/hcx/v1/claim/adjudicate")
def adjudicate_claim(
    payload: dict = Body(...),
    db=Depends(get_db),
    log: TransactionLogRepository = Depends(get_transaction_log),
    client: HCXClient = Depends(get_hcx_client),
):
    form = parse_form(ClaimAdjudicationRequest, payload)
    claim = db.claims.find_one({"correlationId": form.correlationId})
    if claim is None:
        raise HTTPException(status_code=404, detail=f"No claim for {form.correlationId}")

    try:
        bundle = build_claim_response_bundle(claim["requestFHIR"], form.model_dump(mode="json"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    decision = TransactionStatus(form.decision)
    db.claims.update_one(
        {"_id": claim["_id"]},
        {
            "$set": {
                "responseFHIR": bundle,
                "status": decision.value,
                "adjudication": form.model_dump(mode="json"),
                "updatedAt": utcnow(),
            }
        },
    )
    log.update_by_correlation_id(form.correlationId, responseFHIR=bundle)

    headers = response_headers(claim.get("protectedHeaders") or {}, RESPONSE_COMPLETE)
    forward_status = forward(client, log, "claim/on_submit", headers, bundle, decision)
    return {"correlationId": form.correlationId, "status": decision.value, "bundle": bundle, "forward": forward_status}


# Communications


@router.post("/hcx/v1/communication/request")
def request_communication(
    payload: dict = Body(...),
    db=Depends(get_db),
    log: TransactionLogRepository = Depends(get_transaction_log),
    client: HCXClient = Depends(get_hcx_client),
):
    """
    Ask the provider for more information about a stored claim.
    """
    form = parse_form(CommunicationRequestForm, payload)
    claim = db.claims.find_one({"correlationId": form.correlationId})
    if claim is None:
        raise HTTPException(status_code=404, detail=f"No claim for {form.correlationId}")

    try:
        bundle = build_communication_request_bundle(claim["requestFHIR"], form.model_dump(mode="json"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    settings = get_settings()
    claim_headers = claim.get("protectedHeaders") or {}
    headers = build_protected_headers(
        "communication",
        sender_code=settings.PAYER_CODE,
        recipient_code=claim_headers.get(SENDER_CODE) or settings.PROVIDER_CODE,
        ben_abha_id=claim_headers.get(BEN_ABHA_ID),
    )
    correlation_id = headers[CORRELATION_ID]
    summary = map_communication(bundle)
    now = utcnow()
    db.communications.insert_one(
        {
            **summary,
            "participant": PARTICIPANT,
            "direction": CommunicationDirection.OUTBOUND.value,
            "claimId": claim.get("claimId") or summary["claimId"],
            "claimCorrelationId": form.correlationId,
            "correlationId": correlation_id,
            "protectedHeaders": headers,
            "requestFHIR": bundle,
            "status": TransactionStatus.SENT.value,
            "createdAt": now,
            "updatedAt": now,
        }
    )
    log.create(correlation_id, Workflow.COMMUNICATION, TransactionStatus.SENT, headers, bundle)
    db.claims.update_one(
        {"_id": claim["_id"]},
        {"$set": {"status": TransactionStatus.QUERIED.value, "updatedAt": now}},
    )

    forward_status = forward(client, log, "communication/request", headers, bundle, TransactionStatus.SENT)
    if forward_status["status"] == "error":
        db.communications.update_one(
            {"participant": PARTICIPANT, "communicationId": summary["communicationId"]},
            {"$set": {"status": TransactionStatus.ERROR.value}},
        )
    return {
        "communicationId": summary["communicationId"],
        "correlationId": correlation_id,
        "bundle": bundle,
        "forward": forward_status,
    }


@router.post("/hcx/v1/communication/on_request")
async def receive_communication_response(
    request: Request,
    db=Depends(get_db),
    log: TransactionLogRepository = Depends(get_transaction_log),
):
    headers, bundle = await read_envelope(request, "communication")
    try:
        summary = map_communication(bundle)
    except ValueError as exc:
        raise ProtocolError(400, headers, "INVALID_PAYLOAD", str(exc), "communication")

    original = None
    if summary["inResponseTo"]:
        original = db.communications.find_one(
            {"participant": PARTICIPANT, "communicationId": summary["inResponseTo"]}
        )
    now = utcnow()
    db.communications.replace_one(
        {"participant": PARTICIPANT, "communicationId": summary["communicationId"]},
        {
            **summary,
            "participant": PARTICIPANT,
            "direction": CommunicationDirection.INBOUND.value,
            "claimId": (original or {}).get("claimId") or summary["claimId"],
            "claimCorrelationId": (original or {}).get("claimCorrelationId"),
            "correlationId": headers[CORRELATION_ID],
            "protectedHeaders": headers,
            "requestFHIR": bundle,
            "status": TransactionStatus.RECEIVED.value,
            "createdAt": now,
            "updatedAt": now,
        },
        upsert=True,
    )
    if original is not None:
        db.communications.update_one(
            {"_id": original["_id"]},
            {"$set": {"status": TransactionStatus.COMPLETE.value, "updatedAt": now}},
        )
    if log.update_by_correlation_id(headers[CORRELATION_ID], status=TransactionStatus.COMPLETE, responseFHIR=bundle) is None:
        log.upsert(headers[CORRELATION_ID], Workflow.COMMUNICATION, TransactionStatus.RECEIVED, headers, bundle)
    return _accepted(headers, "communication")


@router.get("/api/communications")
def list_communications(
    claim_id: Optional[str] = None,
    direction: Optional[CommunicationDirection] = None,
    limit: int = 100,
    db=Depends(get_db),
):
    query: dict[str, Any] = {"participant": PARTICIPANT}
    if claim_id:
        query["claimId"] = claim_id
    if direction:
        query["direction"] = direction.value
    docs = list(db.communications.find(query).sort("createdAt", DESCENDING).limit(limit))
    return {"communications": serialize_document(docs), "total": len(docs)}


@router.get("/api/communications/{communication_id}")
def get_communication(communication_id: str, db=Depends(get_db)):
    doc = db.communications.find_one({"participant": PARTICIPANT, "communicationId": communication_id})
    if doc is None:
        raise HTTPException(status_code=404, detail="Communication not found")
    return serialize_document(doc)


@router.get("/hcx/v1/communication/claim/{claim_id}")
def communications_for_claim(claim_id: str, db=Depends(get_db)):
    docs = list(
        db.communications.find({"participant": PARTICIPANT, "claimId": claim_id}).sort("createdAt", DESCENDING)
    )
    return {"claimId": claim_id, "communications": serialize_document(docs), "total": len(docs)}


@router.get("/hcx/v1/communication/thread/{communication_id}")
def communication_thread(communication_id: str, db=Depends(get_db)):
    """
    A request and every reply to it, oldest first. Works from either end.
    """
    doc = db.communications.find_one({"participant": PARTICIPANT, "communicationId": communication_id})
    if doc is None:
        raise HTTPException(status_code=404, detail="Communication not found")

    root_id = doc.get("inResponseTo") or doc["communicationId"]
    docs = list(
        db.communications.find(
            {
                "participant": PARTICIPANT,
                "$or": [{"communicationId": root_id}, {"inResponseTo": root_id}],
            }
        ).sort("createdAt", 1)
    )
    return {"threadId": root_id, "communications": serialize_document(docs), "total": len(docs)}


# Insurance plan discovery


@router.post("/hcx/v1/insuranceplan/request")
async def receive_insurance_plan_request(
    request: Request,
    db=Depends(get_db),
    log: TransactionLogRepository = Depends(get_transaction_log),
    client: HCXClient = Depends(get_hcx_client),
):
    """
    Answer a beneficiary's plan query from the registry and send the plans back.
    """
    headers, bundle = await read_envelope(request, "insuranceplan")
    correlation_id = headers[CORRELATION_ID]
    patient = Bundle.model_validate(bundle).first("Patient")
    identifiers = (patient or {}).get("identifier") or []
    if not isinstance(identifiers, list) or not all(isinstance(item, dict) for item in identifiers):
        raise ProtocolError(
            400, headers, "INVALID_PAYLOAD", "Patient.identifier must be a list of objects", "insuranceplan"
        )
    abha_number = identifiers[0].get("value") if identifiers else headers.get(BEN_ABHA_ID)
    if not abha_number:
        raise ProtocolError(400, headers, "INVALID_PAYLOAD", "No beneficiary identifier in request", "insuranceplan")

    log.upsert(correlation_id, Workflow.INSURANCE_PLAN, TransactionStatus.RECEIVED, headers, bundle)

    plans = []
    for coverage in db.patient_coverage.find({"patientAbhaNumber": abha_number}):
        plan = db.insurance_plans.find_one({"_id": coverage.get("planId")}) or db.insurance_plans.find_one(
            {"planId": coverage.get("originalPlanId")}
        )
        if plan is None:
            continue
        company = db.insurance_companies.find_one({"companyId": plan.get("companyId")})
        plans.append(insurance_plan_from_record(plan, coverage.get("policyNumber"), company))
    logger.info("Found %d plan(s) for insurance plan request correlation_id=%s", len(plans), correlation_id)

    response_bundle = build_insurance_plan_bundle(plans)
    log.update_by_correlation_id(correlation_id, responseFHIR=response_bundle)
    forward(
        client,
        log,
        "insuranceplan/on_request",
        response_headers(headers, RESPONSE_COMPLETE),
        response_bundle,
        TransactionStatus.COMPLETE,
    )
    return _accepted(headers, "insuranceplan")


# Protocol errors


@router.post("/v1/error")
async def receive_error(request: Request):
    try:
        body = await request.json()
    except ValueError:
        body = {}
    headers = body.get("protected") if isinstance(body, dict) and isinstance(body.get("protected"), dict) else {}
    if not headers and isinstance(body, dict):
        headers = body
    logger.warning(
        "HCX error notification correlation_id=%s details=%s",
        headers.get(CORRELATION_ID),
        headers.get("x-hcx-error_details"),
    )
    return JSONResponse(status_code=202, content=build_accepted_ack(headers, "error"))


@router.post("/v1/error/response")
async def receive_error_response(request: Request):
    try:
        body = await request.json()
    except ValueError:
        body = {}
    headers = body if isinstance(body, dict) else {}
    return JSONResponse(
        status_code=202,
        content={
            "type": "ProtocolResponse",
            "status": "ACKNOWLEDGED",
            "timestamp": unix_timestamp(),
            "api_call_id": headers.get("x-hcx-api_call_id") or str(uuid.uuid4()),
            "correlation_id": headers.get(CORRELATION_ID, ""),
        },
    )


# Transactions and session


@router.get("/hcx/v1/transactions")
def list_transactions(
    workflow: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 100,
    log: TransactionLogRepository = Depends(get_transaction_log),
):
    return transaction_listing(log, workflow, status, limit)


@router.post("/hcx/v1/session")
def create_session(client: HCXClient = Depends(get_hcx_client)):
    return session_token(client)
