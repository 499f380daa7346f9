from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pymongo import DESCENDING

from ..database import get_db, serialize_document
from ..models.transaction import CommunicationDirection, TransactionStatus, Workflow
from ..services.fhir_bundles import (
    build_claim_bundle,
    build_communication_bundle,
    build_coverage_eligibility_request_bundle,
    build_insurance_plan_request_bundle,
)
from ..services.fhir_mapping import map_communication
from ..services.hcx_client import HCXClient
from ..services.hcx_protocol import (
    API_CALL_ID,
    CORRELATION_ID,
    RESPONSE_COMPLETE,
    build_accepted_ack,
    build_protected_headers,
    response_headers,
)
from ..services.transaction_log import TransactionLogRepository
from ..timeutils import utcnow
from .exchange import (
    ProtocolError,
    forward,
    get_hcx_client,
    parse_form,
    read_envelope,
    session_token,
    transaction_listing,
)
from .schemas import ClaimForm, CommunicationResponseForm, CoverageEligibilityForm, InsurancePlanRequestForm

logger = logging.getLogger(__name__)

PARTICIPANT = "provider"

router = APIRouter(tags=["provider"])


def get_transaction_log(db=Depends(get_db)) -> TransactionLogRepository:
    return TransactionLogRepository(db, PARTICIPANT)


def _send(
    client: HCXClient,
    log: TransactionLogRepository,
    workflow: Workflow,
    entity_type: str,
    path: str,
    bundle: dict[str, Any],
    ben_abha_id: str,
) -> dict[str, Any]:
    headers = build_protected_headers(entity_type, ben_abha_id=ben_abha_id)
    correlation_id = headers[CORRELATION_ID]
    log.create(correlation_id, workflow, TransactionStatus.SENT, headers, bundle)

    result = forward(client, log, path, headers, bundle, TransactionStatus.SENT)
    if result["status"] == "error":
        raise HTTPException(status_code=502, detail=f"HCX gateway error: {result['error']}")
    return {
        "correlation_id": correlation_id,
        "api_call_id": headers[API_CALL_ID],
        "status": TransactionStatus.SENT.value,
        "response": result["response"],
        "bundle": bundle,
    }


def _complete(
    log: TransactionLogRepository,
    headers: dict[str, Any],
    bundle: dict[str, Any],
    entity_type: str,
) -> JSONResponse:
    correlation_id = headers[CORRELATION_ID]
    updated = log.update_by_correlation_id(
        correlation_id, status=TransactionStatus.COMPLETE, responseFHIR=bundle
    )
    if updated is None:
        raise ProtocolError(404, headers, "UNKNOWN_CORRELATION_ID", f"No transaction for {correlation_id}", entity_type)
    logger.info("%s response stored correlation_id=%s", entity_type, correlation_id)
    return JSONResponse(status_code=202, content=build_accepted_ack(headers, entity_type))


@router.get("/")
def root():
    return {"message": "HCX Provider Stub", "status": "running"}


# Coverage eligibility


@router.post("/hcx/v1/coverageeligibility/check")
def check_coverage_eligibility(
    payload: dict = Body(...),
    log: TransactionLogRepository = Depends(get_transaction_log),
    client: HCXClient = Depends(get_hcx_client),
):
    form = parse_form(CoverageEligibilityForm, payload)
    bundle = build_coverage_eligibility_request_bundle(form.model_dump(mode="json"))
    return _send(
        client,
        log,
        Workflow.COVERAGE_ELIGIBILITY,
        "coverageeligibility",
        "coverageeligibility/check",
        bundle,
        form.patient.abha_id,
    )


@router.post("/hcx/v1/coverageeligibility/on_check")
async def on_check_coverage_eligibility(
    request: Request,
    log: TransactionLogRepository = Depends(get_transaction_log),
):
    headers, bundle = await read_envelope(request, "coverageeligibility")
    return _complete(log, headers, bundle, "coverageeligibility")


# Claims and pre-authorisation


@router.post("/hcx/v1/claim/submit")
def submit_claim(
    payload: dict = Body(...),
    log: TransactionLogRepository = Depends(get_transaction_log),
    client: HCXClient = Depends(get_hcx_client),
):
    form = parse_form(ClaimForm, payload)
    preauth = form.use == "preauthorization"
    bundle = build_claim_bundle(form.model_dump(mode="json"))
    return _send(
        client,
        log,
        Workflow.PREAUTH if preauth else Workflow.CLAIM,
        "preauth" if preauth else "claim",
        "claim/submit",
        bundle,
        form.patient.abha_id,
    )


@router.post("/hcx/v1/claim/on_submit")
async def on_submit_claim(
    request: Request,
    log: TransactionLogRepository = Depends(get_transaction_log),
):
    headers, bundle = await read_envelope(request, "claim")
    return _complete(log, headers, bundle, "claim")


# Insurance plan discovery


@router.post("/hcx/v1/insuranceplan/request")
def request_insurance_plans(
    payload: dict = Body(...),
    log: TransactionLogRepository = Depends(get_transaction_log),
    client: HCXClient = Depends(get_hcx_client),
):
    form = parse_form(InsurancePlanRequestForm, payload)
    bundle = build_insurance_plan_request_bundle(form.model_dump(mode="json"))
    return _send(
        client,
        log,
        Workflow.INSURANCE_PLAN,
        "insuranceplan",
        "insuranceplan/request",
        bundle,
        form.patient.abha_id,
    )


@router.post("/hcx/v1/insuranceplan/on_request")
async def on_request_insurance_plans(
    request: Request,
    log: TransactionLogRepository = Depends(get_transaction_log),
):
    headers, bundle = await read_envelope(request, "insuranceplan")
    return _complete(log, headers, bundle, "insuranceplan")


# Communications


@router.post("/hcx/v1/communication/request")
async def receive_communication_request(
    request: Request,
    db=Depends(get_db),
    log: TransactionLogRepository = Depends(get_transaction_log),
):
    headers, bundle = await read_envelope(request, "communication")
    try:
        summary = map_communication(bundle)
    except ValueError as exc:
        raise ProtocolError(400, headers, "INVALID_PAYLOAD", str(exc), "communication")

    now = utcnow()
    db.communications.replace_one(
        {"participant": PARTICIPANT, "communicationId": summary["communicationId"]},
        {
            **summary,
            "participant": PARTICIPANT,
            "direction": CommunicationDirection.INBOUND.value,
            "correlationId": headers[CORRELATION_ID],
            "protectedHeaders": headers,
            "requestFHIR": bundle,
            "responseFHIR": None,
            "status": TransactionStatus.PENDING.value,
            "createdAt": now,
            "updatedAt": now,
        },
        upsert=True,
    )
    log.upsert(headers[CORRELATION_ID], Workflow.COMMUNICATION, TransactionStatus.RECEIVED, headers, bundle)
    logger.info("Communication request %s queued in inbox", summary["communicationId"])
    return JSONResponse(status_code=202, content=build_accepted_ack(headers, "communication"))


@router.get("/hcx/v1/communication/inbox")
def communication_inbox(
    status: Optional[str] = None,
    claim_id: Optional[str] = None,
    limit: int = 100,
    db=Depends(get_db),
):
    query: dict[str, Any] = {"participant": PARTICIPANT, "direction": CommunicationDirection.INBOUND.value}
    if status:
        query["status"] = status
    if claim_id:
        query["claimId"] = claim_id
    docs = list(db.communications.find(query).sort("createdAt", DESCENDING).limit(limit))
    return {"communications": serialize_document(docs), "total": len(docs)}


@router.post("/hcx/v1/communication/respond")
def respond_to_communication(
    payload: dict = Body(...),
    db=Depends(get_db),
    log: TransactionLogRepository = Depends(get_transaction_log),
    client: HCXClient = Depends(get_hcx_client),
):
    form = parse_form(CommunicationResponseForm, payload)
    item = db.communications.find_one({"participant": PARTICIPANT, "communicationId": form.communicationId})
    if item is None:
        raise HTTPException(status_code=404, detail="Communication request not found")

    bundle = build_communication_bundle(item["requestFHIR"], form.model_dump(mode="json"))
    headers = response_headers(item.get("protectedHeaders") or {}, RESPONSE_COMPLETE)
    correlation_id = headers[CORRELATION_ID]
    if log.get(correlation_id) is None:
        log.create(correlation_id, Workflow.COMMUNICATION, TransactionStatus.RECEIVED, item.get("protectedHeaders"), item["requestFHIR"])
    log.update_by_correlation_id(correlation_id, responseFHIR=bundle)

    result = forward(client, log, "communication/on_request", headers, bundle, TransactionStatus.COMPLETE)
    if result["status"] == "error":
        raise HTTPException(status_code=502, detail=f"HCX gateway error: {result['error']}")

    db.communications.update_one(
        {"_id": item["_id"]},
        {"$set": {"status": "responded", "responseFHIR": bundle, "updatedAt": utcnow()}},
    )
    return {
        "communicationId": map_communication(bundle)["communicationId"],
        "correlation_id": correlation_id,
        "status": "responded",
        "response": result["response"],
        "bundle": bundle,
    }


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
