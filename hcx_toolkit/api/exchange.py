"""Pieces shared by the payer and provider routers: envelopes, forwarding, listings."""
from __future__ import annotations

import logging
from typing import Any

import requests
from fastapi import HTTPException, Request
from pydantic import BaseModel, ValidationError

from ..database import serialize_document
from ..models.transaction import TransactionStatus
from ..services.fhir_builders import format_validation_errors
from ..services.hcx_client import HCXClient
from ..services.hcx_protocol import CORRELATION_ID, build_protocol_error, parse_envelope
from ..services.transaction_log import TransactionLogRepository

logger = logging.getLogger(__name__)


class ProtocolError(Exception):
    """Rejected HCX message; rendered as a ``ProtocolResponse`` error body."""

    def __init__(self, status_code: int, headers: dict[str, Any], code: str, message: str, entity_type: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = build_protocol_error(headers, code, message, entity_type)


def get_hcx_client() -> HCXClient:
    try:
        return HCXClient()
    except RuntimeError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


async def read_envelope(request: Request, entity_type: str) -> tuple[dict[str, Any], dict[str, Any]]:
    try:
        body = await request.json()
    except ValueError:
        raise ProtocolError(400, {}, "INVALID_PAYLOAD", "Request body is not valid JSON", entity_type)

    protected = body.get("protected") if isinstance(body, dict) else None
    protected = protected if isinstance(protected, dict) else {}
    try:
        headers, bundle = parse_envelope(body)
    except ValueError as exc:
        raise ProtocolError(400, protected, "INVALID_PAYLOAD", str(exc), entity_type) from exc
    if not headers.get(CORRELATION_ID):
        raise ProtocolError(400, headers, "INVALID_CORRELATION_ID", f"{CORRELATION_ID} header is required", entity_type)
    return headers, bundle


def parse_form(model: type[BaseModel], payload: Any):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=format_validation_errors(exc))


def forward(
    client: HCXClient,
    log: TransactionLogRepository,
    path: str,
    headers: dict[str, Any],
    bundle: dict[str, Any],
    success_status: TransactionStatus,
) -> dict[str, Any]:
    """Send one envelope and record the outcome on the transaction log. Never retried."""
    correlation_id = headers.get(CORRELATION_ID)
    try:
        result = client.send(path, headers, bundle)
    except (requests.RequestException, RuntimeError) as exc:
        logger.warning("Forwarding %s failed for correlation_id=%s: %s", path, correlation_id, exc)
        log.update_by_correlation_id(correlation_id, status=TransactionStatus.ERROR, error=str(exc))
        return {"status": "error", "error": str(exc)}

    log.update_by_correlation_id(correlation_id, status=success_status)
    return {"status": "sent", "status_code": result["status_code"], "response": result["body"]}


def transaction_listing(
    log: TransactionLogRepository,
    workflow: str | None,
    status: str | None,
    limit: int,
) -> dict[str, Any]:
    transactions = serialize_document(log.list(workflow=workflow, status=status, limit=limit))
    return {
        "transactions": transactions,
        "message": f"Found {len(transactions)} transaction(s)",
        "filters": {"workflow": workflow, "status": status, "limit": limit},
        "total": len(transactions),
    }


def session_token(client: HCXClient) -> dict[str, Any]:
    try:
        token = client.get_access_token()
    except RuntimeError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    except requests.RequestException as exc:
        raise HTTPException(status_code=502, detail=f"Session API error: {exc}")
    return {"accessToken": token, "tokenType": "Bearer"}
