"""HCX protocol headers, envelopes and acknowledgement bodies.

Messages travel as ``{"protected": {x-hcx-* headers}, "payload": bundle}``.
The payload may be the bundle itself or its JSON text.
"""
from __future__ import annotations

import json
import uuid
from typing import Any

from pydantic import ValidationError

from ..config import get_settings
from ..models.fhir import Bundle
from ..timeutils import format_hcx_timestamp, unix_timestamp

API_CALL_ID = "x-hcx-api_call_id"
CORRELATION_ID = "x-hcx-correlation_id"
REQUEST_ID = "x-hcx-request_id"
TIMESTAMP = "x-hcx-timestamp"
SENDER_CODE = "x-hcx-sender_code"
RECIPIENT_CODE = "x-hcx-recipient_code"
STATUS = "x-hcx-status"
ENTITY_TYPE = "x-hcx-entity-type"
WORKFLOW_ID = "x-hcx-workflow_id"
BEN_ABHA_ID = "x-hcx-ben-abha-id"
ERROR_DETAILS = "x-hcx-error_details"

REQUEST_INITIATED = "request.initiated"
REQUEST_QUEUED = "request.queued"
RESPONSE_COMPLETE = "response.complete"
RESPONSE_ERROR = "response.error"


def build_protected_headers(
    entity_type: str,
    status: str = REQUEST_INITIATED,
    sender_code: str | None = None,
    recipient_code: str | None = None,
    ben_abha_id: str | None = None,
    correlation_id: str | None = None,
) -> dict[str, str]:
    settings = get_settings()
    return {
        API_CALL_ID: str(uuid.uuid4()),
        CORRELATION_ID: correlation_id or str(uuid.uuid4()),
        REQUEST_ID: str(uuid.uuid4()),
        TIMESTAMP: format_hcx_timestamp(),
        SENDER_CODE: sender_code or settings.PROVIDER_CODE,
        RECIPIENT_CODE: recipient_code or settings.PAYER_CODE,
        STATUS: status,
        ENTITY_TYPE: entity_type,
        WORKFLOW_ID: settings.HCX_WORKFLOW_ID,
        BEN_ABHA_ID: ben_abha_id or settings.HCX_BEN_ABHA_ID,
    }


def response_headers(request_headers: dict[str, Any], status: str = RESPONSE_COMPLETE) -> dict[str, str]:
    """Headers for the reply to ``request_headers``: same correlation, roles swapped."""
    headers = {
        API_CALL_ID: str(uuid.uuid4()),
        CORRELATION_ID: request_headers.get(CORRELATION_ID) or str(uuid.uuid4()),
        TIMESTAMP: format_hcx_timestamp(),
        SENDER_CODE: request_headers.get(RECIPIENT_CODE, ""),
        RECIPIENT_CODE: request_headers.get(SENDER_CODE, ""),
        STATUS: status,
        ENTITY_TYPE: request_headers.get(ENTITY_TYPE, ""),
        WORKFLOW_ID: request_headers.get(WORKFLOW_ID) or get_settings().HCX_WORKFLOW_ID,
        BEN_ABHA_ID: request_headers.get(BEN_ABHA_ID, ""),
    }
    if request_headers.get(REQUEST_ID):
        headers[REQUEST_ID] = request_headers[REQUEST_ID]
    return headers


def build_envelope(headers: dict[str, Any], bundle: dict[str, Any]) -> dict[str, Any]:
    return {"protected": headers, "payload": bundle}


def parse_envelope(body: Any) -> tuple[dict[str, Any], dict[str, Any]]:
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    headers = body.get("protected") or {}
    if not isinstance(headers, dict):
        raise ValueError("protected headers must be an object")
    payload = body.get("payload")
    if payload is None or payload == "":
        raise ValueError("Missing payload")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Payload is not valid JSON: {exc}") from exc
    try:
        bundle = Bundle.model_validate(payload)
    except ValidationError as exc:
        raise ValueError("Payload is not a FHIR Bundle") from exc
    return headers, bundle.to_fhir()


def build_accepted_ack(headers: dict[str, Any], entity_type: str, protocol_status: str = REQUEST_QUEUED) -> dict[str, Any]:
    return {
        "timestamp": unix_timestamp(),
        "api_call_id": headers.get(API_CALL_ID) or str(uuid.uuid4()),
        "correlation_id": headers.get(CORRELATION_ID) or str(uuid.uuid4()),
        "result": {
            "sender_code": headers.get(RECIPIENT_CODE, ""),
            "recipient_code": headers.get(SENDER_CODE, ""),
            "entity_type": entity_type,
            "protocol_status": protocol_status,
        },
        "error": {"code": "", "message": ""},
    }


def build_protocol_error(headers: dict[str, Any], code: str, message: str, entity_type: str = "") -> dict[str, Any]:
    return {
        "type": "ProtocolResponse",
        TIMESTAMP: unix_timestamp(),
        SENDER_CODE: headers.get(RECIPIENT_CODE, ""),
        RECIPIENT_CODE: headers.get(SENDER_CODE, ""),
        API_CALL_ID: headers.get(API_CALL_ID) or str(uuid.uuid4()),
        CORRELATION_ID: headers.get(CORRELATION_ID, ""),
        "x-hcx-debug_flag": "Error",
        STATUS: RESPONSE_ERROR,
        "x-hcx-redirect_to": "",
        ERROR_DETAILS: {"code": code, "message": message},
        ENTITY_TYPE: entity_type or headers.get(ENTITY_TYPE, ""),
        BEN_ABHA_ID: headers.get(BEN_ABHA_ID, ""),
    }
