from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from ..services.fhir_builders import BUILDERS, BuilderValidationError, get_builder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/fhir", tags=["fhir-utilities"])


def _builder_or_404(resource: str):
    try:
        return get_builder(resource)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


def _validation_failed(details: list[str]) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation failed", "details": details},
    )


@router.get("")
def list_resources():
    return {"success": True, "resources": sorted(BUILDERS)}


@router.post("/{resource}")
async def create_resource(resource: str, request: Request):
    builder = _builder_or_404(resource)
    try:
        payload = await request.json()
    except ValueError:
        return _validation_failed(["Request body must be valid JSON"])

    try:
        data = builder.create(payload)
    except BuilderValidationError as exc:
        return _validation_failed(exc.details)
    except Exception:
        logger.exception("Failed to build %s resource", resource)
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    return {"success": True, "data": data, "warnings": []}


@router.get("/{resource}/schema")
def resource_schema(resource: str):
    builder = _builder_or_404(resource)
    return {"success": True, "schema": builder.schema()}
