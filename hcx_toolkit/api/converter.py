from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse

from ..services.ai_output import ConversionError
from ..services.insurance_plan_converter import InsurancePlanConverter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["converter"])


def get_converter() -> InsurancePlanConverter:
    return InsurancePlanConverter()


@router.get("/", response_class=PlainTextResponse)
def banner():
    return "FHIR InsurancePlan Converter Backend"


@router.post("/api/insuranceplan/convert")
async def convert_insurance_plan(
    inputFile: Optional[UploadFile] = File(None),
    converter: InsurancePlanConverter = Depends(get_converter),
):
    """
    Convert an uploaded PDF or Excel plan document into a FHIR InsurancePlan bundle.
    """
    if inputFile is None:
        return JSONResponse(status_code=400, content={"message": "No file uploaded."})

    try:
        content = await inputFile.read()
        return await run_in_threadpool(converter.convert, content, inputFile.filename, inputFile.content_type)
    except ConversionError as exc:
        return JSONResponse(status_code=exc.status_code, content=exc.body)
    except Exception as exc:
        logger.exception("Insurance plan conversion failed for %s", inputFile.filename)
        return JSONResponse(status_code=500, content={"message": f"Server error: {exc}"})


@router.post("/api/test-json")
async def test_json(converter: InsurancePlanConverter = Depends(get_converter)):
    try:
        return await run_in_threadpool(converter.test_json)
    except Exception as exc:
        logger.exception("LLM JSON test failed")
        return JSONResponse(status_code=500, content={"message": f"Server error: {exc}"})
