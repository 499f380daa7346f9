from __future__ import annotations

import logging
from typing import Any

from ..config import get_settings
from .ai_output import ConversionError, extract_json, normalize_ai_output, parse_simple_json
from .document_parser import (
    EXCEL,
    PDF,
    describe_excel_sheets,
    detect_file_kind,
    extract_pdf_text,
    read_excel_sheets,
)
from .fhir_validator import add_profile, validate_fhir_resource
from .llm_client import get_llm_client
from .prompt_builder import JSON_TEST_PROMPT, build_insurance_plan_prompt

logger = logging.getLogger(__name__)


class InsurancePlanConverter:
    def __init__(self, llm_client=None):
        self.settings = get_settings()
        self._llm = llm_client

    @property
    def llm(self):
        if self._llm is None:
            self._llm = get_llm_client(self.settings)
        return self._llm

    def prepare_input(self, content: bytes, filename: str | None, content_type: str | None) -> tuple[str, str]:
        kind = detect_file_kind(filename, content_type)
        if kind == PDF:
            text = extract_pdf_text(content)
            if not text.strip():
                raise ConversionError(400, {"message": "Failed to extract text from PDF."})
            return "pdf_text", text
        if kind == EXCEL:
            sheets = read_excel_sheets(content, filename)
            return "excel_data", describe_excel_sheets(sheets, self.settings.EXCEL_SAMPLE_ROWS)
        raise ConversionError(400, {"message": "Unsupported file type. Use PDF or Excel (.xlsx/.xls)."})

    def convert(self, content: bytes, filename: str | None, content_type: str | None) -> dict[str, Any]:
        input_kind, input_data = self.prepare_input(content, filename, content_type)
        profile_url = self.settings.INSURANCEPLAN_PROFILE_URL
        prompt = build_insurance_plan_prompt(input_kind, input_data, profile_url)
        logger.info("Sending %s prompt to LLM (%d chars)", input_kind, len(prompt))
        logger.debug("Prompt: %s", prompt)

        raw = self.llm.generate_json(prompt)
        logger.info("LLM replied with %d chars", len(raw or ""))
        logger.debug("Raw reply: %s", raw)

        bundle = normalize_ai_output(extract_json(raw))

        errors: list[str] = []
        warnings: list[str] = []
        for entry in bundle.get("entry") or []:
            resource = entry.get("resource") if isinstance(entry, dict) else None
            if not isinstance(resource, dict) or resource.get("resourceType") != "InsurancePlan":
                errors.append("Non-InsurancePlan resource in bundle entry")
                continue
            result = validate_fhir_resource(resource)
            errors.extend(result["errors"])
            warnings.extend(result["warnings"])
            if profile_url:
                add_profile(resource, profile_url)

        if errors:
            raise ConversionError(400, {"message": "Validation failed.", "errors": errors, "bundle": bundle})
        return {"message": "Conversion successful", "bundle": bundle, "warnings": warnings}

    def test_json(self) -> dict[str, Any]:
        raw = self.llm.generate_json(JSON_TEST_PROMPT)
        return {"message": "JSON test successful", "response": parse_simple_json(raw)}
