"""Recovering a FHIR bundle from free-form LLM output."""
from __future__ import annotations

import json
import re
from typing import Any

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\u0000-\u001F\u007F-\u009F]")
_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def _reject_constant(token: str) -> Any:
    raise ValueError(f"Invalid JSON constant {token}")


class ConversionError(Exception):
    """A conversion failure that maps onto a specific HTTP response body."""

    def __init__(self, status_code: int, body: dict[str, Any]):
        super().__init__(body.get("message", "Conversion failed"))
        self.status_code = status_code
        self.body = body


def clean_llm_text(raw: str) -> str:
    cleaned = _TAG_RE.sub("", raw or "")
    cleaned = _CONTROL_RE.sub("", cleaned)
    return cleaned.strip()


def extract_json(raw: str) -> Any:
    """Parse the JSON payload out of an LLM reply.

    Tries a fenced code block first, then the widest ``{...}`` span, then the
    whole cleaned text.
    """
    cleaned = clean_llm_text(raw)
    try:
        match = _FENCE_RE.search(cleaned)
        if match and match.group(1):
            return json.loads(match.group(1).strip(), parse_constant=_reject_constant)
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start >= 0 and end > start:
            return json.loads(cleaned[start : end + 1], parse_constant=_reject_constant)
        return json.loads(cleaned, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ValueError(f"Failed to parse JSON response: {exc}") from exc


def parse_simple_json(raw: str) -> Any:
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        match = _OBJECT_RE.search(raw or "")
        if not match:
            raise ValueError("LLM did not return valid JSON") from None
        try:
            return json.loads(match.group(0), parse_constant=_reject_constant)
        except ValueError as exc:
            raise ValueError(f"LLM did not return valid JSON: {exc}") from exc


def to_bundle(resources: list[Any]) -> dict[str, Any]:
    return {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [{"resource": resource} for resource in resources],
    }


def _has_error(item: Any) -> bool:
    return isinstance(item, dict) and bool(item.get("error"))


def normalize_ai_output(parsed: Any) -> dict[str, Any]:
    """Coerce the parsed reply into a collection Bundle.

    Raises :class:`ConversionError` when the model reported errors or the
    output has no recognisable shape.
    """
    if _has_error(parsed):
        raise ConversionError(400, {"message": "LLM reported error", **parsed})

    if isinstance(parsed, dict):
        resource_type = parsed.get("resourceType")
        if resource_type == "Bundle":
            return parsed
        if resource_type == "InsurancePlan":
            return to_bundle([parsed])
        if isinstance(parsed.get("insurancePlans"), list):
            return to_bundle(parsed["insurancePlans"])
    elif isinstance(parsed, list):
        errors = [item for item in parsed if _has_error(item)]
        if errors and len(errors) == len(parsed):
            raise ConversionError(400, {"message": "LLM reported errors", "errors": errors})
        return to_bundle([item for item in parsed if not _has_error(item)])

    raise ConversionError(400, {"message": "Unexpected AI output. Expected InsurancePlan or Bundle."})
