"""Transforms from loosely shaped input into FHIR R4 datatypes.

Every transform returns ``None`` for empty input and leaves out keys whose
value is ``None`` so the caller can prune the whole resource afterwards with
:func:`remove_empty_elements`.
"""
from __future__ import annotations

import html
import logging
import random
import re
import string
from datetime import date, datetime, timezone
from typing import Any

from ..config import get_settings

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits
_FHIR_DATE_RE = re.compile(r"^(\d{4})(-(0[1-9]|1[0-2])(-(0[1-9]|[1-2]\d|3[0-1]))?)?$")
_EPOCH_RE = re.compile(r"^\d{10,}$")


def _compact(result: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in result.items() if value is not None}


def generate_short_uuid(resource_type: str | None = None) -> str:
    length = random.randint(8, 10)
    value = "".join(random.choice(_ID_ALPHABET) for _ in range(length))
    if resource_type:
        return f"{resource_type.lower()[:2]}{value}"
    return value


def profile_url(resource_type: str) -> str:
    return f"{get_settings().NRCES_PROFILE_BASE.rstrip('/')}/{resource_type}"


def transform_meta(meta: dict[str, Any] | None = None) -> dict[str, Any]:
    meta = meta or {}
    result = {
        "versionId": meta.get("versionId") or "1",
        "lastUpdated": meta.get("lastUpdated")
        or datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "profile": meta.get("profile") or [],
    }
    if meta.get("security"):
        result["security"] = meta["security"]
    if meta.get("tag"):
        result["tag"] = meta["tag"]
    return result


def normalize_fhir_date(value: Any) -> str | None:
    """Reduce a date-ish value to a FHIR ``date`` (``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD``).

    Accepts ``date``/``datetime`` objects, epoch seconds or milliseconds and
    ISO strings with either ``-`` or ``/`` separators.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).date().isoformat() if value.tzinfo else value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)) or (isinstance(value, str) and _EPOCH_RE.match(value.strip())):
        number = float(value)
        seconds = number if abs(number) < 1e12 else number / 1000
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).date().isoformat()
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip().replace("/", "-")
    date_part = text.split("T")[0]
    return date_part if _FHIR_DATE_RE.match(date_part) else None


def transform_reference(reference: Any) -> dict[str, Any] | None:
    if not reference:
        return None
    if isinstance(reference, str):
        return {"reference": reference}
    return _compact(
        {
            "reference": reference.get("reference"),
            "type": reference.get("type"),
            "identifier": reference.get("identifier"),
            "display": reference.get("display"),
        }
    )


def transform_coding(coding: Any) -> dict[str, Any] | None:
    if not coding:
        return None
    return _compact(
        {
            "system": coding.get("system"),
            "version": coding.get("version"),
            "code": coding.get("code"),
            "display": coding.get("display"),
            "userSelected": coding.get("userSelected"),
        }
    )


def transform_codeable_concept(concept: Any) -> dict[str, Any] | None:
    if not concept:
        return None
    if isinstance(concept, str):
        return {"text": concept}
    if concept.get("code") or concept.get("display") or concept.get("system"):
        result = {
            "coding": [
                _compact(
                    {
                        "system": concept.get("system"),
                        "code": concept.get("code"),
                        "display": concept.get("display"),
                    }
                )
            ]
        }
        text = concept.get("text") or concept.get("display")
        if text:
            result["text"] = text
        return result
    if isinstance(concept.get("coding"), list):
        result = {"coding": [transform_coding(coding) for coding in concept["coding"] if coding]}
        if concept.get("text"):
            result["text"] = concept["text"]
        return result
    return concept


def transform_identifier(identifier: Any) -> dict[str, Any] | None:
    if not identifier:
        return None
    return _compact(
        {
            "use": identifier.get("use") or "usual",
            "type": transform_codeable_concept(identifier.get("type")),
            "system": identifier.get("system"),
            "value": identifier.get("value"),
            "period": transform_period(identifier.get("period")),
            "assigner": transform_reference(identifier.get("assigner")),
        }
    )


def transform_period(period: Any) -> dict[str, Any] | None:
    if not period:
        return None
    return _compact({"start": period.get("start"), "end": period.get("end")})


def _as_list(value: Any) -> list | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, list) else [value]


def transform_human_name(name: Any) -> dict[str, Any] | None:
    if not name:
        return None
    result = _compact(
        {
            "use": name.get("use") or "usual",
            "text": name.get("text"),
            "family": name.get("family"),
            "given": _as_list(name.get("given")),
            "prefix": _as_list(name.get("prefix")),
            "suffix": _as_list(name.get("suffix")),
            "period": transform_period(name.get("period")),
        }
    )
    if not result.get("text"):
        parts = [
            " ".join(result.get("prefix") or []),
            " ".join(result.get("given") or []),
            result.get("family") or "",
            " ".join(result.get("suffix") or []),
        ]
        result["text"] = " ".join(part for part in parts if part)
    return result


def transform_address(address: Any) -> dict[str, Any] | None:
    if not address:
        return None
    return _compact(
        {
            "use": address.get("use"),
            "type": address.get("type"),
            "text": address.get("text"),
            "line": address.get("line") or None,
            "city": address.get("city"),
            "district": address.get("district"),
            "state": address.get("state"),
            "postalCode": address.get("postalCode"),
            "country": address.get("country"),
            "period": transform_period(address.get("period")),
        }
    )


def transform_contact_point(contact_point: Any) -> dict[str, Any] | None:
    if not contact_point:
        return None
    return _compact(
        {
            "system": contact_point.get("system") or "phone",
            "value": contact_point.get("value"),
            "use": contact_point.get("use"),
            "rank": contact_point.get("rank"),
            "period": transform_period(contact_point.get("period")),
        }
    )


def transform_attachment(attachment: Any) -> dict[str, Any] | None:
    if not attachment:
        return None
    keys = ("contentType", "language", "data", "url", "size", "hash", "title", "creation")
    return _compact({key: attachment.get(key) for key in keys})


def transform_quantity(quantity: Any) -> dict[str, Any] | None:
    if not quantity:
        return None
    if isinstance(quantity, (int, float)):
        return {"value": quantity}
    return _compact(
        {
            "value": quantity.get("value"),
            "unit": quantity.get("unit"),
            "system": quantity.get("system"),
            "code": quantity.get("code"),
        }
    )


def transform_money(money: Any) -> dict[str, Any] | None:
    if money is None or money == "":
        return None
    if isinstance(money, (int, float)):
        return {"value": money, "currency": "INR"}
    return _compact({"value": money.get("value"), "currency": money.get("currency") or "INR"})


def transform_extension(extension: Any) -> dict[str, Any] | None:
    if not extension:
        return None
    result = dict(extension)
    has_value = any(key.startswith("value") and result[key] is not None for key in result)
    if result.get("extension") and has_value:
        # ext-1: an extension carries either nested extensions or a value[x]
        logger.warning("Extension %s has both extension and value[x]; dropping nested extensions", result.get("url"))
        result.pop("extension")
    elif result.get("extension"):
        result["extension"] = [transform_extension(ext) for ext in result["extension"] if ext]
    return result


def remove_empty_elements(value: Any) -> Any:
    """Recursively drop ``None``, empty strings, empty lists and empty dicts."""
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            item = remove_empty_elements(item)
            if item is None or item == "" or item == [] or item == {}:
                continue
            cleaned[key] = item
        return cleaned
    if isinstance(value, list):
        items = [remove_empty_elements(item) for item in value]
        return [item for item in items if item is not None and item != "" and item != [] and item != {}]
    return value


def generate_narrative(summary: str, language: str | None = None) -> dict[str, str]:
    attributes = 'xmlns="http://www.w3.org/1999/xhtml"'
    if language:
        lang = str(language).replace("_", "-")
        attributes += f' lang="{lang}" xml:lang="{lang}"'
    return {"status": "generated", "div": f"<div {attributes}>{summary}</div>"}


def narrative_summary(title: str | None, detail: str | None = None) -> str:
    text = f"<strong>{html.escape(title)}</strong>" if title else ""
    if detail:
        text += f" ({html.escape(detail)})"
    return text
