from __future__ import annotations

from typing import Any


def validate_fhir_resource(resource: Any) -> dict[str, Any]:
    """Checks only that the resource is an InsurancePlan object.

    A missing name or status is reported as a warning and never fails the
    resource.
    """
    warnings: list[str] = []
    if not isinstance(resource, dict):
        return {"is_valid": False, "errors": ["Resource is not an object"], "warnings": warnings}
    if resource.get("resourceType") != "InsurancePlan":
        return {"is_valid": False, "errors": ["resourceType must be InsurancePlan"], "warnings": warnings}
    label = resource.get("id") or resource.get("name") or "(no id)"
    if not resource.get("name"):
        warnings.append(f"InsurancePlan {label} has no name")
    if not resource.get("status"):
        warnings.append(f"InsurancePlan {label} has no status")
    return {"is_valid": True, "errors": [], "warnings": warnings}


def add_profile(resource: dict[str, Any], profile_url: str) -> None:
    meta = resource.get("meta")
    if not isinstance(meta, dict):
        meta = {}
        resource["meta"] = meta
    profiles = list(meta.get("profile") or [])
    if profile_url not in profiles:
        profiles.append(profile_url)
    meta["profile"] = profiles
