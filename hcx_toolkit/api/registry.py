from __future__ import annotations

import re
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..database import get_db, serialize_document
from ..timeutils import utcnow
from .schemas import BeneficiaryRecord, InsurancePlanRecord, InsurancePlanUpdate, PolicyRecord

router = APIRouter(prefix="/api", tags=["registry"])


def _insert(collection, doc: dict[str, Any], label: str) -> dict[str, Any]:
    try:
        collection.insert_one(doc)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail=f"{label} already exists")
    return serialize_document(doc)


def _search(term: str, fields: list[str]) -> dict[str, Any]:
    pattern = {"$regex": re.escape(term), "$options": "i"}
    return {"$or": [{field: pattern} for field in fields]}


# Insurance plans


@router.get("/insurance-plans")
def list_insurance_plans(
    search: Optional[str] = None,
    status: Optional[str] = None,
    company_id: Optional[str] = None,
    db=Depends(get_db),
):
    query: dict[str, Any] = {}
    if search:
        query.update(_search(search, ["planId", "name", "description"]))
    if status:
        query["status"] = status
    if company_id:
        query["companyId"] = company_id
    plans = list(db.insurance_plans.find(query).sort("planId", ASCENDING))
    return {"plans": serialize_document(plans), "total": len(plans)}


@router.post("/insurance-plans", status_code=status.HTTP_201_CREATED)
def create_insurance_plan(payload: InsurancePlanRecord, db=Depends(get_db)):
    now = utcnow()
    doc = {**payload.model_dump(mode="json"), "createdAt": now, "updatedAt": now}
    return _insert(db.insurance_plans, doc, f"Insurance plan {payload.planId}")


@router.get("/insurance-plans/{plan_id}")
def get_insurance_plan(plan_id: str, db=Depends(get_db)):
    plan = db.insurance_plans.find_one({"planId": plan_id})
    if plan is None:
        raise HTTPException(status_code=404, detail="Insurance plan not found")
    return serialize_document(plan)


@router.put("/insurance-plans/{plan_id}")
def update_insurance_plan(plan_id: str, payload: InsurancePlanUpdate, db=Depends(get_db)):
    updates = payload.model_dump(mode="json", exclude_none=True)
    updates["updatedAt"] = utcnow()
    plan = db.insurance_plans.find_one_and_update(
        {"planId": plan_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    if plan is None:
        raise HTTPException(status_code=404, detail="Insurance plan not found")
    return serialize_document(plan)


@router.delete("/insurance-plans/{plan_id}")
def delete_insurance_plan(plan_id: str, db=Depends(get_db)):
    result = db.insurance_plans.delete_one({"planId": plan_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Insurance plan not found")
    return {"status": "deleted", "planId": plan_id}


# Policies


@router.get("/policies")
def list_policies(
    abha_number: Optional[str] = None,
    active: Optional[bool] = None,
    db=Depends(get_db),
):
    query: dict[str, Any] = {}
    if abha_number:
        query["patientAbhaNumber"] = abha_number
    if active is not None:
        query["isActive"] = active
    policies = list(db.patient_coverage.find(query).sort("policyNumber", ASCENDING))
    return {"policies": serialize_document(policies), "total": len(policies)}


@router.post("/policies", status_code=status.HTTP_201_CREATED)
def create_policy(payload: PolicyRecord, db=Depends(get_db)):
    patient = db.patients.find_one({"abhaNumber": payload.patientAbhaNumber})
    if patient is None:
        raise HTTPException(status_code=404, detail=f"Beneficiary {payload.patientAbhaNumber} not found")
    plan = db.insurance_plans.find_one({"planId": payload.planId})
    if plan is None:
        raise HTTPException(status_code=404, detail=f"Insurance plan {payload.planId} not found")

    now = utcnow()
    doc = {
        **payload.model_dump(mode="json"),
        "patientId": patient["_id"],
        "planId": plan["_id"],
        "originalPlanId": payload.planId,
        "createdAt": now,
        "updatedAt": now,
    }
    return _insert(db.patient_coverage, doc, f"Policy {payload.policyNumber}")


@router.get("/policies/{policy_number}")
def get_policy(policy_number: str, db=Depends(get_db)):
    policy = db.patient_coverage.find_one({"policyNumber": policy_number})
    if policy is None:
        raise HTTPException(status_code=404, detail="Policy not found")
    return serialize_document(policy)


# Beneficiaries


@router.get("/beneficiaries")
def list_beneficiaries(search: Optional[str] = None, db=Depends(get_db)):
    query = _search(search, ["abhaNumber", "name"]) if search else {}
    patients = list(db.patients.find(query).sort("name", ASCENDING))
    return {"beneficiaries": serialize_document(patients), "total": len(patients)}


@router.post("/beneficiaries", status_code=status.HTTP_201_CREATED)
def create_beneficiary(payload: BeneficiaryRecord, db=Depends(get_db)):
    now = utcnow()
    doc = {**payload.model_dump(mode="json"), "createdAt": now, "updatedAt": now}
    return _insert(db.patients, doc, f"Beneficiary {payload.abhaNumber}")


@router.get("/beneficiaries/{abha_number}")
def get_beneficiary(abha_number: str, db=Depends(get_db)):
    patient = db.patients.find_one({"abhaNumber": abha_number})
    if patient is None:
        raise HTTPException(status_code=404, detail="Beneficiary not found")
    policies = list(db.patient_coverage.find({"patientAbhaNumber": abha_number}))
    return {**serialize_document(patient), "policies": serialize_document(policies)}
