import pytest

from scripts.seed_data import INSURANCE_PLANS, PATIENT_COVERAGE, PATIENTS
from scripts.seed_db import link_coverage, main, seed_database, synthetic_beneficiaries


def test_seed_links_coverage_to_object_ids(mongo_db):
    summary = seed_database(mongo_db)
    assert summary == {"insurance_companies": 1, "patients": 3, "insurance_plans": 3, "patient_coverage": 3}

    coverage = mongo_db.patient_coverage.find_one({"policyNumber": "POL-2024-001234"})
    patient = mongo_db.patients.find_one({"_id": coverage["patientId"]})
    plan = mongo_db.insurance_plans.find_one({"_id": coverage["planId"]})
    assert patient["abhaNumber"] == coverage["patientAbhaNumber"]
    assert plan["planId"] == coverage["originalPlanId"] == "PLAN-BASIC-01"


def test_seed_is_repeatable(mongo_db):
    seed_database(mongo_db)
    seed_database(mongo_db)
    assert mongo_db.patients.count_documents({}) == 3
    assert mongo_db.insurance_companies.count_documents({}) == 1


def test_seed_with_synthetic_beneficiaries(mongo_db):
    summary = seed_database(mongo_db, synthetic=5, seed=7)
    assert summary["patients"] == 8
    assert summary["patient_coverage"] == 8
    assert mongo_db.patient_coverage.count_documents({"policyNumber": {"$regex": "^POL-SYN-"}}) == 5


def test_synthetic_beneficiaries_are_reproducible():
    first = synthetic_beneficiaries(4, seed=42)
    second = synthetic_beneficiaries(4, seed=42)
    assert first == second
    patients, coverage = first
    abhas = {p["abhaNumber"] for p in patients}
    assert len(abhas) == 4
    assert abhas.isdisjoint({p["abhaNumber"] for p in PATIENTS})
    assert {c["planId"] for c in coverage} <= {p["planId"] for p in INSURANCE_PLANS}


def test_link_coverage_rejects_unknown_plan():
    rows = [{**PATIENT_COVERAGE[0], "planId": "PLAN-NOPE"}]
    with pytest.raises(ValueError, match="PLAN-NOPE"):
        link_coverage(rows, PATIENTS, [1, 2, 3], INSURANCE_PLANS, [4, 5, 6])


def test_link_coverage_rejects_unknown_patient():
    rows = [{**PATIENT_COVERAGE[0], "patientAbhaNumber": "00-0000-0000-0000"}]
    with pytest.raises(ValueError, match="00-0000-0000-0000"):
        link_coverage(rows, PATIENTS, [1, 2, 3], INSURANCE_PLANS, [4, 5, 6])


def test_main_refuses_outside_dev(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    from hcx_toolkit.config import get_settings

    get_settings.cache_clear()
    try:
        with pytest.raises(SystemExit):
            main([])
    finally:
        get_settings.cache_clear()
