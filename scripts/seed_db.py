import argparse
import copy
import logging
import random

from faker import Faker

from hcx_toolkit.config import get_settings
from hcx_toolkit.database import create_registry_indexes, get_database, reset_client
from hcx_toolkit.logging_config import configure_logging
from scripts.seed_data import INSURANCE_COMPANY, INSURANCE_PLANS, PATIENT_COVERAGE, PATIENTS

logger = logging.getLogger("scripts.seed_db")

COLLECTIONS = ["patients", "insurance_companies", "insurance_plans", "patient_coverage"]


def link_coverage(coverage_rows, patients, patient_ids, plans, plan_ids):
    """Replace string keys on coverage rows with the inserted ObjectIds."""
    patient_index = {p["abhaNumber"]: i for i, p in enumerate(patients)}
    plan_index = {p["planId"]: i for i, p in enumerate(plans)}

    linked = []
    for coverage in coverage_rows:
        abha = coverage["patientAbhaNumber"]
        if abha not in patient_index:
            raise ValueError(f"Patient with ABHA number {abha} not found")
        if coverage["planId"] not in plan_index:
            raise ValueError(f"Plan with ID {coverage['planId']} not found")
        linked.append(
            {
                **coverage,
                "patientId": patient_ids[patient_index[abha]],
                "planId": plan_ids[plan_index[coverage["planId"]]],
                "patientAbhaNumber": abha,
                "originalPlanId": coverage["planId"],
            }
        )
    return linked


def synthetic_beneficiaries(count: int, seed=None):
    """Faker-generated beneficiaries, each with one active policy on a seeded plan."""
    fake = Faker("en_IN")
    rng = random.Random(seed)
    if seed is not None:
        fake.seed_instance(seed)

    patients, coverage = [], []
    seen = {p["abhaNumber"] for p in PATIENTS}
    while len(patients) < count:
        abha = fake.numerify("##-####-####-####")
        if abha in seen:
            continue
        seen.add(abha)
        gender = rng.choice(["Male", "Female"])
        name = fake.name_male() if gender == "Male" else fake.name_female()
        patients.append(
            {
                "abhaNumber": abha,
                "name": name,
                "dob": fake.date_of_birth(minimum_age=18, maximum_age=85).isoformat(),
                "gender": gender,
            }
        )
        number = len(patients)
        coverage.append(
            {
                "coverageId": f"COV-SYN-{number:04d}",
                "patientAbhaNumber": abha,
                "planId": rng.choice(INSURANCE_PLANS)["planId"],
                "policyNumber": f"POL-SYN-{number:06d}",
                "subscriberId": f"SUB-SYN-{number:05d}",
                "effectiveDate": "2024-01-01",
                "expirationDate": "2024-12-31",
                "isActive": True,
                "copayAmount": rng.choice([500, 750, 1000]),
                "yearToDateDeductible": rng.randint(0, 3000),
            }
        )
    return patients, coverage


def seed_database(db, synthetic: int = 0, seed=None) -> dict:
    for name in COLLECTIONS:
        db[name].delete_many({})
    logger.info("Cleared existing collections")

    patients = copy.deepcopy(PATIENTS)
    coverage_rows = copy.deepcopy(PATIENT_COVERAGE)
    plans = copy.deepcopy(INSURANCE_PLANS)
    if synthetic:
        extra_patients, extra_coverage = synthetic_beneficiaries(synthetic, seed)
        patients.extend(extra_patients)
        coverage_rows.extend(extra_coverage)

    db.insurance_companies.insert_one(copy.deepcopy(INSURANCE_COMPANY))
    patient_ids = db.patients.insert_many(patients).inserted_ids
    plan_ids = db.insurance_plans.insert_many(plans).inserted_ids

    linked = link_coverage(coverage_rows, patients, patient_ids, plans, plan_ids)
    db.patient_coverage.insert_many(linked)

    create_registry_indexes(db)
    summary = {
        "insurance_companies": 1,
        "patients": len(patients),
        "insurance_plans": len(plans),
        "patient_coverage": len(linked),
    }
    logger.info("Database seeded", extra={"summary": summary})
    return summary


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Reset and seed the payer registry collections.")
    parser.add_argument("--synthetic", type=int, default=0, help="append N Faker-generated beneficiaries")
    parser.add_argument("--seed", type=int, default=None, help="random seed for synthetic data")
    parser.add_argument("--force", action="store_true", help="allow seeding outside ENVIRONMENT=dev")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings)
    if settings.ENVIRONMENT != "dev" and not args.force:
        raise SystemExit("Seeding is only permitted with ENVIRONMENT=dev (use --force to override)")

    try:
        summary = seed_database(get_database(), synthetic=args.synthetic, seed=args.seed)
    finally:
        reset_client()

    print(f"Database seeded successfully: {summary}")


if __name__ == "__main__":
    main()
