from datetime import datetime
from typing import Any

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient

from .config import get_settings

_client = None


def get_client() -> MongoClient:
    global _client
    if _client is not None:
        return _client
    settings = get_settings()
    _client = MongoClient(settings.MONGO_URL, serverSelectionTimeoutMS=5000, tz_aware=True)
    return _client


def get_database():
    return get_client()[get_settings().MONGO_DB_NAME]


def reset_client() -> None:
    global _client
    if _client is not None:
        _client.close()
    _client = None


def create_registry_indexes(db) -> None:
    db.patients.create_index([("abhaNumber", ASCENDING)], unique=True)
    db.insurance_plans.create_index([("planId", ASCENDING)], unique=True)
    db.patient_coverage.create_index([("policyNumber", ASCENDING)], unique=True)
    db.patient_coverage.create_index([("patientId", ASCENDING)])
    db.patient_coverage.create_index([("planId", ASCENDING)])
    db.patient_coverage.create_index([("patientAbhaNumber", ASCENDING)])


def init_db() -> None:
    db = get_database()
    create_registry_indexes(db)
    db.transaction_logs.create_index([("participant", ASCENDING), ("correlationId", ASCENDING)], unique=True)
    db.transaction_logs.create_index([("workflow", ASCENDING), ("createdAt", DESCENDING)])
    db.coverage_eligibility_requests.create_index([("correlationId", ASCENDING)], unique=True)
    db.claims.create_index([("correlationId", ASCENDING)], unique=True)
    db.communications.create_index([("participant", ASCENDING), ("communicationId", ASCENDING)], unique=True)
    db.communications.create_index([("claimId", ASCENDING)])


def get_db():
    yield get_database()


def serialize_document(doc: Any) -> Any:
    """Make a Mongo document JSON friendly: ObjectIds to str, datetimes to ISO."""
    if isinstance(doc, list):
        return [serialize_document(item) for item in doc]
    if isinstance(doc, dict):
        return {key: serialize_document(value) for key, value in doc.items()}
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        return doc.isoformat()
    return doc
