from __future__ import annotations

from typing import Any

from pymongo import DESCENDING, ReturnDocument

from ..models.transaction import TransactionStatus, Workflow
from ..timeutils import utcnow

COLLECTION = "transaction_logs"


class TransactionLogRepository:
    """Per-participant log of HCX exchanges, keyed by correlation id.

    Payer and provider stubs may share one database, so every query is
    scoped to ``participant``.
    """

    def __init__(self, db, participant: str):
        self.collection = db[COLLECTION]
        self.participant = participant

    def create(
        self,
        correlation_id: str,
        workflow: Workflow,
        status: TransactionStatus,
        protected_headers: dict[str, Any] | None = None,
        request_fhir: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        now = utcnow()
        doc = {
            "participant": self.participant,
            "correlationId": correlation_id,
            "workflow": Workflow(workflow).value,
            "status": TransactionStatus(status).value,
            "protectedHeaders": protected_headers or {},
            "requestFHIR": request_fhir,
            "responseFHIR": None,
            "createdAt": now,
            "updatedAt": now,
        }
        self.collection.insert_one(doc)
        return doc

    def upsert(
        self,
        correlation_id: str,
        workflow: Workflow,
        status: TransactionStatus,
        protected_headers: dict[str, Any] | None = None,
        request_fhir: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create the entry, or refresh it when the same correlation id arrives again."""
        now = utcnow()
        return self.collection.find_one_and_update(
            {"participant": self.participant, "correlationId": correlation_id},
            {
                "$set": {
                    "workflow": Workflow(workflow).value,
                    "status": TransactionStatus(status).value,
                    "protectedHeaders": protected_headers or {},
                    "requestFHIR": request_fhir,
                    "updatedAt": now,
                },
                "$setOnInsert": {"responseFHIR": None, "createdAt": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    def update_by_correlation_id(self, correlation_id: str, **fields: Any) -> dict[str, Any] | None:
        updates = {key: value for key, value in fields.items() if value is not None}
        if "status" in updates:
            updates["status"] = TransactionStatus(updates["status"]).value
        updates["updatedAt"] = utcnow()
        return self.collection.find_one_and_update(
            {"participant": self.participant, "correlationId": correlation_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )

    def get(self, correlation_id: str) -> dict[str, Any] | None:
        return self.collection.find_one({"participant": self.participant, "correlationId": correlation_id})

    def list(
        self,
        workflow: str | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        query: dict[str, Any] = {"participant": self.participant}
        if workflow:
            query["workflow"] = workflow
        if status:
            query["status"] = status
        cursor = self.collection.find(query).sort("createdAt", DESCENDING).limit(limit)
        return list(cursor)
