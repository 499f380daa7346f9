import enum


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    QUERIED = "queried"
    COMPLETE = "complete"
    SENT = "sent"
    RECEIVED = "received"
    ERROR = "error"


class Workflow(str, enum.Enum):
    COVERAGE_ELIGIBILITY = "coverageeligibility"
    CLAIM = "claim"
    PREAUTH = "preauth"
    COMMUNICATION = "communication"
    INSURANCE_PLAN = "insuranceplan"


class CommunicationDirection(str, enum.Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"
