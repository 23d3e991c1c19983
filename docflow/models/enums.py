"""Enumerations persisted in the database and exchanged over the API."""

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    INTERNAL = "INTERNAL"
    USER = "USER"


class OwnerType(str, Enum):
    USER = "USER"
    COMPANY = "COMPANY"


class MemberRole(str, Enum):
    VIEWER = "VIEWER"
    EDITOR = "EDITOR"
    ADMIN = "ADMIN"


class UploadStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"


class DocumentStatus(str, Enum):
    UNPROCESSED = "UNPROCESSED"
    PROCESSED = "PROCESSED"
    PAID = "PAID"
    UNPAID = "UNPAID"
    FLAGGED = "FLAGGED"


class DocumentType(str, Enum):
    INVOICE = "INVOICE"
    RECEIPT = "RECEIPT"
    CREDIT_NOTE = "CREDIT_NOTE"
    PURCHASE_ORDER = "PURCHASE_ORDER"
    BANK_STATEMENT = "BANK_STATEMENT"
    PAYSLIP = "PAYSLIP"
    CONTRACT = "CONTRACT"
    OTHER = "OTHER"


class JobStatus(str, Enum):
    """Processing job lifecycle: pending -> processing -> success | failed."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCESS, JobStatus.FAILED)


# Allowed job transitions. Re-sending the current status is permitted so the
# OCR consumer can attach metadata (e.g. textract_job_id) without moving state.
JOB_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.PROCESSING, JobStatus.SUCCESS, JobStatus.FAILED},
    JobStatus.SUCCESS: {JobStatus.SUCCESS},
    JobStatus.FAILED: {JobStatus.FAILED},
}
