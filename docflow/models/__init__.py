"""Domain value types shared by the database layer and services."""

from docflow.models.enums import (
    DocumentStatus,
    DocumentType,
    JobStatus,
    MemberRole,
    OwnerType,
    UploadStatus,
    UserRole,
)
from docflow.models.owner import CompanyOwner, Owner, UserOwner, owner_from_columns, owner_to_columns

__all__ = [
    "DocumentStatus",
    "DocumentType",
    "JobStatus",
    "MemberRole",
    "OwnerType",
    "UploadStatus",
    "UserRole",
    "CompanyOwner",
    "Owner",
    "UserOwner",
    "owner_from_columns",
    "owner_to_columns",
]
