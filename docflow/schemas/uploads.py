"""Upload request and response schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docflow.models.enums import DocumentType, UploadStatus

S3_KEY_PATTERN = r"^[a-zA-Z0-9\-_/.]+$"


class CompleteUploadRequest(BaseModel):
    """Metadata of a file the client has finished uploading to object storage."""

    file_name: str = Field(..., min_length=1, description="Original name of the uploaded file")
    s3_key: str = Field(
        ...,
        min_length=1,
        pattern=S3_KEY_PATTERN,
        description="Object key of the uploaded file",
        examples=["documents/user123/workspace456/invoice-uuid.pdf"],
    )
    file_type: str = Field(..., min_length=1, description="MIME type of the uploaded file")
    user_id: UUID = Field(..., description="ID of the user who uploaded the file")
    workspace_id: Optional[UUID] = Field(None, description="Workspace the file was uploaded to")
    document_type: DocumentType = Field(..., description="Type of document that was uploaded")
    file_size: Optional[int] = Field(None, ge=1, description="File size in bytes")


class UploadCompletionResponse(BaseModel):
    """Identifiers of the records created for a completed upload."""

    upload_id: UUID
    document_id: UUID
    job_id: UUID
    dispatch_message_id: str
    status: str = "success"


class PresignedUrlResponse(BaseModel):
    """Where and how long the client may PUT the file."""

    url: str
    key: str
    expires_in: int
    max_file_size: int


class UploadRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    key: str
    file_name: str
    file_type: str
    file_size: Optional[int] = None
    status: UploadStatus
    user_id: UUID
    workspace_id: Optional[UUID] = None
    uploaded_at: Optional[datetime] = None


class UpdateUploadStatusRequest(BaseModel):
    status: UploadStatus
