"""Job schemas used by the OCR consumer and by clients polling job state."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docflow.models.enums import DocumentType, JobStatus


class UpdateJobStatusRequest(BaseModel):
    """Status change reported by the processing pipeline.

    ``textract_job_id`` distinguishes "not sent" from an explicit ``null``,
    which clears the stored value.
    """

    status: JobStatus
    error_message: Optional[str] = Field(None, max_length=2000)
    error_code: Optional[str] = Field(None, max_length=100)
    textract_job_id: Optional[str] = None
    ocr_json_url: Optional[str] = None


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: DocumentType
    status: JobStatus
    upload_id: UUID
    user_id: UUID
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    textract_job_id: Optional[str] = None
    ocr_json_url: Optional[str] = None
