from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from docflow.models.enums import DocumentStatus, DocumentType


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    file_name: str
    document_url: str
    type: DocumentType
    status: DocumentStatus
    upload_id: Optional[UUID] = None
    user_id: UUID
    created_at: Optional[datetime] = None


class UpdateDocumentStatusRequest(BaseModel):
    status: DocumentStatus
