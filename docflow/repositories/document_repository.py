import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.database.models import Document, WorkspaceDocument
from docflow.models.enums import DocumentStatus, DocumentType
from docflow.repositories.base_repository import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    """Repository for business documents."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Document)

    async def create_document(
        self,
        file_name: str,
        document_url: str,
        document_type: DocumentType,
        user_id: uuid.UUID,
        upload_id: Optional[uuid.UUID] = None,
    ) -> Document:
        return await self.create(
            file_name=file_name,
            document_url=document_url,
            type=document_type,
            status=DocumentStatus.UNPROCESSED,
            user_id=user_id,
            upload_id=upload_id,
        )

    async def get_by_upload_id(self, upload_id: uuid.UUID) -> Optional[Document]:
        result = await self.session.execute(select(Document).where(Document.upload_id == upload_id))
        return result.scalars().first()

    async def list_by_workspace(self, workspace_id: uuid.UUID, skip: int = 0, limit: int = 100) -> List[Document]:
        """Documents shared into a workspace, newest first."""
        query = (
            select(Document)
            .join(WorkspaceDocument, WorkspaceDocument.document_id == Document.id)
            .where(WorkspaceDocument.workspace_id == workspace_id)
            .order_by(Document.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update_status(self, document_id: uuid.UUID, status: DocumentStatus) -> Optional[Document]:
        return await self.update(document_id, status=status)
