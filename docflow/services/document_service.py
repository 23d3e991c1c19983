"""Document reads and processing status updates."""

import uuid
from typing import List, Optional

from docflow.core.exceptions import ForbiddenError, NotFoundError
from docflow.database.models import Document
from docflow.database.unit_of_work import TransactionScope
from docflow.models.enums import DocumentStatus, UserRole
from docflow.schemas.auth import CurrentUser
from docflow.services.ownership_resolver import OwnershipResolver
from docflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

STATUS_UPDATE_ROLES = (UserRole.ADMIN, UserRole.INTERNAL)


class DocumentService:
    """Service for document retrieval and status management."""

    def __init__(self, resolver: OwnershipResolver):
        self.resolver = resolver

    async def get_document(self, scope: TransactionScope, document_id: uuid.UUID, actor: CurrentUser) -> Document:
        return await self.resolver.ensure_document_access(scope, actor, document_id)

    async def list_workspace_documents(
        self,
        scope: TransactionScope,
        workspace_id: uuid.UUID,
        actor: CurrentUser,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Document]:
        """List documents shared into a workspace, newest first.

        Raises:
            NotFoundError: If the workspace does not exist
            ForbiddenError: If the actor may not access the workspace
        """
        await self.resolver.ensure_workspace_access(scope, actor, workspace_id)
        return await scope.documents.list_by_workspace(workspace_id, skip=skip, limit=limit)

    async def update_status(
        self,
        scope: TransactionScope,
        document_id: uuid.UUID,
        status: DocumentStatus,
        actor: Optional[CurrentUser] = None,
    ) -> Document:
        """Set a document's processing status.

        ``actor`` is ``None`` for calls authenticated with the internal API
        key. Otherwise only ADMIN and INTERNAL principals may change status.

        Raises:
            NotFoundError: If the document does not exist
            ForbiddenError: If the actor's role may not update document status
        """
        if actor is not None and actor.role not in STATUS_UPDATE_ROLES:
            LOGGER.warning(f"User {actor.id} ({actor.role.value}) attempted to update document {document_id}")
            raise ForbiddenError(
                "Insufficient permissions to update document status", code="DOCUMENT_STATUS_FORBIDDEN"
            )

        document = await scope.documents.update_status(document_id, status)
        if document is None:
            raise NotFoundError(f"Document with ID {document_id} not found", code="DOCUMENT_NOT_FOUND")

        principal = str(actor.id) if actor else "internal"
        LOGGER.info(f"Document {document_id} status updated to {status.value} (user: {principal})")
        return document
