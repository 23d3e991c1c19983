"""Upload record reads and status updates."""

import uuid
from typing import List

from docflow.core.exceptions import ForbiddenError, NotFoundError
from docflow.database.models import Upload
from docflow.database.unit_of_work import TransactionScope
from docflow.models.enums import UploadStatus, UserRole
from docflow.schemas.auth import CurrentUser
from docflow.services.ownership_resolver import OwnershipResolver
from docflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


class UploadService:
    def __init__(self, resolver: OwnershipResolver):
        self.resolver = resolver

    async def get_upload(self, scope: TransactionScope, upload_id: uuid.UUID, actor: CurrentUser) -> Upload:
        return await self.resolver.ensure_upload_access(scope, actor, upload_id)

    async def list_workspace_uploads(
        self,
        scope: TransactionScope,
        workspace_id: uuid.UUID,
        actor: CurrentUser,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Upload]:
        await self.resolver.ensure_workspace_access(scope, actor, workspace_id)
        return await scope.uploads.list_by_workspace(workspace_id, skip=skip, limit=limit)

    async def update_status(
        self,
        scope: TransactionScope,
        upload_id: uuid.UUID,
        status: UploadStatus,
        actor: CurrentUser,
    ) -> Upload:
        """Set an upload's status. Allowed for the owner, ADMIN and INTERNAL principals.

        Raises:
            NotFoundError: If the upload does not exist
            ForbiddenError: If the actor may not change it
        """
        upload = await scope.uploads.get_by_id(upload_id)
        if upload is None:
            raise NotFoundError(f"Upload {upload_id} not found", code="UPLOAD_NOT_FOUND")
        if upload.user_id != actor.id and actor.role not in (UserRole.ADMIN, UserRole.INTERNAL):
            raise ForbiddenError("Access denied to this upload", code="UPLOAD_ACCESS_DENIED")

        upload = await scope.uploads.update_status(upload_id, status)
        LOGGER.info(f"Upload {upload_id} status updated to {status.value}")
        return upload
