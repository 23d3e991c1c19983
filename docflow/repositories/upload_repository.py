import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.database.models import Upload
from docflow.models.enums import UploadStatus
from docflow.repositories.base_repository import BaseRepository


class UploadRepository(BaseRepository[Upload]):
    """Repository for upload records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Upload)

    async def create_upload(
        self,
        key: str,
        file_name: str,
        file_type: str,
        user_id: uuid.UUID,
        workspace_id: Optional[uuid.UUID] = None,
        file_size: Optional[int] = None,
    ) -> Upload:
        """Create an upload in the ``uploaded`` state.

        Raises:
            IntegrityError: If an upload with the same key already exists
        """
        return await self.create(
            key=key,
            file_name=file_name,
            file_type=file_type,
            file_size=file_size,
            user_id=user_id,
            workspace_id=workspace_id,
            status=UploadStatus.UPLOADED,
        )

    async def get_by_key(self, key: str) -> Optional[Upload]:
        result = await self.session.execute(select(Upload).where(Upload.key == key))
        return result.scalar_one_or_none()

    async def list_by_workspace(self, workspace_id: uuid.UUID, skip: int = 0, limit: int = 100) -> List[Upload]:
        query = (
            select(Upload)
            .where(Upload.workspace_id == workspace_id)
            .order_by(Upload.uploaded_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update_status(self, upload_id: uuid.UUID, status: UploadStatus) -> Optional[Upload]:
        return await self.update(upload_id, status=status)
