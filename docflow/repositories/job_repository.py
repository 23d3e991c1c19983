import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.database.models import Job
from docflow.models.enums import DocumentType, JobStatus
from docflow.repositories.base_repository import BaseRepository


class JobRepository(BaseRepository[Job]):
    """Repository for processing jobs."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Job)

    async def create_job(self, upload_id: uuid.UUID, user_id: uuid.UUID, job_type: DocumentType) -> Job:
        """Create a ``pending`` job for an upload.

        Raises:
            IntegrityError: If the upload already has a job
        """
        return await self.create(
            upload_id=upload_id,
            user_id=user_id,
            type=job_type,
            status=JobStatus.PENDING,
            started_at=datetime.now(timezone.utc),
        )

    async def get_by_upload_id(self, upload_id: uuid.UUID) -> Optional[Job]:
        result = await self.session.execute(select(Job).where(Job.upload_id == upload_id))
        return result.scalar_one_or_none()

    async def list_by_user(self, user_id: uuid.UUID) -> List[Job]:
        """All jobs started by a user, most recent first."""
        query = select(Job).where(Job.user_id == user_id).order_by(Job.started_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_failed(self, job_id: uuid.UUID, error_message: str, error_code: str) -> Optional[Job]:
        return await self.update(
            job_id,
            status=JobStatus.FAILED,
            error_message=error_message,
            error_code=error_code,
            completed_at=datetime.now(timezone.utc),
        )

    async def apply_changes(self, job_id: uuid.UUID, changes: Dict[str, Any]) -> Optional[Job]:
        """Write an already validated set of column changes."""
        return await self.update(job_id, **changes)
