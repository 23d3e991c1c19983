"""Job status updates reported by the processing pipeline."""

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from docflow.core.exceptions import NotFoundError, ValidationError
from docflow.database.models import Job
from docflow.database.unit_of_work import TransactionScope
from docflow.models.enums import JOB_TRANSITIONS, JobStatus
from docflow.schemas.auth import CurrentUser
from docflow.schemas.jobs import UpdateJobStatusRequest
from docflow.services.ownership_resolver import OwnershipResolver
from docflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

TEXTRACT_JOB_ID_PATTERN = re.compile(r"^[a-zA-Z0-9\-_]+$")
TEXTRACT_JOB_ID_MAX_LENGTH = 255


def validate_textract_job_id(value: Optional[str]) -> Optional[str]:
    """``None`` clears the stored id; anything else must look like a Textract job id.

    Raises:
        ValidationError: If the id is blank, too long or has unexpected characters
    """
    if value is None:
        return None
    if not value.strip():
        raise ValidationError("textract_job_id must be a non-empty string when provided")
    if len(value) > TEXTRACT_JOB_ID_MAX_LENGTH:
        raise ValidationError(f"textract_job_id must be {TEXTRACT_JOB_ID_MAX_LENGTH} characters or less")
    if not TEXTRACT_JOB_ID_PATTERN.fullmatch(value):
        raise ValidationError(
            "textract_job_id must contain only alphanumeric characters, hyphens, and underscores"
        )
    return value


class JobService:
    """Reads jobs and applies status transitions."""

    def __init__(self, resolver: OwnershipResolver):
        self.resolver = resolver

    async def update_status(
        self,
        scope: TransactionScope,
        job_id: uuid.UUID,
        update: UpdateJobStatusRequest,
        actor: Optional[CurrentUser] = None,
    ) -> Job:
        """Move a job to a new status and attach pipeline metadata.

        ``actor`` is ``None`` for calls authenticated with the internal API
        key; those skip the ownership check.

        Raises:
            NotFoundError: If the job does not exist
            ForbiddenError: If the actor may not update this job
            ValidationError: If the transition or the metadata is invalid
        """
        job = await scope.jobs.get_by_id(job_id)
        if job is None:
            LOGGER.warning(f"Job update attempted for non-existent job: {job_id}")
            raise NotFoundError(f"Job with ID {job_id} not found", code="JOB_NOT_FOUND")
        if actor is not None:
            self.resolver.authorize_job(actor, job)

        current = JobStatus(job.status)
        if update.status not in JOB_TRANSITIONS[current]:
            raise ValidationError(
                f"Invalid job status transition from {current.value} to {update.status.value}",
                code="INVALID_JOB_TRANSITION",
            )

        changes: Dict[str, Any] = {"status": update.status}
        if update.error_message:
            changes["error_message"] = update.error_message
        if update.error_code:
            changes["error_code"] = update.error_code
        if update.ocr_json_url:
            changes["ocr_json_url"] = update.ocr_json_url
        if "textract_job_id" in update.model_fields_set:
            changes["textract_job_id"] = validate_textract_job_id(update.textract_job_id)
        if update.status.is_terminal and current != update.status:
            changes["completed_at"] = datetime.now(timezone.utc)

        job = await scope.jobs.apply_changes(job_id, changes)

        principal = str(actor.id) if actor else "internal"
        LOGGER.info(f"Job {job_id} status updated to {update.status.value} (user: {principal})")
        if update.status == JobStatus.FAILED:
            LOGGER.warning(
                f"Job {job_id} marked as failed - Error: {update.error_message or 'No error message'}, "
                f"Code: {update.error_code or 'No error code'}"
            )
        return job

    async def get_job(self, scope: TransactionScope, job_id: uuid.UUID, actor: CurrentUser) -> Job:
        return await self.resolver.ensure_job_access(scope, actor, job_id)

    async def get_job_by_upload(self, scope: TransactionScope, upload_id: uuid.UUID, actor: CurrentUser) -> Job:
        job = await scope.jobs.get_by_upload_id(upload_id)
        if job is None:
            raise NotFoundError(f"Job for upload {upload_id} not found", code="JOB_NOT_FOUND")
        return self.resolver.authorize_job(actor, job)

    async def list_user_jobs(self, scope: TransactionScope, actor: CurrentUser) -> List[Job]:
        jobs = await scope.jobs.list_by_user(actor.id)
        LOGGER.debug(f"Retrieved {len(jobs)} jobs for user {actor.id}")
        return jobs
