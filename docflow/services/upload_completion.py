"""Upload completion workflow.

Turns "the file is now in object storage" into database records plus a
dispatched processing job. The steps run in a fixed order:

1. Identity check: the claimed user must be the authenticated principal
2. Workspace authorization, when a workspace is given, in its own read transaction
3. One transaction creating the Upload, Document, workspace link and Job
4. Dispatch of the processing message, outside the transaction
5. On dispatch failure, a separate best-effort update marks the Job failed;
   the caller still gets a success response with ``FAILED_TO_SEND``
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError

from docflow.core.exceptions import (
    AppError,
    ConflictError,
    FatalInternalError,
    ForbiddenError,
    QueueDispatchError,
    TransientInfraError,
)
from docflow.database.unit_of_work import TransactionScope, UnitOfWork
from docflow.schemas.auth import CurrentUser
from docflow.schemas.messages import ProcessingMessage
from docflow.schemas.uploads import CompleteUploadRequest
from docflow.services.message_dispatcher import MessageDispatcher
from docflow.services.ownership_resolver import OwnershipResolver
from docflow.utils.logging import get_logger
from docflow.utils.structured_errors import (
    StructuredError,
    StructuredErrorReporter,
    describe_db_error,
    get_db_constraint_name,
    get_db_error_code,
    get_error_message,
    is_retryable_error,
    is_unique_violation,
)

LOGGER = get_logger(__name__)

DISPATCH_FAILED_MESSAGE_ID = "FAILED_TO_SEND"
SQS_SEND_FAILED = "SQS_SEND_FAILED"
SQS_SEND_FAILED_MESSAGE = "Failed to queue processing task - SQS unavailable"

JOB_UPLOAD_CONSTRAINT = "uq_jobs_upload_id"

T = TypeVar("T")


@dataclass(frozen=True)
class PersistedRecords:
    upload_id: uuid.UUID
    document_id: uuid.UUID
    job_id: uuid.UUID


@dataclass(frozen=True)
class JobDispatchDegraded:
    """The records were committed but the processing message was not sent."""

    job_id: uuid.UUID
    error: StructuredError
    dispatch_retryable: bool
    job_marked_failed: bool


@dataclass(frozen=True)
class UploadCompletionResult:
    upload_id: uuid.UUID
    document_id: uuid.UUID
    job_id: uuid.UUID
    dispatch_message_id: str
    status: str = "success"
    degraded: Optional[JobDispatchDegraded] = None


class UploadCompletionCoordinator:
    """Runs the upload completion workflow."""

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        resolver: OwnershipResolver,
        dispatcher: MessageDispatcher,
        bucket_name: str,
        reporter: Optional[StructuredErrorReporter] = None,
    ):
        """Initialize the coordinator.

        Args:
            unit_of_work: Transaction boundary for the record writes
            resolver: Workspace access decisions
            dispatcher: Sends the processing message
            bucket_name: Bucket the client uploaded to, used for document URLs
            reporter: Builds structured error records
        """
        self.unit_of_work = unit_of_work
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.bucket_name = bucket_name
        self._reporter = reporter or StructuredErrorReporter()

    async def complete_upload(self, request: CompleteUploadRequest, actor: CurrentUser) -> UploadCompletionResult:
        """Record a finished upload and queue it for processing.

        Raises:
            ForbiddenError: On identity mismatch or workspace access denial
            NotFoundError: If the workspace does not exist
            ConflictError: If an upload with this key already exists
            TransientInfraError: If the transaction failed in a retryable way
            FatalInternalError: For any other failure
        """
        tenant_id = request.workspace_id or actor.id

        try:
            if request.user_id != actor.id:
                record = self._reporter.build(
                    code="USER_MISMATCH",
                    message="Claimed user does not match the authenticated user",
                    context={"claimed_user_id": request.user_id},
                    operation="complete_upload",
                    actor_id=actor.id,
                    tenant_id=tenant_id,
                )
                LOGGER.warning("Upload completion rejected: user mismatch", extra=record.to_log_extra())
                raise ForbiddenError(
                    "Cannot complete upload on behalf of another user", code="USER_MISMATCH"
                )

            if request.workspace_id is not None:
                await self._in_transaction(
                    lambda scope: self.resolver.ensure_workspace_access(scope, actor, request.workspace_id),
                    request,
                    actor,
                )

            records = await self._in_transaction(
                lambda scope: self._persist(scope, request), request, actor
            )

            LOGGER.info(
                f"Upload records created: upload={records.upload_id} job={records.job_id}",
                extra={"tenant_id": str(tenant_id), "s3_key": request.s3_key},
            )

            message = ProcessingMessage(
                job_id=str(records.job_id),
                upload_id=str(records.upload_id),
                document_id=str(records.document_id),
                s3_key=request.s3_key,
                document_type=request.document_type.value,
                user_id=str(request.user_id),
                workspace_id=str(request.workspace_id) if request.workspace_id else None,
                file_name=request.file_name,
                file_type=request.file_type,
            )
            try:
                message_id = await self.dispatcher.send_processing_message(message)
            except Exception as e:
                degraded = await self._degrade(records.job_id, e, actor, tenant_id)
                return UploadCompletionResult(
                    upload_id=records.upload_id,
                    document_id=records.document_id,
                    job_id=records.job_id,
                    dispatch_message_id=DISPATCH_FAILED_MESSAGE_ID,
                    degraded=degraded,
                )

            LOGGER.info(f"Processing message {message_id} queued for job {records.job_id}")
            return UploadCompletionResult(
                upload_id=records.upload_id,
                document_id=records.document_id,
                job_id=records.job_id,
                dispatch_message_id=message_id,
            )

        except AppError:
            raise
        except Exception as e:
            record = self._reporter.build(
                code="UPLOAD_COMPLETION_FAILED",
                message=get_error_message(e),
                context={"s3_key": request.s3_key, "error_class": e.__class__.__name__},
                operation="complete_upload",
                actor_id=actor.id,
                tenant_id=tenant_id,
            )
            LOGGER.error("Upload completion failed", exc_info=True, extra=record.to_log_extra())
            raise FatalInternalError("Failed to complete upload", original_error=e) from e

    async def _in_transaction(
        self,
        work: Callable[[TransactionScope], Awaitable[T]],
        request: CompleteUploadRequest,
        actor: CurrentUser,
    ) -> T:
        """Run ``work`` in its own transaction; domain errors pass through unchanged."""
        try:
            return await self.unit_of_work.run_in_transaction(work)
        except AppError:
            raise
        except Exception as e:
            raise self._classify_persistence_error(e, request, actor) from e

    async def _persist(self, scope: TransactionScope, request: CompleteUploadRequest) -> PersistedRecords:
        upload = await scope.uploads.create_upload(
            key=request.s3_key,
            file_name=request.file_name,
            file_type=request.file_type,
            user_id=request.user_id,
            workspace_id=request.workspace_id,
            file_size=request.file_size,
        )
        document = await scope.documents.create_document(
            file_name=request.file_name,
            document_url=f"s3://{self.bucket_name}/{request.s3_key}",
            document_type=request.document_type,
            user_id=request.user_id,
            upload_id=upload.id,
        )
        if request.workspace_id is not None:
            await scope.workspaces.link_document(request.workspace_id, document.id)
        job = await scope.jobs.create_job(
            upload_id=upload.id,
            user_id=request.user_id,
            job_type=request.document_type,
        )

        return PersistedRecords(upload_id=upload.id, document_id=document.id, job_id=job.id)

    def _classify_persistence_error(
        self, error: Exception, request: CompleteUploadRequest, actor: CurrentUser
    ) -> AppError:
        if isinstance(error, IntegrityError) and is_unique_violation(error):
            if get_db_constraint_name(error) == JOB_UPLOAD_CONSTRAINT:
                return ConflictError("Job already exists for this upload", original_error=error, code="DUPLICATE_JOB")
            return ConflictError(
                "Upload with this S3 key already exists", original_error=error, code="DUPLICATE_UPLOAD_KEY"
            )

        retryable = is_retryable_error(error)
        record = self._reporter.build(
            code="UPLOAD_PERSISTENCE_FAILED",
            message=describe_db_error(error),
            context={"sqlstate": get_db_error_code(error), "retryable": retryable, "s3_key": request.s3_key},
            operation="complete_upload.persist",
            actor_id=actor.id,
            tenant_id=request.workspace_id or actor.id,
        )
        LOGGER.error("Failed to create upload records", exc_info=True, extra=record.to_log_extra())

        if retryable:
            return TransientInfraError(
                "Database operation failed temporarily, please retry", original_error=error
            )
        return FatalInternalError("Failed to create database records for upload", original_error=error)

    async def _degrade(
        self, job_id: uuid.UUID, error: Exception, actor: CurrentUser, tenant_id: uuid.UUID
    ) -> JobDispatchDegraded:
        retryable = error.retryable if isinstance(error, QueueDispatchError) else is_retryable_error(error)
        record = self._reporter.build(
            code=SQS_SEND_FAILED,
            message=get_error_message(error),
            context={
                "job_id": job_id,
                "dispatch_error_code": getattr(error, "code", error.__class__.__name__),
                "dispatch_error_type": getattr(error, "error_type", None),
                "retryable": retryable,
            },
            operation="complete_upload.dispatch",
            actor_id=actor.id,
            tenant_id=tenant_id,
        )
        LOGGER.error(
            f"Failed to queue processing task for job {job_id}", extra=record.to_log_extra()
        )

        job_marked_failed = await self._mark_job_failed(job_id, actor, tenant_id)
        return JobDispatchDegraded(
            job_id=job_id,
            error=record,
            dispatch_retryable=retryable,
            job_marked_failed=job_marked_failed,
        )

    async def _mark_job_failed(self, job_id: uuid.UUID, actor: CurrentUser, tenant_id: uuid.UUID) -> bool:
        """Best effort: a failure here is logged, never raised."""
        try:
            job = await self.unit_of_work.run_in_transaction(
                lambda scope: scope.jobs.mark_failed(job_id, SQS_SEND_FAILED_MESSAGE, SQS_SEND_FAILED)
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            record = self._reporter.build(
                code="JOB_STATUS_UPDATE_FAILED",
                message=get_error_message(e),
                context={"job_id": job_id, "intended_error_code": SQS_SEND_FAILED},
                operation="complete_upload.mark_job_failed",
                actor_id=actor.id,
                tenant_id=tenant_id,
            )
            LOGGER.error(
                f"Could not mark job {job_id} as failed after dispatch failure",
                exc_info=True,
                extra=record.to_log_extra(),
            )
            return False

        if job is None:
            LOGGER.error(f"Job {job_id} disappeared before it could be marked failed")
            return False
        return True
