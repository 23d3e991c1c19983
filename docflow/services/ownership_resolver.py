"""Workspace ownership and record access decisions.

Every decision branches on the workspace's ``Owner`` variant:

- ``UserOwner``: only that user may access the workspace
- ``CompanyOwner``: every user whose company matches may access it

ADMIN principals bypass ownership checks. The resolver never retries;
each failure is a final NotFound or Forbidden classification.
"""

import uuid
from typing import Optional

from docflow.core.exceptions import ForbiddenError, NotFoundError
from docflow.database.models import Document, Job, Upload, User, Workspace
from docflow.database.unit_of_work import TransactionScope
from docflow.models.enums import UserRole
from docflow.models.owner import CompanyOwner, Owner, UserOwner
from docflow.schemas.auth import CurrentUser
from docflow.utils.logging import get_logger
from docflow.utils.structured_errors import StructuredErrorReporter

LOGGER = get_logger(__name__)


def owner_admits(owner: Owner, user: User) -> bool:
    """Whether ``owner`` grants ``user`` access to its workspace."""
    if isinstance(owner, UserOwner):
        return owner.user_id == user.id
    if isinstance(owner, CompanyOwner):
        return user.company_id is not None and user.company_id == owner.company_id
    raise TypeError(f"Not a workspace owner: {owner!r}")


class OwnershipResolver:
    """Decides whether a principal may act on a workspace or on records in it."""

    def __init__(self, reporter: Optional[StructuredErrorReporter] = None):
        self._reporter = reporter or StructuredErrorReporter()

    def resolve_workspace_owner(self, actor_id: uuid.UUID, company_id: Optional[uuid.UUID] = None) -> Owner:
        """Owner for a new workspace: the company when one is given, else the actor."""
        if company_id is not None:
            return CompanyOwner(company_id=company_id)
        return UserOwner(user_id=actor_id)

    async def _load_workspace(self, scope: TransactionScope, workspace_id: uuid.UUID) -> Workspace:
        workspace = await scope.workspaces.get_by_id(workspace_id)
        if workspace is None:
            raise NotFoundError(f"Workspace {workspace_id} not found", code="WORKSPACE_NOT_FOUND")
        return workspace

    async def _load_actor(self, scope: TransactionScope, actor: CurrentUser) -> User:
        user = await scope.users.get_by_id(actor.id)
        if user is None:
            # Valid token for a user that no longer exists
            LOGGER.warning(f"Authenticated user {actor.id} not found in database")
            raise ForbiddenError("User not found", code="USER_NOT_FOUND")
        return user

    async def can_access_workspace(
        self, scope: TransactionScope, actor: CurrentUser, workspace_id: uuid.UUID
    ) -> bool:
        """Check workspace access.

        Raises:
            NotFoundError: If the workspace does not exist (not raised for ADMIN)
            ForbiddenError: If the actor has no user record
        """
        if actor.role == UserRole.ADMIN:
            return True

        workspace = await self._load_workspace(scope, workspace_id)
        user = await self._load_actor(scope, actor)
        return owner_admits(workspace.owner, user)

    async def ensure_workspace_access(
        self, scope: TransactionScope, actor: CurrentUser, workspace_id: uuid.UUID
    ) -> Workspace:
        """Return the workspace if the actor may access it.

        Unlike ``can_access_workspace`` the workspace is always loaded, so a
        missing workspace is NotFound for ADMIN as well.

        Raises:
            NotFoundError: If the workspace does not exist
            ForbiddenError: If the actor may not access it
        """
        workspace = await self._load_workspace(scope, workspace_id)
        if actor.role == UserRole.ADMIN:
            return workspace

        user = await self._load_actor(scope, actor)
        if not owner_admits(workspace.owner, user):
            record = self._reporter.build(
                code="WORKSPACE_ACCESS_DENIED",
                message="Access denied to workspace",
                context={"owner_type": workspace.owner.owner_type.value},
                operation="ensure_workspace_access",
                actor_id=actor.id,
                tenant_id=workspace_id,
            )
            LOGGER.warning(
                f"User {actor.id} denied access to workspace {workspace_id}",
                extra=record.to_log_extra(),
            )
            raise ForbiddenError("Access denied to this workspace", code="WORKSPACE_ACCESS_DENIED")
        return workspace

    async def ensure_upload_access(
        self, scope: TransactionScope, actor: CurrentUser, upload_id: uuid.UUID
    ) -> Upload:
        """Return the upload if the actor owns it, is ADMIN, or can access its workspace."""
        upload = await scope.uploads.get_by_id(upload_id)
        if upload is None:
            raise NotFoundError(f"Upload {upload_id} not found", code="UPLOAD_NOT_FOUND")

        if upload.user_id == actor.id or actor.role == UserRole.ADMIN:
            return upload
        if upload.workspace_id is not None and await self.can_access_workspace(
            scope, actor, upload.workspace_id
        ):
            return upload

        LOGGER.warning(f"User {actor.id} denied access to upload {upload_id}")
        raise ForbiddenError("Access denied to this upload", code="UPLOAD_ACCESS_DENIED")

    def authorize_job(self, actor: CurrentUser, job: Job) -> Job:
        """Owner, ADMIN and INTERNAL principals may read and update a job."""
        if job.user_id == actor.id or actor.role in (UserRole.ADMIN, UserRole.INTERNAL):
            return job

        LOGGER.warning(
            f"Unauthorized job access attempt by user {actor.id} for job {job.id} owned by {job.user_id}"
        )
        raise ForbiddenError("Access denied to this job", code="JOB_ACCESS_DENIED")

    async def ensure_job_access(self, scope: TransactionScope, actor: CurrentUser, job_id: uuid.UUID) -> Job:
        job = await scope.jobs.get_by_id(job_id)
        if job is None:
            raise NotFoundError(f"Job with ID {job_id} not found", code="JOB_NOT_FOUND")
        return self.authorize_job(actor, job)

    async def ensure_document_access(
        self, scope: TransactionScope, actor: CurrentUser, document_id: uuid.UUID
    ) -> Document:
        """Return the document if the actor owns it, is ADMIN, or can access a
        workspace it is shared into."""
        document = await scope.documents.get_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found", code="DOCUMENT_NOT_FOUND")

        if document.user_id == actor.id or actor.role == UserRole.ADMIN:
            return document

        for workspace_id in await scope.workspaces.list_document_workspace_ids(document_id):
            if await self.can_access_workspace(scope, actor, workspace_id):
                return document

        LOGGER.warning(f"User {actor.id} denied access to document {document_id}")
        raise ForbiddenError("Access denied to this document", code="DOCUMENT_ACCESS_DENIED")
