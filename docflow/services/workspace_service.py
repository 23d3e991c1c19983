"""Workspace creation, listing and maintenance."""

import uuid
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from docflow.core.exceptions import ConflictError, ForbiddenError
from docflow.database.models import Workspace
from docflow.database.unit_of_work import TransactionScope
from docflow.schemas.auth import CurrentUser
from docflow.services.membership_service import MembershipService
from docflow.services.ownership_resolver import OwnershipResolver
from docflow.utils.logging import get_logger
from docflow.utils.structured_errors import is_unique_violation

LOGGER = get_logger(__name__)


class WorkspaceService:
    """Creates workspaces for users or their company."""

    def __init__(self, resolver: OwnershipResolver, membership: MembershipService):
        self.resolver = resolver
        self.membership = membership

    async def create_workspace(
        self,
        scope: TransactionScope,
        actor: CurrentUser,
        name: str,
        company_id: Optional[uuid.UUID] = None,
    ) -> Workspace:
        """Create a workspace and make the actor its ADMIN member.

        Raises:
            ForbiddenError: If ``company_id`` is not the actor's company
            ConflictError: If the actor already created a workspace with this name
        """
        if company_id is not None:
            user = await scope.users.get_by_id(actor.id)
            if user is None or user.company_id != company_id:
                raise ForbiddenError(
                    "Only members of the company can create company workspaces",
                    code="COMPANY_ACCESS_DENIED",
                )

        owner = self.resolver.resolve_workspace_owner(actor.id, company_id)
        try:
            workspace = await scope.workspaces.create_workspace(name, owner, creator_id=actor.id)
        except IntegrityError as e:
            if is_unique_violation(e):
                raise ConflictError(
                    f"A workspace named '{name}' already exists", original_error=e, code="WORKSPACE_NAME_TAKEN"
                ) from e
            raise

        await self.membership.add_creator_as_admin(scope, workspace.id, actor.id)
        LOGGER.info(
            f"Workspace {workspace.id} created by {actor.id}",
            extra={"owner_type": owner.owner_type.value},
        )
        return workspace

    async def list_workspaces(self, scope: TransactionScope, actor: CurrentUser) -> List[uuid.UUID]:
        """Ids of the workspaces the actor is a member of."""
        return await self.membership.list_member_workspace_ids(scope, actor.id)

    async def get_workspace(
        self, scope: TransactionScope, actor: CurrentUser, workspace_id: uuid.UUID
    ) -> Tuple[Workspace, int]:
        """Return the workspace and its member count.

        Raises:
            NotFoundError: If the workspace does not exist
            ForbiddenError: If the actor may not access it
        """
        workspace = await self.resolver.ensure_workspace_access(scope, actor, workspace_id)
        return workspace, await self.membership.member_count(scope, workspace_id)

    async def rename_workspace(
        self, scope: TransactionScope, actor: CurrentUser, workspace_id: uuid.UUID, name: str
    ) -> Tuple[Workspace, int]:
        """Rename a workspace the actor can access.

        Raises:
            NotFoundError: If the workspace does not exist
            ForbiddenError: If the actor may not access it
            ConflictError: If the creator already has a workspace with this name
        """
        workspace = await self.resolver.ensure_workspace_access(scope, actor, workspace_id)
        if workspace.name != name:
            try:
                workspace = await scope.workspaces.rename_workspace(workspace_id, name)
            except IntegrityError as e:
                if is_unique_violation(e):
                    raise ConflictError(
                        f"A workspace named '{name}' already exists",
                        original_error=e,
                        code="WORKSPACE_NAME_TAKEN",
                    ) from e
                raise
            LOGGER.info(f"Workspace {workspace_id} renamed by {actor.id}")
        return workspace, await self.membership.member_count(scope, workspace_id)

    async def delete_workspace(self, scope: TransactionScope, actor: CurrentUser, workspace_id: uuid.UUID) -> None:
        """Delete a workspace with its memberships and document links.

        Uploads and documents survive; uploads lose their workspace reference.

        Raises:
            NotFoundError: If the workspace does not exist
            ForbiddenError: If the actor may not access it
        """
        await self.resolver.ensure_workspace_access(scope, actor, workspace_id)
        member_count = await self.membership.member_count(scope, workspace_id)
        await scope.workspaces.delete_workspace(workspace_id)
        LOGGER.info(f"Workspace {workspace_id} deleted by {actor.id} with {member_count} members")
