"""Workspace membership management.

Only the workspace creator may add or remove members. Additions are
validated as a whole batch before anything is written: one unknown id or
one user from another company rejects the entire request.
"""

import uuid
from typing import Iterable, List, Optional

from docflow.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from docflow.database.models import Workspace, WorkspaceMember
from docflow.database.unit_of_work import TransactionScope
from docflow.models.enums import MemberRole
from docflow.schemas.workspaces import WorkspaceMemberResponse
from docflow.utils.logging import get_logger
from docflow.utils.structured_errors import StructuredErrorReporter

LOGGER = get_logger(__name__)


def _ids(values: Iterable[uuid.UUID]) -> str:
    return ", ".join(str(value) for value in values)


class MembershipService:
    """Adds, removes and lists workspace members."""

    def __init__(self, reporter: Optional[StructuredErrorReporter] = None):
        self._reporter = reporter or StructuredErrorReporter()

    async def _load_workspace_as_creator(
        self, scope: TransactionScope, workspace_id: uuid.UUID, actor_id: uuid.UUID, operation: str
    ) -> Workspace:
        workspace = await scope.workspaces.get_by_id(workspace_id)
        if workspace is None:
            raise NotFoundError(f"Workspace {workspace_id} not found", code="WORKSPACE_NOT_FOUND")

        if workspace.creator_id != actor_id:
            record = self._reporter.build(
                code="NOT_WORKSPACE_CREATOR",
                message="Only the workspace creator can manage members",
                operation=operation,
                actor_id=actor_id,
                tenant_id=workspace_id,
            )
            LOGGER.warning(
                f"User {actor_id} attempted to manage members of workspace {workspace_id}",
                extra=record.to_log_extra(),
            )
            raise ForbiddenError(
                "Only the workspace creator can manage members", code="NOT_WORKSPACE_CREATOR"
            )
        return workspace

    async def add_members(
        self,
        scope: TransactionScope,
        workspace_id: uuid.UUID,
        user_ids: Iterable[uuid.UUID],
        actor_id: uuid.UUID,
    ) -> List[uuid.UUID]:
        """Add users to a workspace as VIEWERs.

        Users that are already members are skipped, so repeating a call is
        harmless.

        Args:
            scope: Open transaction scope
            workspace_id: Target workspace
            user_ids: Users to add
            actor_id: Principal performing the change; must be the creator

        Returns:
            List[uuid.UUID]: Ids of the users that were actually added

        Raises:
            NotFoundError: If the workspace does not exist
            ValidationError: If any user id is unknown (all of them are named)
            ForbiddenError: If the actor is not the creator, the creator has no
                company, or any user belongs to another company
        """
        workspace = await self._load_workspace_as_creator(scope, workspace_id, actor_id, "add_members")

        requested = list(dict.fromkeys(user_ids))
        if not requested:
            return []

        users = {user.id: user for user in await scope.users.get_by_ids(requested)}
        unknown = [user_id for user_id in requested if user_id not in users]
        if unknown:
            raise ValidationError(f"Invalid user IDs: {_ids(unknown)}", code="INVALID_USER_IDS")

        creator = await scope.users.get_by_id(workspace.creator_id)
        if creator is None or creator.company_id is None:
            raise ForbiddenError(
                "Solo users cannot add other members to their workspaces", code="SOLO_WORKSPACE_CREATOR"
            )

        outsiders = [user_id for user_id in requested if users[user_id].company_id != creator.company_id]
        if outsiders:
            record = self._reporter.build(
                code="USERS_NOT_IN_COMPANY",
                message="Users not in creator's company",
                context={"user_ids": outsiders, "company_id": creator.company_id},
                operation="add_members",
                actor_id=actor_id,
                tenant_id=workspace_id,
            )
            LOGGER.warning("Rejected members from another company", extra=record.to_log_extra())
            raise ForbiddenError(
                f"Users not in creator's company: {_ids(outsiders)}", code="USERS_NOT_IN_COMPANY"
            )

        # Existing memberships, including ones committed concurrently, are skipped by the insert
        added = [
            user_id
            for user_id in requested
            if await scope.workspaces.add_member_if_absent(workspace_id, user_id, MemberRole.VIEWER)
        ]

        LOGGER.info(
            f"Added {len(added)} member(s) to workspace {workspace_id}",
            extra={"skipped": len(requested) - len(added), "actor_id": str(actor_id)},
        )
        return added

    async def remove_members(
        self,
        scope: TransactionScope,
        workspace_id: uuid.UUID,
        user_ids: Iterable[uuid.UUID],
        actor_id: uuid.UUID,
    ) -> int:
        """Remove users from a workspace. The creator can never be removed.

        Returns:
            int: Number of memberships deleted
        """
        workspace = await self._load_workspace_as_creator(scope, workspace_id, actor_id, "remove_members")

        requested = list(dict.fromkeys(user_ids))
        if workspace.creator_id in requested:
            raise ForbiddenError(
                "Workspace creator cannot be removed from workspace", code="CANNOT_REMOVE_CREATOR"
            )
        if not requested:
            return 0

        removed = await scope.workspaces.remove_members(workspace_id, requested)
        LOGGER.info(f"Removed {removed} member(s) from workspace {workspace_id}")
        return removed

    async def is_member(self, scope: TransactionScope, user_id: uuid.UUID, workspace_id: uuid.UUID) -> bool:
        return await scope.workspaces.get_member(workspace_id, user_id) is not None

    async def member_count(self, scope: TransactionScope, workspace_id: uuid.UUID) -> int:
        return await scope.workspaces.count_members(workspace_id)

    async def list_members(self, scope: TransactionScope, workspace_id: uuid.UUID) -> List[WorkspaceMemberResponse]:
        """Members with their user details, ADMINs first then by name."""
        rows = await scope.workspaces.list_members(workspace_id)
        return [
            WorkspaceMemberResponse(
                user_id=user.id,
                name=user.name,
                email=user.email,
                role=member.role,
                joined_at=member.created_at,
            )
            for member, user in rows
        ]

    async def add_creator_as_admin(
        self, scope: TransactionScope, workspace_id: uuid.UUID, creator_id: uuid.UUID
    ) -> WorkspaceMember:
        """Make the creator an ADMIN member, promoting an existing membership."""
        member = await scope.workspaces.get_member(workspace_id, creator_id)
        if member is None:
            return await scope.workspaces.add_member(workspace_id, creator_id, MemberRole.ADMIN)
        if member.role != MemberRole.ADMIN:
            member.role = MemberRole.ADMIN
            await scope.session.flush()
        return member

    async def list_member_workspace_ids(self, scope: TransactionScope, user_id: uuid.UUID) -> List[uuid.UUID]:
        return await scope.workspaces.list_workspace_ids_for_member(user_id)
