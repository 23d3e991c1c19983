import uuid
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.database.models import User, Workspace, WorkspaceDocument, WorkspaceMember
from docflow.models.enums import MemberRole
from docflow.models.owner import Owner, owner_to_columns
from docflow.repositories.base_repository import BaseRepository


class WorkspaceRepository(BaseRepository[Workspace]):
    """Repository for workspaces, their members and their document links."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Workspace)

    async def create_workspace(self, name: str, owner: Owner, creator_id: uuid.UUID) -> Workspace:
        owner_type, owner_id = owner_to_columns(owner)
        return await self.create(
            name=name,
            owner_type=owner_type,
            owner_id=owner_id,
            creator_id=creator_id,
        )

    async def rename_workspace(self, workspace_id: uuid.UUID, name: str) -> Optional[Workspace]:
        """Raises IntegrityError if the creator already has a workspace with this name."""
        return await self.update(workspace_id, name=name)

    async def delete_workspace(self, workspace_id: uuid.UUID) -> bool:
        """Delete a workspace; memberships and document links cascade, uploads keep a NULL workspace."""
        result = await self.session.execute(delete(Workspace).where(Workspace.id == workspace_id))
        return bool(result.rowcount)

    async def get_member(self, workspace_id: uuid.UUID, user_id: uuid.UUID) -> Optional[WorkspaceMember]:
        query = select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def add_member_if_absent(
        self, workspace_id: uuid.UUID, user_id: uuid.UUID, role: MemberRole = MemberRole.VIEWER
    ) -> bool:
        """Insert a membership unless one exists (idempotent).

        Returns:
            True if a row was inserted, False if the user already was a member
        """
        stmt = (
            insert(WorkspaceMember)
            .values(id=uuid.uuid4(), workspace_id=workspace_id, user_id=user_id, role=role)
            .on_conflict_do_nothing(constraint="uq_workspace_member")
            .returning(WorkspaceMember.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def add_member(
        self, workspace_id: uuid.UUID, user_id: uuid.UUID, role: MemberRole = MemberRole.VIEWER
    ) -> WorkspaceMember:
        member = WorkspaceMember(workspace_id=workspace_id, user_id=user_id, role=role)
        self.session.add(member)
        await self.session.flush()
        return member

    async def remove_members(self, workspace_id: uuid.UUID, user_ids: Iterable[uuid.UUID]) -> int:
        """Delete the given memberships. Returns the number of rows removed."""
        query = delete(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id.in_(list(user_ids)),
        )
        result = await self.session.execute(query)
        return result.rowcount or 0

    async def count_members(self, workspace_id: uuid.UUID) -> int:
        query = select(func.count()).select_from(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def list_members(self, workspace_id: uuid.UUID) -> List[Tuple[WorkspaceMember, User]]:
        """List memberships with their users, highest role first, then by name."""
        query = (
            select(WorkspaceMember, User)
            .join(User, User.id == WorkspaceMember.user_id)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.role.desc(), User.name.asc())
        )
        result = await self.session.execute(query)
        return [(member, user) for member, user in result.all()]

    async def list_workspace_ids_for_member(self, user_id: uuid.UUID) -> List[uuid.UUID]:
        query = (
            select(WorkspaceMember.workspace_id)
            .where(WorkspaceMember.user_id == user_id)
            .order_by(WorkspaceMember.created_at.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def link_document(self, workspace_id: uuid.UUID, document_id: uuid.UUID) -> WorkspaceDocument:
        link = WorkspaceDocument(workspace_id=workspace_id, document_id=document_id)
        self.session.add(link)
        await self.session.flush()
        return link

    async def is_document_linked(self, workspace_id: uuid.UUID, document_id: uuid.UUID) -> bool:
        query = select(WorkspaceDocument.id).where(
            WorkspaceDocument.workspace_id == workspace_id,
            WorkspaceDocument.document_id == document_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none() is not None

    async def list_document_workspace_ids(self, document_id: uuid.UUID) -> List[uuid.UUID]:
        query = select(WorkspaceDocument.workspace_id).where(WorkspaceDocument.document_id == document_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())
