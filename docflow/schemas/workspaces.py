"""Workspace and membership schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docflow.models.enums import MemberRole, OwnerType


class MemberIdsRequest(BaseModel):
    """Batch of user ids to add to or remove from a workspace."""

    user_ids: List[UUID] = Field(..., min_length=1)


class MemberChangeResponse(BaseModel):
    workspace_id: UUID
    affected: int
    member_count: int


class WorkspaceMemberResponse(BaseModel):
    user_id: UUID
    name: str
    email: str
    role: MemberRole
    joined_at: Optional[datetime] = None


class CreateWorkspaceRequest(BaseModel):
    """New workspace; owned by ``company_id`` when given, else by the creator."""

    name: str = Field(..., min_length=1, max_length=255)
    company_id: Optional[UUID] = None


class WorkspaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    owner_type: OwnerType
    owner_id: UUID
    creator_id: UUID
    created_at: Optional[datetime] = None
    member_count: Optional[int] = None


class UpdateWorkspaceRequest(BaseModel):
    """Rename; names stay unique per creator."""

    name: str = Field(..., min_length=1, max_length=255)
