from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from docflow.api.dependencies import (
    get_membership_service,
    get_ownership_resolver,
    get_unit_of_work,
    get_upload_service,
    get_workspace_service,
)
from docflow.core.auth import get_current_user, require_any_role
from docflow.database.unit_of_work import TransactionScope, UnitOfWork
from docflow.models.enums import UserRole
from docflow.schemas.auth import CurrentUser
from docflow.schemas.common import ApiResponse
from docflow.schemas.uploads import UploadRecordResponse
from docflow.schemas.workspaces import (
    CreateWorkspaceRequest,
    MemberChangeResponse,
    MemberIdsRequest,
    UpdateWorkspaceRequest,
    WorkspaceResponse,
)
from docflow.services.membership_service import MembershipService
from docflow.services.ownership_resolver import OwnershipResolver
from docflow.services.upload_service import UploadService
from docflow.services.workspace_service import WorkspaceService
from docflow.utils.responses import create_api_response

router = APIRouter()

require_user_or_admin = require_any_role(UserRole.ADMIN, UserRole.USER)


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workspace",
    operation_id="create_workspace",
)
async def create_workspace(
    request: Request,
    body: CreateWorkspaceRequest,
    current_user: Annotated[CurrentUser, Depends(require_user_or_admin)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    workspace_service: Annotated[WorkspaceService, Depends(get_workspace_service)],
) -> ApiResponse:
    workspace = await unit_of_work.run_in_transaction(
        lambda scope: workspace_service.create_workspace(scope, current_user, body.name, body.company_id)
    )
    return create_api_response(
        data=WorkspaceResponse.model_validate(workspace),
        message="Workspace created successfully",
        request=request,
    )


@router.get(
    "",
    response_model=ApiResponse,
    summary="List the workspaces the current user is a member of",
    operation_id="list_my_workspaces",
)
async def list_workspaces(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(require_user_or_admin)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    workspace_service: Annotated[WorkspaceService, Depends(get_workspace_service)],
) -> ApiResponse:
    workspace_ids = await unit_of_work.run_in_transaction(
        lambda scope: workspace_service.list_workspaces(scope, current_user)
    )
    return create_api_response(
        data={"workspace_ids": [str(workspace_id) for workspace_id in workspace_ids]},
        message="Workspaces retrieved successfully",
        request=request,
    )


def _workspace_response(workspace, member_count: int) -> WorkspaceResponse:
    return WorkspaceResponse.model_validate(workspace).model_copy(update={"member_count": member_count})


@router.get(
    "/{workspace_id}",
    response_model=ApiResponse,
    summary="Get a workspace",
    operation_id="get_workspace",
)
async def get_workspace(
    request: Request,
    workspace_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_user_or_admin)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    workspace_service: Annotated[WorkspaceService, Depends(get_workspace_service)],
) -> ApiResponse:
    workspace, member_count = await unit_of_work.run_in_transaction(
        lambda scope: workspace_service.get_workspace(scope, current_user, workspace_id)
    )
    return create_api_response(
        data=_workspace_response(workspace, member_count),
        message="Workspace retrieved successfully",
        request=request,
    )


@router.patch(
    "/{workspace_id}",
    response_model=ApiResponse,
    summary="Rename a workspace",
    operation_id="update_workspace",
)
async def update_workspace(
    request: Request,
    workspace_id: UUID,
    body: UpdateWorkspaceRequest,
    current_user: Annotated[CurrentUser, Depends(require_user_or_admin)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    workspace_service: Annotated[WorkspaceService, Depends(get_workspace_service)],
) -> ApiResponse:
    workspace, member_count = await unit_of_work.run_in_transaction(
        lambda scope: workspace_service.rename_workspace(scope, current_user, workspace_id, body.name)
    )
    return create_api_response(
        data=_workspace_response(workspace, member_count),
        message="Workspace updated successfully",
        request=request,
    )


@router.delete(
    "/{workspace_id}",
    response_model=ApiResponse,
    summary="Delete a workspace",
    operation_id="delete_workspace",
)
async def delete_workspace(
    request: Request,
    workspace_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_user_or_admin)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    workspace_service: Annotated[WorkspaceService, Depends(get_workspace_service)],
) -> ApiResponse:
    """Memberships and document links go with the workspace; uploads and documents stay."""
    await unit_of_work.run_in_transaction(
        lambda scope: workspace_service.delete_workspace(scope, current_user, workspace_id)
    )
    return create_api_response(
        data={"workspace_id": str(workspace_id)},
        message="Workspace deleted successfully",
        request=request,
    )


@router.get(
    "/{workspace_id}/uploads",
    response_model=ApiResponse,
    summary="List uploads in a workspace",
    operation_id="list_workspace_uploads",
)
async def list_workspace_uploads(
    request: Request,
    workspace_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    upload_service: Annotated[UploadService, Depends(get_upload_service)],
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    uploads = await unit_of_work.run_in_transaction(
        lambda scope: upload_service.list_workspace_uploads(
            scope, workspace_id, current_user, skip=offset, limit=limit
        )
    )
    return create_api_response(
        data=[UploadRecordResponse.model_validate(upload) for upload in uploads],
        message="Uploads retrieved successfully",
        request=request,
    )


@router.post(
    "/{workspace_id}/members",
    response_model=ApiResponse,
    summary="Add members to a workspace",
    operation_id="add_workspace_members",
)
async def add_members(
    request: Request,
    workspace_id: UUID,
    body: MemberIdsRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> ApiResponse:
    """Add users from the creator's company as VIEWERs. Only the creator may call this."""

    async def work(scope: TransactionScope) -> MemberChangeResponse:
        added = await membership.add_members(scope, workspace_id, body.user_ids, current_user.id)
        return MemberChangeResponse(
            workspace_id=workspace_id,
            affected=len(added),
            member_count=await membership.member_count(scope, workspace_id),
        )

    result = await unit_of_work.run_in_transaction(work)
    return create_api_response(data=result, message="Members added successfully", request=request)


@router.delete(
    "/{workspace_id}/members",
    response_model=ApiResponse,
    summary="Remove members from a workspace",
    operation_id="remove_workspace_members",
)
async def remove_members(
    request: Request,
    workspace_id: UUID,
    body: MemberIdsRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> ApiResponse:
    async def work(scope: TransactionScope) -> MemberChangeResponse:
        removed = await membership.remove_members(scope, workspace_id, body.user_ids, current_user.id)
        return MemberChangeResponse(
            workspace_id=workspace_id,
            affected=removed,
            member_count=await membership.member_count(scope, workspace_id),
        )

    result = await unit_of_work.run_in_transaction(work)
    return create_api_response(data=result, message="Members removed successfully", request=request)


@router.get(
    "/{workspace_id}/members",
    response_model=ApiResponse,
    summary="List workspace members",
    operation_id="list_workspace_members",
)
async def list_members(
    request: Request,
    workspace_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    resolver: Annotated[OwnershipResolver, Depends(get_ownership_resolver)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> ApiResponse:
    """List members; visible to anyone who can access the workspace or belongs to it."""

    async def work(scope: TransactionScope):
        if not await membership.is_member(scope, current_user.id, workspace_id):
            await resolver.ensure_workspace_access(scope, current_user, workspace_id)
        return await membership.list_members(scope, workspace_id)

    members = await unit_of_work.run_in_transaction(work)
    return create_api_response(data=members, message="Members retrieved successfully", request=request)
