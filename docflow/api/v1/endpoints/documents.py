from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from docflow.api.dependencies import get_document_service, get_unit_of_work
from docflow.core.auth import get_current_user, get_user_or_internal, require_any_role
from docflow.database.unit_of_work import UnitOfWork
from docflow.models.enums import UserRole
from docflow.schemas.auth import CurrentUser
from docflow.schemas.common import ApiResponse
from docflow.schemas.documents import DocumentResponse, UpdateDocumentStatusRequest
from docflow.services.document_service import DocumentService
from docflow.utils.responses import create_api_response

router = APIRouter()


@router.get(
    "/workspace/{workspace_id}",
    response_model=ApiResponse,
    summary="List documents in a workspace",
    operation_id="list_workspace_documents",
)
async def list_workspace_documents(
    request: Request,
    workspace_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_any_role(UserRole.ADMIN, UserRole.USER))],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    documents = await unit_of_work.run_in_transaction(
        lambda scope: document_service.list_workspace_documents(
            scope, workspace_id, current_user, skip=offset, limit=limit
        )
    )
    return create_api_response(
        data=[DocumentResponse.model_validate(document) for document in documents],
        message="Documents retrieved successfully",
        request=request,
    )


@router.get(
    "/{document_id}",
    response_model=ApiResponse,
    summary="Get document details",
    operation_id="get_document",
)
async def get_document(
    request: Request,
    document_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> ApiResponse:
    """Retrieve document metadata by ID."""
    document = await unit_of_work.run_in_transaction(
        lambda scope: document_service.get_document(scope, document_id, current_user)
    )
    return create_api_response(
        data=DocumentResponse.model_validate(document),
        message="Document details retrieved successfully",
        request=request,
    )


@router.patch(
    "/{document_id}/status",
    response_model=ApiResponse,
    summary="Update a document's processing status",
    description="ADMIN or INTERNAL principals, or the pipeline with the internal API key.",
    operation_id="update_document_status",
)
async def update_document_status(
    request: Request,
    document_id: UUID,
    body: UpdateDocumentStatusRequest,
    principal: Annotated[Optional[CurrentUser], Depends(get_user_or_internal)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> ApiResponse:
    document = await unit_of_work.run_in_transaction(
        lambda scope: document_service.update_status(scope, document_id, body.status, actor=principal)
    )
    return create_api_response(
        data=DocumentResponse.model_validate(document),
        message="Document status updated successfully",
        request=request,
    )
