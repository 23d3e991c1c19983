from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from docflow.api.dependencies import (
    get_ownership_resolver,
    get_storage_service,
    get_unit_of_work,
    get_upload_completion_coordinator,
    get_upload_service,
)
from docflow.core.auth import get_current_user
from docflow.database.unit_of_work import UnitOfWork
from docflow.schemas.auth import CurrentUser
from docflow.schemas.common import ApiResponse
from docflow.schemas.uploads import (
    CompleteUploadRequest,
    UpdateUploadStatusRequest,
    UploadCompletionResponse,
    UploadRecordResponse,
)
from docflow.services.ownership_resolver import OwnershipResolver
from docflow.services.storage_service import StorageService
from docflow.services.upload_completion import UploadCompletionCoordinator
from docflow.services.upload_service import UploadService
from docflow.utils.logging import get_logger
from docflow.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "/presigned-url",
    response_model=ApiResponse,
    summary="Generate a presigned upload URL",
    operation_id="generate_presigned_upload_url",
)
async def generate_presigned_url(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    storage: Annotated[StorageService, Depends(get_storage_service)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    resolver: Annotated[OwnershipResolver, Depends(get_ownership_resolver)],
    file_name: str = Query(..., min_length=1),
    file_type: str = Query(..., min_length=1),
    file_size: Optional[int] = Query(None, ge=1),
    workspace_id: Optional[UUID] = Query(None),
) -> ApiResponse:
    """Issue a URL the client can PUT the file to before completing the upload."""
    if workspace_id is not None:
        await unit_of_work.run_in_transaction(
            lambda scope: resolver.ensure_workspace_access(scope, current_user, workspace_id)
        )

    presigned = storage.generate_presigned_url(
        user_id=current_user.id,
        file_name=file_name,
        file_type=file_type,
        file_size=file_size,
        workspace_id=workspace_id,
    )
    return create_api_response(
        data=presigned,
        message="Upload URL generated successfully",
        request=request,
    )


@router.post(
    "/complete",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Complete an upload and queue it for processing",
    operation_id="complete_upload",
)
async def complete_upload(
    request: Request,
    body: CompleteUploadRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    coordinator: Annotated[UploadCompletionCoordinator, Depends(get_upload_completion_coordinator)],
) -> ApiResponse:
    """Record an upload that reached object storage and dispatch its processing job."""
    result = await coordinator.complete_upload(body, current_user)

    message = "Upload completed successfully"
    if result.degraded is not None:
        message = "Upload recorded; processing could not be queued"

    return create_api_response(
        data=UploadCompletionResponse(
            upload_id=result.upload_id,
            document_id=result.document_id,
            job_id=result.job_id,
            dispatch_message_id=result.dispatch_message_id,
            status=result.status,
        ),
        message=message,
        request=request,
    )


@router.get(
    "/{upload_id}",
    response_model=ApiResponse,
    summary="Get an upload record",
    operation_id="get_upload",
)
async def get_upload(
    request: Request,
    upload_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    upload_service: Annotated[UploadService, Depends(get_upload_service)],
) -> ApiResponse:
    upload = await unit_of_work.run_in_transaction(
        lambda scope: upload_service.get_upload(scope, upload_id, current_user)
    )
    return create_api_response(
        data=UploadRecordResponse.model_validate(upload),
        message="Upload retrieved successfully",
        request=request,
    )


@router.patch(
    "/{upload_id}/status",
    response_model=ApiResponse,
    summary="Update an upload's status",
    operation_id="update_upload_status",
)
async def update_upload_status(
    request: Request,
    upload_id: UUID,
    body: UpdateUploadStatusRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    upload_service: Annotated[UploadService, Depends(get_upload_service)],
) -> ApiResponse:
    upload = await unit_of_work.run_in_transaction(
        lambda scope: upload_service.update_status(scope, upload_id, body.status, current_user)
    )
    return create_api_response(
        data=UploadRecordResponse.model_validate(upload),
        message="Upload status updated successfully",
        request=request,
    )
