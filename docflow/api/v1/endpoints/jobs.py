from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from docflow.api.dependencies import get_job_service, get_unit_of_work
from docflow.core.auth import get_current_user, get_user_or_internal, require_any_role
from docflow.database.unit_of_work import UnitOfWork
from docflow.models.enums import UserRole
from docflow.schemas.auth import CurrentUser
from docflow.schemas.common import ApiResponse
from docflow.schemas.jobs import JobResponse, UpdateJobStatusRequest
from docflow.services.job_service import JobService
from docflow.utils.responses import create_api_response

router = APIRouter()


@router.patch(
    "/{job_id}/status",
    response_model=ApiResponse,
    summary="Update a job's processing status",
    description="Used by the OCR pipeline. Accepts a user token or the internal API key.",
    operation_id="update_job_status",
)
async def update_job_status(
    request: Request,
    job_id: UUID,
    body: UpdateJobStatusRequest,
    principal: Annotated[Optional[CurrentUser], Depends(get_user_or_internal)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    job_service: Annotated[JobService, Depends(get_job_service)],
) -> ApiResponse:
    job = await unit_of_work.run_in_transaction(
        lambda scope: job_service.update_status(scope, job_id, body, actor=principal)
    )
    return create_api_response(
        data=JobResponse.model_validate(job),
        message="Job status updated successfully",
        request=request,
    )


@router.get(
    "/my-jobs",
    response_model=ApiResponse,
    summary="List the current user's jobs",
    operation_id="list_my_jobs",
)
async def list_my_jobs(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(require_any_role(UserRole.ADMIN, UserRole.USER))],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    job_service: Annotated[JobService, Depends(get_job_service)],
) -> ApiResponse:
    jobs = await unit_of_work.run_in_transaction(
        lambda scope: job_service.list_user_jobs(scope, current_user)
    )
    return create_api_response(
        data=[JobResponse.model_validate(job) for job in jobs],
        message="Jobs retrieved successfully",
        request=request,
    )


@router.get(
    "/by-upload/{upload_id}",
    response_model=ApiResponse,
    summary="Get the job for an upload",
    operation_id="get_job_by_upload",
)
async def get_job_by_upload(
    request: Request,
    upload_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    job_service: Annotated[JobService, Depends(get_job_service)],
) -> ApiResponse:
    job = await unit_of_work.run_in_transaction(
        lambda scope: job_service.get_job_by_upload(scope, upload_id, current_user)
    )
    return create_api_response(
        data=JobResponse.model_validate(job),
        message="Job retrieved successfully",
        request=request,
    )


@router.get(
    "/{job_id}",
    response_model=ApiResponse,
    summary="Get a job",
    operation_id="get_job",
)
async def get_job(
    request: Request,
    job_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    job_service: Annotated[JobService, Depends(get_job_service)],
) -> ApiResponse:
    job = await unit_of_work.run_in_transaction(
        lambda scope: job_service.get_job(scope, job_id, current_user)
    )
    return create_api_response(
        data=JobResponse.model_validate(job),
        message="Job retrieved successfully",
        request=request,
    )
