"""FastAPI dependencies wiring services to the objects built in ``create_app``."""

from typing import Annotated

from fastapi import Depends, Request

from docflow.core.config import Settings
from docflow.database.unit_of_work import UnitOfWork
from docflow.services.document_service import DocumentService
from docflow.services.job_service import JobService
from docflow.services.membership_service import MembershipService
from docflow.services.message_dispatcher import MessageDispatcher
from docflow.services.ownership_resolver import OwnershipResolver
from docflow.services.storage_service import StorageService
from docflow.services.upload_completion import UploadCompletionCoordinator
from docflow.services.upload_service import UploadService
from docflow.services.workspace_service import WorkspaceService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_unit_of_work(request: Request) -> UnitOfWork:
    settings: Settings = request.app.state.settings
    return UnitOfWork.from_settings(request.app.state.db.session_maker, settings.db)


def get_dispatcher(request: Request) -> MessageDispatcher:
    return request.app.state.dispatcher


def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage


def get_ownership_resolver() -> OwnershipResolver:
    return OwnershipResolver()


def get_membership_service() -> MembershipService:
    return MembershipService()


def get_upload_completion_coordinator(
    settings: Annotated[Settings, Depends(get_app_settings)],
    unit_of_work: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    resolver: Annotated[OwnershipResolver, Depends(get_ownership_resolver)],
    dispatcher: Annotated[MessageDispatcher, Depends(get_dispatcher)],
) -> UploadCompletionCoordinator:
    return UploadCompletionCoordinator(
        unit_of_work=unit_of_work,
        resolver=resolver,
        dispatcher=dispatcher,
        bucket_name=settings.aws.s3_bucket_name,
    )


def get_upload_service(
    resolver: Annotated[OwnershipResolver, Depends(get_ownership_resolver)],
) -> UploadService:
    return UploadService(resolver)


def get_document_service(
    resolver: Annotated[OwnershipResolver, Depends(get_ownership_resolver)],
) -> DocumentService:
    return DocumentService(resolver)


def get_job_service(
    resolver: Annotated[OwnershipResolver, Depends(get_ownership_resolver)],
) -> JobService:
    return JobService(resolver)


def get_workspace_service(
    resolver: Annotated[OwnershipResolver, Depends(get_ownership_resolver)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> WorkspaceService:
    return WorkspaceService(resolver, membership)
