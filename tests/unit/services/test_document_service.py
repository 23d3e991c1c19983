"""Unit tests for document listing and status updates."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from docflow.core.exceptions import ForbiddenError, NotFoundError
from docflow.models.enums import DocumentStatus, UserRole
from docflow.models.owner import CompanyOwner, UserOwner
from docflow.services.document_service import DocumentService
from docflow.services.ownership_resolver import OwnershipResolver
from fakes import make_scope, principal


@pytest.fixture
def document_service() -> DocumentService:
    return DocumentService(OwnershipResolver())


@pytest.mark.asyncio
async def test_workspace_documents_listed_newest_first(db, document_service):
    creator = db.add_user()
    company = db.add_company(owner_id=creator.id)
    creator.company_id = company.id
    colleague = db.add_user(company_id=company.id)
    workspace = db.add_workspace(CompanyOwner(company_id=company.id), creator_id=creator.id)
    base = datetime(2026, 3, 1, tzinfo=timezone.utc)
    older = db.add_document(creator.id, workspace.id, created_at=base)
    newer = db.add_document(colleague.id, workspace.id, created_at=base + timedelta(hours=1))
    db.add_document(creator.id)

    documents = await document_service.list_workspace_documents(make_scope(db), workspace.id, principal(colleague))

    assert [doc.id for doc in documents] == [newer.id, older.id]

    page = await document_service.list_workspace_documents(
        make_scope(db), workspace.id, principal(colleague), skip=1, limit=1
    )
    assert [doc.id for doc in page] == [older.id]


@pytest.mark.asyncio
async def test_workspace_documents_require_workspace_access(db, document_service):
    owner = db.add_user()
    workspace = db.add_workspace(UserOwner(user_id=owner.id), creator_id=owner.id)
    db.add_document(owner.id, workspace.id)

    with pytest.raises(ForbiddenError) as exc_info:
        await document_service.list_workspace_documents(make_scope(db), workspace.id, principal(db.add_user()))
    assert exc_info.value.code == "WORKSPACE_ACCESS_DENIED"

    with pytest.raises(NotFoundError):
        await document_service.list_workspace_documents(make_scope(db), uuid.uuid4(), principal(owner))


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.INTERNAL])
async def test_privileged_roles_update_status(db, document_service, role):
    owner = db.add_user()
    document = db.add_document(owner.id)
    operator = db.add_user(role=role)

    updated = await document_service.update_status(
        make_scope(db), document.id, DocumentStatus.PROCESSED, actor=principal(operator)
    )

    assert updated.status == DocumentStatus.PROCESSED


@pytest.mark.asyncio
async def test_internal_key_updates_status(db, document_service):
    document = db.add_document(db.add_user().id)

    updated = await document_service.update_status(make_scope(db), document.id, DocumentStatus.FLAGGED)

    assert updated.status == DocumentStatus.FLAGGED


@pytest.mark.asyncio
async def test_owner_cannot_update_status(db, document_service):
    owner = db.add_user()
    document = db.add_document(owner.id)

    with pytest.raises(ForbiddenError) as exc_info:
        await document_service.update_status(make_scope(db), document.id, DocumentStatus.PAID, actor=principal(owner))

    assert exc_info.value.code == "DOCUMENT_STATUS_FORBIDDEN"
    assert document.status == DocumentStatus.UNPROCESSED


@pytest.mark.asyncio
async def test_missing_document_status_update_not_found(db, document_service):
    with pytest.raises(NotFoundError) as exc_info:
        await document_service.update_status(make_scope(db), uuid.uuid4(), DocumentStatus.PAID)
    assert exc_info.value.code == "DOCUMENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_document_read_goes_through_access_check(db, document_service):
    owner = db.add_user()
    document = db.add_document(owner.id)

    assert (await document_service.get_document(make_scope(db), document.id, principal(owner))) is document

    with pytest.raises(ForbiddenError):
        await document_service.get_document(make_scope(db), document.id, principal(db.add_user()))
