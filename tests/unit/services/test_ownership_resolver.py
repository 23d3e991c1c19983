"""Unit tests for workspace ownership and record access decisions."""

import uuid

import pytest

from docflow.core.exceptions import ForbiddenError, NotFoundError
from docflow.models.enums import OwnerType, UserRole
from docflow.models.owner import CompanyOwner, UserOwner
from docflow.services.ownership_resolver import OwnershipResolver, owner_admits
from fakes import make_scope, principal


@pytest.fixture
def resolver() -> OwnershipResolver:
    return OwnershipResolver()


@pytest.fixture
def company_setup(db):
    founder = db.add_user()
    company = db.add_company(owner_id=founder.id)
    founder.company_id = company.id
    workspace = db.add_workspace(CompanyOwner(company_id=company.id), creator_id=founder.id)
    return company, founder, workspace


def test_resolve_owner_prefers_company(resolver):
    actor_id, company_id = uuid.uuid4(), uuid.uuid4()

    assert resolver.resolve_workspace_owner(actor_id) == UserOwner(user_id=actor_id)
    owner = resolver.resolve_workspace_owner(actor_id, company_id)
    assert owner == CompanyOwner(company_id=company_id)
    assert owner.owner_type == OwnerType.COMPANY


def test_owner_admits_matches_variant(db):
    company_id = uuid.uuid4()
    member = db.add_user(company_id=company_id)
    solo = db.add_user()

    assert owner_admits(UserOwner(user_id=solo.id), solo)
    assert not owner_admits(UserOwner(user_id=solo.id), member)
    assert owner_admits(CompanyOwner(company_id=company_id), member)
    assert not owner_admits(CompanyOwner(company_id=company_id), solo)


@pytest.mark.asyncio
async def test_solo_workspace_only_admits_owner(db, resolver):
    owner = db.add_user()
    stranger = db.add_user()
    workspace = db.add_workspace(UserOwner(user_id=owner.id), creator_id=owner.id)
    scope = make_scope(db)

    assert await resolver.ensure_workspace_access(scope, principal(owner), workspace.id) is workspace
    with pytest.raises(ForbiddenError) as exc_info:
        await resolver.ensure_workspace_access(scope, principal(stranger), workspace.id)
    assert exc_info.value.code == "WORKSPACE_ACCESS_DENIED"


@pytest.mark.asyncio
async def test_company_workspace_admits_every_company_user(db, resolver, company_setup):
    company, _, workspace = company_setup
    colleague = db.add_user(company_id=company.id)
    outsider = db.add_user(company_id=uuid.uuid4())
    scope = make_scope(db)

    assert await resolver.can_access_workspace(scope, principal(colleague), workspace.id)
    assert not await resolver.can_access_workspace(scope, principal(outsider), workspace.id)


@pytest.mark.asyncio
async def test_admin_bypasses_ownership(db, resolver, company_setup):
    _, _, workspace = company_setup
    admin = db.add_user(role=UserRole.ADMIN)
    scope = make_scope(db)

    assert await resolver.ensure_workspace_access(scope, principal(admin), workspace.id) is workspace
    assert await resolver.can_access_workspace(scope, principal(admin), uuid.uuid4())


@pytest.mark.asyncio
async def test_missing_workspace_is_not_found(db, resolver):
    user = db.add_user()

    with pytest.raises(NotFoundError) as exc_info:
        await resolver.ensure_workspace_access(make_scope(db), principal(user), uuid.uuid4())
    assert exc_info.value.code == "WORKSPACE_NOT_FOUND"


@pytest.mark.asyncio
async def test_deleted_user_with_valid_token_is_forbidden(db, resolver, company_setup):
    _, founder, workspace = company_setup
    ghost = principal(founder)
    del db.users[founder.id]

    with pytest.raises(ForbiddenError) as exc_info:
        await resolver.ensure_workspace_access(make_scope(db), ghost, workspace.id)
    assert exc_info.value.code == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_job_access_for_owner_admin_and_internal(db, resolver):
    owner = db.add_user()
    stranger = db.add_user()
    job = db.add_job(owner.id)
    scope = make_scope(db)

    assert await resolver.ensure_job_access(scope, principal(owner), job.id) is job
    assert await resolver.ensure_job_access(scope, principal(stranger, UserRole.INTERNAL), job.id) is job
    assert await resolver.ensure_job_access(scope, principal(stranger, UserRole.ADMIN), job.id) is job
    with pytest.raises(ForbiddenError):
        await resolver.ensure_job_access(scope, principal(stranger), job.id)
    with pytest.raises(NotFoundError):
        await resolver.ensure_job_access(scope, principal(owner), uuid.uuid4())


@pytest.mark.asyncio
async def test_document_access_through_shared_workspace(db, resolver, company_setup):
    company, founder, workspace = company_setup
    colleague = db.add_user(company_id=company.id)
    outsider = db.add_user()
    scope = make_scope(db)
    document = await scope.documents.create_document(
        file_name="invoice.pdf",
        document_url="s3://bucket/key.pdf",
        document_type="INVOICE",
        user_id=founder.id,
    )

    with pytest.raises(ForbiddenError):
        await resolver.ensure_document_access(scope, principal(colleague), document.id)

    await scope.workspaces.link_document(workspace.id, document.id)

    assert await resolver.ensure_document_access(scope, principal(colleague), document.id) is document
    with pytest.raises(ForbiddenError) as exc_info:
        await resolver.ensure_document_access(scope, principal(outsider), document.id)
    assert exc_info.value.code == "DOCUMENT_ACCESS_DENIED"
