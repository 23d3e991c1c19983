"""Tests for the job, workspace, document and health endpoints."""

import uuid
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from docflow.api.dependencies import get_unit_of_work
from docflow.core.auth import get_current_user, get_user_or_internal
from docflow.main import app
from docflow.models.enums import DocumentStatus, JobStatus, MemberRole
from docflow.models.owner import CompanyOwner, UserOwner
from fakes import FakeUserRepository, principal


@pytest.fixture
def wired(unit_of_work):
    app.dependency_overrides[get_unit_of_work] = lambda: unit_of_work
    return unit_of_work


def login_as(user) -> None:
    app.dependency_overrides[get_current_user] = lambda: principal(user)


def internal_headers() -> dict:
    return {"x-api-key": app.state.settings.auth.internal_api_key}


class TestJobStatus:
    def test_internal_key_updates_job(self, test_client: TestClient, db, wired) -> None:
        owner = db.add_user()
        job = db.add_job(owner.id)

        response = test_client.patch(
            f"/api/v1/jobs/{job.id}/status",
            json={"status": "processing", "textract_job_id": "tx-42"},
            headers=internal_headers(),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "processing"
        assert data["textract_job_id"] == "tx-42"
        assert job.status == JobStatus.PROCESSING

    def test_wrong_key_without_token_is_unauthorized(self, test_client: TestClient, db, wired) -> None:
        job = db.add_job(db.add_user().id)

        response = test_client.patch(
            f"/api/v1/jobs/{job.id}/status", json={"status": "processing"}, headers={"x-api-key": "wrong"}
        )

        assert response.status_code == 401
        assert job.status == JobStatus.PENDING

    def test_invalid_transition_is_bad_request(self, test_client: TestClient, db, wired) -> None:
        job = db.add_job(db.add_user().id, status=JobStatus.SUCCESS)

        response = test_client.patch(
            f"/api/v1/jobs/{job.id}/status", json={"status": "pending"}, headers=internal_headers()
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_JOB_TRANSITION"

    def test_owner_reads_job(self, test_client: TestClient, db, wired) -> None:
        owner = db.add_user()
        job = db.add_job(owner.id)
        login_as(owner)

        response = test_client.get(f"/api/v1/jobs/{job.id}")
        assert response.status_code == 200
        assert response.json()["data"]["id"] == str(job.id)

        response = test_client.get(f"/api/v1/jobs/by-upload/{job.upload_id}")
        assert response.status_code == 200

        response = test_client.get(f"/api/v1/jobs/{uuid.uuid4()}")
        assert response.status_code == 404


    def test_owner_lists_own_jobs(self, test_client: TestClient, db, wired) -> None:
        owner = db.add_user()
        job = db.add_job(owner.id)
        db.add_job(db.add_user().id)
        login_as(owner)

        response = test_client.get("/api/v1/jobs/my-jobs")

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["data"]["items"]] == [str(job.id)]


class TestDocuments:
    def test_internal_key_updates_document_status(self, test_client: TestClient, db, wired) -> None:
        document = db.add_document(db.add_user().id)

        response = test_client.patch(
            f"/api/v1/documents/{document.id}/status", json={"status": "PROCESSED"}, headers=internal_headers()
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "PROCESSED"
        assert document.status == DocumentStatus.PROCESSED

    def test_user_cannot_update_document_status(self, test_client: TestClient, db, wired) -> None:
        owner = db.add_user()
        document = db.add_document(owner.id)
        app.dependency_overrides[get_user_or_internal] = lambda: principal(owner)

        response = test_client.patch(f"/api/v1/documents/{document.id}/status", json={"status": "PAID"})

        assert response.status_code == 403
        assert response.json()["code"] == "DOCUMENT_STATUS_FORBIDDEN"
        assert document.status == DocumentStatus.UNPROCESSED

    def test_list_workspace_documents(self, test_client: TestClient, db, wired) -> None:
        owner = db.add_user()
        workspace = db.add_workspace(UserOwner(user_id=owner.id), creator_id=owner.id)
        document = db.add_document(owner.id, workspace.id)
        db.add_document(owner.id)
        login_as(owner)

        response = test_client.get(f"/api/v1/documents/workspace/{workspace.id}")
        assert response.status_code == 200
        assert [item["id"] for item in response.json()["data"]["items"]] == [str(document.id)]

        response = test_client.get(f"/api/v1/documents/{document.id}")
        assert response.json()["data"]["id"] == str(document.id)

        login_as(db.add_user())
        response = test_client.get(f"/api/v1/documents/workspace/{workspace.id}")
        assert response.status_code == 403


class TestWorkspaces:
    def test_create_and_list_workspaces(self, test_client: TestClient, db, wired) -> None:
        user = db.add_user()
        login_as(user)

        response = test_client.post("/api/v1/workspaces", json={"name": "Receipts"})
        assert response.status_code == 201
        workspace_id = response.json()["data"]["id"]
        assert response.json()["data"]["owner_type"] == "USER"

        response = test_client.get("/api/v1/workspaces")
        assert response.json()["data"]["workspace_ids"] == [workspace_id]

        response = test_client.post("/api/v1/workspaces", json={"name": "Receipts"})
        assert response.status_code == 409

    def test_member_management(self, test_client: TestClient, db, wired) -> None:
        creator = db.add_user(name="Carla")
        company = db.add_company(owner_id=creator.id)
        creator.company_id = company.id
        workspace = db.add_workspace(CompanyOwner(company_id=company.id), creator_id=creator.id)
        db.add_member(workspace.id, creator.id, MemberRole.ADMIN)
        alice = db.add_user(company_id=company.id, name="Alice")
        outsider = db.add_user()
        url = f"/api/v1/workspaces/{workspace.id}/members"
        login_as(creator)

        response = test_client.post(url, json={"user_ids": [str(alice.id)]})
        assert response.status_code == 200
        assert response.json()["data"] == {"workspace_id": str(workspace.id), "affected": 1, "member_count": 2}

        response = test_client.post(url, json={"user_ids": [str(outsider.id)]})
        assert response.status_code == 403
        assert response.json()["code"] == "USERS_NOT_IN_COMPANY"

        response = test_client.post(url, json={"user_ids": [str(uuid.uuid4())]})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_USER_IDS"

        response = test_client.get(url)
        assert [m["name"] for m in response.json()["data"]["items"]] == ["Carla", "Alice"]

        response = test_client.request("DELETE", url, json={"user_ids": [str(creator.id)]})
        assert response.status_code == 403
        assert response.json()["code"] == "CANNOT_REMOVE_CREATOR"

        response = test_client.request("DELETE", url, json={"user_ids": [str(alice.id)]})
        assert response.json()["data"]["affected"] == 1
        assert response.json()["data"]["member_count"] == 1

    def test_concurrently_added_member_is_not_an_error(self, test_client: TestClient, db, wired, monkeypatch) -> None:
        creator = db.add_user(name="Carla")
        company = db.add_company(owner_id=creator.id)
        creator.company_id = company.id
        workspace = db.add_workspace(CompanyOwner(company_id=company.id), creator_id=creator.id)
        db.add_member(workspace.id, creator.id, MemberRole.ADMIN)
        alice = db.add_user(company_id=company.id, name="Alice")
        load_users = FakeUserRepository.get_by_ids

        async def load_users_then_concurrent_insert(repo, user_ids):
            users = await load_users(repo, user_ids)
            if not any(m.user_id == alice.id for m in db.members.values()):
                db.add_member(workspace.id, alice.id)
            return users

        monkeypatch.setattr(FakeUserRepository, "get_by_ids", load_users_then_concurrent_insert)
        login_as(creator)

        response = test_client.post(
            f"/api/v1/workspaces/{workspace.id}/members", json={"user_ids": [str(alice.id)]}
        )

        assert response.status_code == 200
        assert response.json()["data"]["affected"] == 0
        assert response.json()["data"]["member_count"] == 2

    def test_get_rename_and_delete_workspace(self, test_client: TestClient, db, wired) -> None:
        owner = db.add_user()
        workspace = db.add_workspace(UserOwner(user_id=owner.id), creator_id=owner.id, name="Receipts")
        db.add_workspace(UserOwner(user_id=owner.id), creator_id=owner.id, name="Taxes")
        db.add_member(workspace.id, owner.id, MemberRole.ADMIN)
        url = f"/api/v1/workspaces/{workspace.id}"
        login_as(owner)

        response = test_client.get(url)
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Receipts"
        assert response.json()["data"]["member_count"] == 1

        response = test_client.patch(url, json={"name": "Expenses"})
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Expenses"

        response = test_client.patch(url, json={"name": "Taxes"})
        assert response.status_code == 409

        login_as(db.add_user())
        assert test_client.delete(url).status_code == 403

        login_as(owner)
        response = test_client.delete(url)
        assert response.status_code == 200
        assert response.json()["data"] == {"workspace_id": str(workspace.id)}
        assert test_client.get(url).status_code == 404

    def test_outsider_cannot_list_members(self, test_client: TestClient, db, wired) -> None:
        creator = db.add_user()
        company = db.add_company(owner_id=creator.id)
        creator.company_id = company.id
        workspace = db.add_workspace(CompanyOwner(company_id=company.id), creator_id=creator.id)
        login_as(db.add_user())

        response = test_client.get(f"/api/v1/workspaces/{workspace.id}/members")

        assert response.status_code == 403


class TestHealth:
    def test_health_reports_database_status(self, test_client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(app.state.db, "health_check", AsyncMock(return_value={"status": "healthy"}))

        response = test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "healthy"
        assert body["queue_configured"] is True

    def test_health_degraded_when_database_down(self, test_client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(
            app.state.db,
            "health_check",
            AsyncMock(return_value={"status": "unhealthy", "error": "connection refused"}),
        )

        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
