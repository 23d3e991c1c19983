"""Tests for the upload API endpoints."""

import time
import uuid
from unittest.mock import AsyncMock

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from docflow.api.dependencies import (
    get_dispatcher,
    get_unit_of_work,
    get_upload_completion_coordinator,
)
from docflow.core.exceptions import QueueDispatchError
from docflow.main import app
from docflow.models.enums import JobStatus
from docflow.models.owner import UserOwner
from fakes import FakeDriverError

COMPLETE_URL = "/api/v1/uploads/complete"


def auth_headers(user) -> dict:
    now = int(time.time())
    token = jwt.encode(
        {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
            "company_id": str(user.company_id) if user.company_id else None,
            "iat": now,
            "exp": now + 600,
        },
        app.state.settings.auth.jwt_secret,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


def completion_body(user_id, workspace_id=None, s3_key="documents/u/personal/invoice-1.pdf") -> dict:
    body = {
        "file_name": "invoice.pdf",
        "s3_key": s3_key,
        "file_type": "application/pdf",
        "user_id": str(user_id),
        "document_type": "INVOICE",
        "file_size": 4096,
    }
    if workspace_id is not None:
        body["workspace_id"] = str(workspace_id)
    return body


@pytest.fixture
def wired(unit_of_work, mock_dispatcher):
    app.dependency_overrides[get_unit_of_work] = lambda: unit_of_work
    app.dependency_overrides[get_dispatcher] = lambda: mock_dispatcher
    return unit_of_work


class TestCompleteUpload:
    """POST /api/v1/uploads/complete"""

    def test_success_returns_created_records(self, test_client: TestClient, db, wired) -> None:
        user = db.add_user()

        response = test_client.post(COMPLETE_URL, json=completion_body(user.id), headers=auth_headers(user))

        assert response.status_code == 201
        payload = response.json()
        assert payload["status"] is True
        data = payload["data"]
        assert data["status"] == "success"
        assert data["dispatch_message_id"] == "msg-0001"
        assert uuid.UUID(data["upload_id"]) in db.uploads
        assert uuid.UUID(data["job_id"]) in db.jobs
        assert response.headers["X-Correlation-ID"] == payload["meta"]["request_id"]

    def test_missing_token_is_unauthorized(self, test_client: TestClient, wired) -> None:
        response = test_client.post(COMPLETE_URL, json=completion_body(uuid.uuid4()))

        assert response.status_code == 401

    def test_malformed_body_is_rejected(self, test_client: TestClient, db, wired) -> None:
        user = db.add_user()
        body = completion_body(user.id, s3_key="../etc/passwd?x=1")

        response = test_client.post(COMPLETE_URL, json=body, headers=auth_headers(user))

        assert response.status_code == 422
        assert db.uploads == {}

    def test_user_mismatch_is_forbidden(self, test_client: TestClient, db, wired) -> None:
        user = db.add_user()

        response = test_client.post(
            COMPLETE_URL, json=completion_body(uuid.uuid4()), headers=auth_headers(user)
        )

        assert response.status_code == 403
        assert response.json()["code"] == "USER_MISMATCH"
        assert wired.transactions == 0

    def test_unknown_workspace_is_not_found(self, test_client: TestClient, db, wired) -> None:
        user = db.add_user()

        response = test_client.post(
            COMPLETE_URL,
            json=completion_body(user.id, workspace_id=uuid.uuid4()),
            headers=auth_headers(user),
        )

        assert response.status_code == 404
        assert response.json()["code"] == "WORKSPACE_NOT_FOUND"

    def test_other_users_workspace_is_forbidden(self, test_client: TestClient, db, wired) -> None:
        owner = db.add_user()
        user = db.add_user()
        workspace = db.add_workspace(UserOwner(user_id=owner.id), creator_id=owner.id)

        response = test_client.post(
            COMPLETE_URL,
            json=completion_body(user.id, workspace_id=workspace.id),
            headers=auth_headers(user),
        )

        assert response.status_code == 403
        assert db.uploads == {}

    def test_duplicate_key_is_conflict(self, test_client: TestClient, db, wired) -> None:
        user = db.add_user()
        headers = auth_headers(user)
        assert test_client.post(COMPLETE_URL, json=completion_body(user.id), headers=headers).status_code == 201

        response = test_client.post(COMPLETE_URL, json=completion_body(user.id), headers=headers)

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "DUPLICATE_UPLOAD_KEY"
        assert body["detail"] == "Upload with this S3 key already exists"
        assert body["instance"] == COMPLETE_URL

    def test_transient_failure_sets_retry_after(self, test_client: TestClient, db, wired) -> None:
        user = db.add_user()
        wired.commit_errors = [
            OperationalError("COMMIT", {}, FakeDriverError("connection reset", sqlstate="08006"))
        ]

        response = test_client.post(COMPLETE_URL, json=completion_body(user.id), headers=auth_headers(user))

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "5"
        assert response.json()["detail"] == "Database operation failed temporarily, please retry"

    def test_dispatch_failure_still_created(self, test_client: TestClient, db, wired, mock_dispatcher) -> None:
        user = db.add_user()
        mock_dispatcher.send_processing_message.side_effect = QueueDispatchError(
            "queue down", code="ServiceUnavailable", error_type="SQS_SERVICE_EXCEPTION", retryable=True
        )

        response = test_client.post(COMPLETE_URL, json=completion_body(user.id), headers=auth_headers(user))

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["dispatch_message_id"] == "FAILED_TO_SEND"
        job = db.jobs[uuid.UUID(data["job_id"])]
        assert job.status == JobStatus.FAILED
        assert job.error_code == "SQS_SEND_FAILED"

    def test_unexpected_error_is_generic_500(self, db) -> None:
        user = db.add_user()
        coordinator = AsyncMock()
        coordinator.complete_upload.side_effect = RuntimeError("secret internals")
        app.dependency_overrides[get_upload_completion_coordinator] = lambda: coordinator
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post(COMPLETE_URL, json=completion_body(user.id), headers=auth_headers(user))

        assert response.status_code == 500
        assert response.json()["detail"] == "An unexpected error occurred"
        assert "secret internals" not in response.text


class TestUploadRecords:
    def test_owner_reads_and_updates_upload(self, test_client: TestClient, db, wired) -> None:
        user = db.add_user()
        created = test_client.post(COMPLETE_URL, json=completion_body(user.id), headers=auth_headers(user))
        upload_id = created.json()["data"]["upload_id"]

        response = test_client.get(f"/api/v1/uploads/{upload_id}", headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json()["data"]["key"] == "documents/u/personal/invoice-1.pdf"

        response = test_client.patch(
            f"/api/v1/uploads/{upload_id}/status", json={"status": "processing"}, headers=auth_headers(user)
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "processing"

    def test_stranger_cannot_read_upload(self, test_client: TestClient, db, wired) -> None:
        owner = db.add_user()
        stranger = db.add_user()
        created = test_client.post(COMPLETE_URL, json=completion_body(owner.id), headers=auth_headers(owner))
        upload_id = created.json()["data"]["upload_id"]

        response = test_client.get(f"/api/v1/uploads/{upload_id}", headers=auth_headers(stranger))

        assert response.status_code == 403
        assert response.json()["code"] == "UPLOAD_ACCESS_DENIED"
