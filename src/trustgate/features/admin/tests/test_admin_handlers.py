"""Tests for admin API handlers."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.trustgate.services.auth import LoginAuditLog, Principal
from src.trustgate.services.database.models import LoginMethod, LoginStatus, Role

LOGS_URL = "/api/v1/admin/login-logs"


@pytest.fixture
def admin_headers(token_service) -> dict[str, str]:
    admin = Principal(id=uuid4(), email="admin@example.com", role=Role.ADMIN)
    return {"Authorization": f"Bearer {token_service.issue(admin)}"}


@pytest.fixture
def user_headers(token_service) -> dict[str, str]:
    user = Principal(id=uuid4(), email="user@example.com")
    return {"Authorization": f"Bearer {token_service.issue(user)}"}


@pytest.fixture
def seeded_logs(db):
    audit = LoginAuditLog(db)
    audit.record(email="a@example.com", method=LoginMethod.SSO, status=LoginStatus.SUCCESS)
    audit.record(email="b@example.com", method=LoginMethod.EMAIL_CODE, status=LoginStatus.FAILED)
    audit.record(email="a@example.com", method=LoginMethod.PASSWORD, status=LoginStatus.SUCCESS)


class TestLoginLogsEndpoint:
    """Tests for GET /admin/login-logs."""

    def test_requires_authentication(self, client: TestClient):
        assert client.get(LOGS_URL).status_code == 401

    def test_requires_admin_role(self, client: TestClient, user_headers):
        response = client.get(LOGS_URL, headers=user_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Requires admin role"

    def test_lists_entries(self, client: TestClient, admin_headers, seeded_logs):
        response = client.get(LOGS_URL, headers=admin_headers)

        assert response.status_code == 200
        assert len(response.json()) == 3

    def test_filter_by_email(self, client: TestClient, admin_headers, seeded_logs):
        response = client.get(LOGS_URL, params={"email": "a@example.com"}, headers=admin_headers)

        methods = {entry["method"] for entry in response.json()}
        assert methods == {"sso", "password"}

    def test_limit(self, client: TestClient, admin_headers, seeded_logs):
        response = client.get(LOGS_URL, params={"limit": 1}, headers=admin_headers)

        assert len(response.json()) == 1

    def test_limit_out_of_range(self, client: TestClient, admin_headers):
        assert client.get(LOGS_URL, params={"limit": 0}, headers=admin_headers).status_code == 422
