"""Tests for the /api/v1/auth endpoints."""

from unittest.mock import AsyncMock

from fastapi import status
from fastapi.testclient import TestClient

from bonsai_auth.services.auth_flow import AuthFlowController
from bonsai_auth.services.errors import StoreUnavailable
from tests.conftest import TEST_BCRYPT_ROUNDS, RecordingNotifier

EMAIL = "api-user@example.com"
PASSWORD = "hunter2-but-longer"


def _register(client: TestClient, email: str = EMAIL, password: str = PASSWORD):
    return client.post("/api/v1/auth/register", json={"email": email, "password": password})


class TestRegister:
    def test_register_success(self, client: TestClient) -> None:
        r = _register(client)
        assert r.status_code == status.HTTP_200_OK
        assert r.json() == {"ok": True}

    def test_register_duplicate(self, client: TestClient) -> None:
        assert _register(client).status_code == status.HTTP_200_OK
        r = _register(client, password="something else")
        assert r.status_code == status.HTTP_409_CONFLICT
        assert r.json() == {"error": "user_exists"}

    def test_register_requires_password(self, client: TestClient) -> None:
        r = client.post("/api/v1/auth/register", json={"email": EMAIL})
        assert r.status_code == 422


class TestRequestOtp:
    def test_unknown_user(self, client: TestClient) -> None:
        r = client.post("/api/v1/auth/request-otp", json={"email": "ghost@example.com"})
        assert r.status_code == status.HTTP_400_BAD_REQUEST
        assert r.json() == {"error": "unknown_user"}

    def test_request_otp_success(self, client: TestClient, notifier: RecordingNotifier) -> None:
        _register(client)
        r = client.post("/api/v1/auth/request-otp", json={"email": EMAIL})
        assert r.status_code == status.HTTP_200_OK
        assert r.json() == {"ok": True}
        assert notifier.last_code(EMAIL)

    def test_sixth_request_is_rejected(self, client: TestClient) -> None:
        _register(client)
        for i in range(5):
            r = client.post("/api/v1/auth/request-otp", json={"email": EMAIL})
            assert r.status_code == status.HTTP_200_OK, f"Request {i + 1} should succeed"

        r = client.post("/api/v1/auth/request-otp", json={"email": EMAIL})
        assert r.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert r.json() == {"error": "too_many_requests"}

    def test_delivery_failure_still_reports_success(
        self, client: TestClient, notifier: RecordingNotifier
    ) -> None:
        _register(client)
        notifier.fail = True
        r = client.post("/api/v1/auth/request-otp", json={"email": EMAIL})
        assert r.status_code == status.HTTP_200_OK

    def test_store_outage_is_503(
        self, app, client: TestClient, credential_store, notifier: RecordingNotifier
    ) -> None:
        _register(client)
        challenges = AsyncMock()
        challenges.increment_request_count.side_effect = StoreUnavailable("redis down")
        app.state.auth_flow = AuthFlowController(
            credential_store, challenges, notifier, bcrypt_rounds=TEST_BCRYPT_ROUNDS
        )

        r = client.post("/api/v1/auth/request-otp", json={"email": EMAIL})
        assert r.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert r.json() == {"error": "store_unavailable"}


class TestLogin:
    def test_unknown_user(self, client: TestClient) -> None:
        r = client.post("/api/v1/auth/login", json={"email": "ghost@example.com", "password": "x"})
        assert r.status_code == status.HTTP_400_BAD_REQUEST
        assert r.json() == {"error": "unknown_user"}

    def test_password_login(self, client: TestClient) -> None:
        _register(client)
        r = client.post("/api/v1/auth/login", json={"email": EMAIL, "password": PASSWORD})
        assert r.status_code == status.HTTP_200_OK
        data = r.json()
        assert data["ok"] is True
        assert isinstance(data["token"], str) and data["token"]

    def test_wrong_password(self, client: TestClient) -> None:
        _register(client)
        r = client.post("/api/v1/auth/login", json={"email": EMAIL, "password": "nope"})
        assert r.status_code == status.HTTP_401_UNAUTHORIZED
        assert r.json() == {"error": "invalid_password"}

    def test_missing_credentials(self, client: TestClient) -> None:
        _register(client)
        r = client.post("/api/v1/auth/login", json={"email": EMAIL})
        assert r.status_code == status.HTTP_400_BAD_REQUEST
        assert r.json() == {"error": "missing_credentials"}

    def test_otp_login_is_single_use(self, client: TestClient, notifier: RecordingNotifier) -> None:
        _register(client)
        client.post("/api/v1/auth/request-otp", json={"email": EMAIL})
        code = notifier.last_code(EMAIL)

        r = client.post("/api/v1/auth/login", json={"email": EMAIL, "otp": code})
        assert r.status_code == status.HTTP_200_OK
        assert r.json()["token"]

        r = client.post("/api/v1/auth/login", json={"email": EMAIL, "otp": code})
        assert r.status_code == status.HTTP_401_UNAUTHORIZED
        assert r.json() == {"error": "invalid_otp"}

    def test_password_wins_over_bad_otp(self, client: TestClient) -> None:
        _register(client)
        r = client.post(
            "/api/v1/auth/login",
            json={"email": EMAIL, "password": PASSWORD, "otp": "000000"},
        )
        assert r.status_code == status.HTTP_200_OK
