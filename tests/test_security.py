"""
Security and system endpoint tests for TaskHub API
"""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from taskhub.auth.security import Hasher, create_access_token, decode_token
from taskhub.core import tracing

from conftest import auth_headers


class TestSecurityHeaders:
    """Test security headers"""

    async def test_security_headers_present(self, client: AsyncClient):
        response = await client.get("/")

        headers = response.headers
        assert headers["x-content-type-options"] == "nosniff"
        assert headers["x-frame-options"] == "DENY"
        assert "referrer-policy" in headers

    async def test_trace_id_in_response(self, client: AsyncClient):
        response = await client.get("/")
        assert "x-trace-id" in response.headers
        assert len(response.headers["x-trace-id"]) == 32

    async def test_error_body_carries_trace_id(self, client: AsyncClient):
        response = await client.get("/api/v1/tasks/")

        body = response.json()
        assert body["status_code"] == 401
        assert body["trace_id"] == response.headers["x-trace-id"]
        assert body["path"] == "/api/v1/tasks/"


class TestPasswordComplexity:
    """Test password complexity validation"""

    @pytest.mark.parametrize("password,should_fail", [
        ("Sh0rt!", True),
        ("nouppercase123!", True),
        ("NOLOWERCASE123!", True),
        ("NoNumbers!", True),
        ("NoSpecialChar123", True),
        ("ValidPassword123!", False),
    ])
    async def test_password_complexity(self, client: AsyncClient, password, should_fail):
        response = await client.post(
            "/api/v1/auth/signup",
            json={"name": "Pat", "email": "passwordtest@example.com", "password": password}
        )

        if should_fail:
            assert response.status_code == 422
        else:
            assert response.status_code == 201


class TestTokens:
    """Test token helpers"""

    def test_password_hash_round_trip(self):
        hashed = Hasher.get_password_hash("ValidPassword123!")
        assert hashed != "ValidPassword123!"
        assert Hasher.verify_password("ValidPassword123!", hashed)
        assert not Hasher.verify_password("OtherPassword123!", hashed)

    def test_refresh_token_digest_is_stable(self):
        assert Hasher.hash_refresh_token("abc") == Hasher.hash_refresh_token("abc")
        assert len(Hasher.hash_refresh_token("abc")) == 64

    def test_access_tokens_have_unique_ids(self):
        first = decode_token(create_access_token({"sub": "x"}))
        second = decode_token(create_access_token({"sub": "x"}))
        assert first["type"] == "access"
        assert first["jti"] != second["jti"]

    async def test_expired_token_is_rejected(self, client: AsyncClient, alice):
        token = create_access_token({"sub": str(alice.uuid)}, expires_delta=timedelta(seconds=-10))
        response = await client.get("/api/v1/profile/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_token_for_unknown_subject(self, client: AsyncClient):
        token = create_access_token({"sub": "not-a-uuid"})
        response = await client.get("/api/v1/profile/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestSystemEndpoints:
    """Test health and info endpoints"""

    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"] == "connected"

    async def test_api_information(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["endpoints"]["tasks"] == "/api/v1/tasks"

    async def test_metrics_exposed(self, client: AsyncClient, alice):
        await client.get("/api/v1/tasks/", headers=auth_headers(alice))

        response = await client.get("/metrics")
        assert response.status_code == 200
        assert "taskhub_task_api_requests_total" in response.text


class TestLogTimestamps:
    """Test the timestamp written by the JSON log sink"""

    def test_utc_timestamp_format(self):
        stamp = tracing.utc_timestamp()

        assert stamp.endswith("Z")
        parsed = datetime.fromisoformat(stamp[:-1]).replace(tzinfo=timezone.utc)
        assert abs(datetime.now(timezone.utc) - parsed) < timedelta(seconds=5)
