"""Integration tests for admin login, logout and session verification."""

from fastapi.testclient import TestClient

from app.core.auth import verify_token
from app.core.config import settings


def _login(client: TestClient, email: str, password: str, **headers):
    return client.post("/api/admin/auth", json={"email": email, "password": password}, headers=headers)


class TestLogin:
    def test_login_sets_session_cookie(self, client: TestClient, admin_credentials) -> None:
        """Test successful login returns the profile and a verifiable cookie."""
        response = _login(client, **admin_credentials)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Login successful"
        assert body["data"]["admin"]["email"] == admin_credentials["email"]
        assert body["data"]["admin"]["permissions"] == ["all"]
        assert "password_hash" not in body["data"]["admin"]

        set_cookie = response.headers["set-cookie"]
        assert "HttpOnly" in set_cookie
        assert "Max-Age=86400" in set_cookie

        claims = verify_token(response.cookies["admin-token"])
        assert claims is not None
        assert claims.email == admin_credentials["email"]

    def test_login_email_is_case_insensitive(self, client: TestClient, admin_credentials) -> None:
        response = _login(client, admin_credentials["email"].upper(), admin_credentials["password"])

        assert response.status_code == 200

    def test_wrong_password_is_401(self, client: TestClient, admin_credentials) -> None:
        response = _login(client, admin_credentials["email"], "wrong-password")

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid email or password"}
        assert "set-cookie" not in response.headers

    def test_unknown_email_gets_same_message(self, client: TestClient) -> None:
        response = _login(client, "nobody@edgevantagepro.com", "whatever")

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_invalid_body_is_400(self, client: TestClient) -> None:
        response = client.post("/api/admin/auth", json={"email": "not-an-email", "password": ""})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid input data"
        assert body["details"]

    def test_sixth_attempt_in_window_is_rate_limited(self, client: TestClient) -> None:
        """Test that the login policy admits five attempts per fifteen minutes."""
        for _ in range(5):
            assert _login(client, "nobody@edgevantagepro.com", "bad").status_code == 401

        response = _login(client, "nobody@edgevantagepro.com", "bad")

        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Too many requests"
        assert 0 < body["retryAfter"] <= 900
        assert response.headers["Retry-After"] == str(body["retryAfter"])
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert int(response.headers["X-RateLimit-Reset"]) > 0

    def test_malformed_logins_consume_the_auth_policy(self, client: TestClient) -> None:
        """Test that unparseable login bodies are throttled like any other attempt."""
        statuses = [
            client.post("/api/admin/auth", content=b"{", headers={"Content-Type": "application/json"}).status_code
            for _ in range(8)
        ]

        assert statuses == [400] * 5 + [429] * 3

    def test_rate_limit_is_per_client(self, client: TestClient) -> None:
        for _ in range(5):
            _login(client, "nobody@edgevantagepro.com", "bad", **{"X-Forwarded-For": "10.0.0.1"})

        blocked = _login(client, "nobody@edgevantagepro.com", "bad", **{"X-Forwarded-For": "10.0.0.1"})
        other = _login(client, "nobody@edgevantagepro.com", "bad", **{"X-Forwarded-For": "10.0.0.2"})

        assert blocked.status_code == 429
        assert other.status_code == 401


class TestLockout:
    def test_account_locks_after_five_failures(self, client: TestClient, admin_credentials, monkeypatch) -> None:
        """Test that the sixth login after five bad passwords is 423 even with the right password."""
        monkeypatch.setattr(settings.rate_limit, "auth_max_requests", 100)

        for _ in range(5):
            assert _login(client, admin_credentials["email"], "wrong").status_code == 401

        response = _login(client, **admin_credentials)

        assert response.status_code == 423
        assert response.json()["success"] is False
        assert "locked" in response.json()["error"]

    def test_success_resets_failure_count(self, client: TestClient, admin_credentials, monkeypatch) -> None:
        monkeypatch.setattr(settings.rate_limit, "auth_max_requests", 100)

        for _ in range(4):
            _login(client, admin_credentials["email"], "wrong")
        assert _login(client, **admin_credentials).status_code == 200

        for _ in range(4):
            _login(client, admin_credentials["email"], "wrong")
        assert _login(client, **admin_credentials).status_code == 200


class TestLogoutAndVerify:
    def test_verify_requires_session(self, client: TestClient) -> None:
        response = client.get("/api/admin/verify")

        assert response.status_code == 401
        assert response.json()["error"] == "Authentication required"

    def test_verify_after_login(self, client: TestClient, admin_credentials) -> None:
        _login(client, **admin_credentials)

        response = client.get("/api/admin/verify")

        assert response.status_code == 200
        assert response.json()["data"]["admin"]["email"] == admin_credentials["email"]

    def test_logout_clears_cookie(self, client: TestClient, admin_credentials) -> None:
        _login(client, **admin_credentials)

        response = client.delete("/api/admin/auth")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert "Max-Age=0" in response.headers["set-cookie"]
        assert client.get("/api/admin/verify").status_code == 401

    def test_logout_without_session_succeeds(self, client: TestClient) -> None:
        assert client.delete("/api/admin/auth").status_code == 200
