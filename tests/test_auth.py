import pytest
from datetime import datetime, timedelta, timezone

from conftest import FakeAuthError

from app import config
from app.auth import decode_token, issue_token
from app.models import SessionUser


@pytest.mark.auth
class TestSessionTokens:
    def test_token_round_trip(self, admin_user):
        user = decode_token(issue_token(admin_user))
        assert user == admin_user
        assert user.is_admin

    def test_unset_secret_refuses_to_sign_or_verify(self, admin_user, monkeypatch):
        token = issue_token(admin_user)
        monkeypatch.setattr(config, "SESSION_SECRET", None)
        with pytest.raises(RuntimeError, match="SESSION_SECRET"):
            issue_token(admin_user)
        with pytest.raises(RuntimeError, match="SESSION_SECRET"):
            decode_token(token)

    def test_expired_token_rejected(self, client, plain_user):
        past = datetime.now(timezone.utc) - timedelta(minutes=config.SESSION_TTL_MINUTES + 5)
        token = issue_token(plain_user, now=past)
        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_missing_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing bearer token"

    def test_garbage_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_me(self, client, user_headers):
        response = client.get("/auth/me", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["email"] == "user@example.com"
        assert response.json()["role"] == "user"


@pytest.mark.auth
class TestLogin:
    """Sign-in against the provider with the local account fallback."""

    def _login(self, client, email, password):
        return client.post("/auth/login", json={"email": email, "password": password})

    def test_local_admin_when_provider_rejects(self, client):
        response = self._login(client, "admin@example.com", "123ADMIN")
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"] == {
            "user_id": "admin-local-id",
            "email": "admin@example.com",
            "role": "admin",
            "mode": "local",
        }
        assert decode_token(data["access_token"]).is_admin

    def test_local_user_role(self, client):
        data = self._login(client, "user@example.com", "USER").json()
        assert data["user"]["role"] == "user"
        assert data["user"]["mode"] == "local"

    def test_provider_success_for_builtin_account(self, client, fake_sb):
        fake_sb.auth.add_user("admin@example.com", "123ADMIN", "remote-admin")
        data = self._login(client, "admin@example.com", "123ADMIN").json()
        assert data["user"]["user_id"] == "remote-admin"
        assert data["user"]["mode"] == "remote"
        assert data["user"]["role"] == "admin"

    def test_provider_timeout_falls_back(self, client, fake_sb, monkeypatch):
        monkeypatch.setattr(config, "AUTH_TIMEOUT_SECONDS", 0.05)
        fake_sb.auth.add_user("admin@example.com", "123ADMIN", "remote-admin")
        fake_sb.auth.delay = 0.5
        data = self._login(client, "admin@example.com", "123ADMIN").json()
        assert data["user"]["mode"] == "local"

    def test_regular_account(self, client, fake_sb):
        fake_sb.auth.add_user("tech@woodshop.com", "s3cret", "u-9")
        data = self._login(client, "tech@woodshop.com", "s3cret").json()
        assert data["user"] == {"user_id": "u-9", "email": "tech@woodshop.com", "role": "user", "mode": "remote"}

    def test_role_claim_from_provider(self, client, fake_sb):
        fake_sb.auth.add_user("boss@woodshop.com", "s3cret", "u-1", app_metadata={"role": "admin"})
        data = self._login(client, "boss@woodshop.com", "s3cret").json()
        assert data["user"]["role"] == "admin"

    def test_wrong_password(self, client, fake_sb):
        fake_sb.auth.add_user("tech@woodshop.com", "s3cret", "u-9")
        response = self._login(client, "tech@woodshop.com", "nope")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    def test_wrong_password_for_builtin_account_does_not_fall_back(self, client):
        response = self._login(client, "admin@example.com", "wrong")
        assert response.status_code == 401

    def test_rate_limited(self, client, fake_sb):
        fake_sb.auth.error = FakeAuthError("Too many requests", status=429)
        response = self._login(client, "tech@woodshop.com", "s3cret")
        assert response.status_code == 429

    def test_local_accounts_disabled(self, client, monkeypatch):
        monkeypatch.setattr(config, "ALLOW_LOCAL_ACCOUNTS", False)
        response = self._login(client, "admin@example.com", "123ADMIN")
        assert response.status_code == 401

    def test_invalid_email(self, client):
        response = self._login(client, "not-an-email", "x")
        assert response.status_code == 422


@pytest.mark.auth
class TestLogout:
    def test_remote_logout_revokes_provider_session(self, client, fake_sb):
        fake_sb.auth.add_user("tech@woodshop.com", "s3cret", "u-9")
        token = client.post("/auth/login", json={"email": "tech@woodshop.com", "password": "s3cret"}).json()["access_token"]

        response = client.post("/auth/logout", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert fake_sb.auth.signed_out == ["provider-u-9"]

    def test_logout_succeeds_when_provider_revocation_fails(self, client, fake_sb):
        fake_sb.auth.add_user("tech@woodshop.com", "s3cret", "u-9")
        token = client.post("/auth/login", json={"email": "tech@woodshop.com", "password": "s3cret"}).json()["access_token"]
        fake_sb.auth.sign_out_error = Exception("session not found")

        response = client.post("/auth/logout", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert fake_sb.auth.signed_out == []

    def test_local_logout(self, client, fake_sb):
        token = issue_token(SessionUser(user_id="admin-local-id", email="admin@example.com", role="admin", mode="local"))
        response = client.post("/auth/logout", headers={"Authorization": f"Bearer {token}"})
        assert response.json() == {"ok": True}
        assert fake_sb.auth.signed_out == []

    def test_logout_requires_token(self, client):
        assert client.post("/auth/logout").status_code == 401
