"""Tests for the SecureKey HTTP API.

Covers:
  - Session tokens: issue/decode, missing, forged, expired
  - Register -> verify-mfa -> vault CRUD happy path
  - MFA gate (403 requireMFA), verified gate, error mapping
  - Request validation (400 {success: false, errors})
  - Strength check response contract
  - Password reset, profile and settings endpoints
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from zxcvbn import zxcvbn

from securekey.api.main import app, status_for_error
from securekey.api.security import decode_token, issue_token
from securekey.api.services import build_services, get_services
from securekey.core.config import Settings
from securekey.core.errors import (
    AuthenticationError,
    IntegrityError,
    MFARequiredError,
    NotFoundError,
)
from securekey.mfa import CodePurpose, OutboxNotifier
from securekey.strength import SCORE_MAPPING
from securekey.vault.encryption import SecretKeyProvider

PASSWORD = "Str0ng!Passw0rd"
HASH_ITERATIONS = 1000


# ── Fixtures ─────────────────────────────────────────────────────────

def _make_services(tmp_path, clock, key_provider):
    return build_services(
        Settings(db_path=tmp_path / "api.db", session_secret="test-session-secret"),
        notifier=OutboxNotifier(),
        key_provider=key_provider,
        clock=clock,
        hash_iterations=HASH_ITERATIONS,
    )


@pytest.fixture
def services(tmp_path, clock, key_provider):
    return _make_services(tmp_path, clock, key_provider)


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def _register(client, email="ivan@example.com"):
    resp = client.post("/api/register", json={
        "name": "Ivan Example", "email": email, "password": PASSWORD,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def _verify(client, services, body):
    code = services.notifier.latest(body["user"]["email"], CodePurpose.MFA)
    resp = client.post(
        "/api/verify-mfa",
        json={"otp": code.value},
        headers={"X-Session-Token": body["token"]},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.fixture
def auth(client, services):
    """Headers for a registered, verified user with a running MFA session."""
    body = _register(client)
    _verify(client, services, body)
    return {"X-Session-Token": body["token"]}


# ── Tokens ───────────────────────────────────────────────────────────

class TestSessionTokens:

    def test_round_trip(self, clock):
        token = issue_token("user-1", "secret", clock(), timedelta(days=10))
        assert decode_token(token, "secret", clock()) == "user-1"

    def test_wrong_secret(self, clock):
        token = issue_token("user-1", "secret", clock(), timedelta(days=10))
        assert decode_token(token, "other", clock()) is None

    def test_tampered_user(self, clock):
        token = issue_token("user-1", "secret", clock(), timedelta(days=10))
        assert decode_token("user-2" + token[len("user-1"):], "secret", clock()) is None

    def test_expired(self, clock):
        token = issue_token("user-1", "secret", clock(), timedelta(days=10))
        assert decode_token(token, "secret", clock() + timedelta(days=10)) is None

    @pytest.mark.parametrize("token", ["", "garbage", "a.b", "a.notanumber.sig"])
    def test_malformed(self, clock, token):
        assert decode_token(token, "secret", clock()) is None


class TestAuthGuards:

    def test_missing_token(self, client):
        resp = client.get("/api/mfa/status")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Missing X-Session-Token header"}

    def test_forged_token(self, client):
        resp = client.get("/api/mfa/status", headers={"X-Session-Token": "u.9999999999.bad"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Invalid session token"}

    def test_token_expires(self, client, auth, clock):
        clock.advance(days=11)
        assert client.get("/api/mfa/status", headers=auth).status_code == 401

    def test_vault_requires_mfa_after_register(self, client):
        body = _register(client)
        resp = client.get("/api/passwords", headers={"X-Session-Token": body["token"]})
        assert resp.status_code == 403
        assert resp.json() == {
            "success": False,
            "message": "MFA verification required",
            "requireMFA": True,
        }

    def test_session_lapse_requires_mfa(self, client, auth, clock):
        clock.advance(minutes=10)
        resp = client.get("/api/passwords", headers=auth)
        assert resp.status_code == 403
        assert resp.json()["requireMFA"] is True


# ── Accounts ─────────────────────────────────────────────────────────

class TestAccountRoutes:

    def test_register_response(self, client):
        body = _register(client)
        assert body["success"] is True
        assert body["requireMFA"] is True
        assert body["verified"] is False
        assert body["mfaRequired"] is True
        assert body["user"]["email"] == "ivan@example.com"
        assert "password_hash" not in body["user"]

    def test_duplicate_register(self, client):
        _register(client)
        resp = client.post("/api/register", json={
            "name": "Ivan Again", "email": "ivan@example.com", "password": PASSWORD,
        })
        assert resp.status_code == 400
        assert resp.json()["message"] == "User already exists"

    def test_register_validation(self, client):
        resp = client.post("/api/register", json={
            "name": "I", "email": "not-an-email", "password": "weak",
        })
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert {e["field"] for e in body["errors"]} == {"name", "email", "password"}

    def test_verify_marks_account_verified(self, client, services):
        body = _register(client)
        result = _verify(client, services, body)
        assert result["verified"] is True
        assert result["mfaRequired"] is False
        assert result["mfaSessionDuration"] == 10

    def test_verify_wrong_code(self, client, services):
        body = _register(client)
        code = services.notifier.latest("ivan@example.com", CodePurpose.MFA).value
        wrong = f"{(int(code) + 1) % 1_000_000:06d}"
        resp = client.post("/api/verify-mfa", json={"otp": wrong},
                           headers={"X-Session-Token": body["token"]})
        assert resp.status_code == 400

    def test_verify_rejects_non_numeric_code(self, client):
        body = _register(client)
        resp = client.post("/api/verify-mfa", json={"otp": "12ab56"},
                           headers={"X-Session-Token": body["token"]})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "otp"

    def test_login(self, client, auth):
        resp = client.post("/api/login", json={"email": "ivan@example.com", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Login successful"
        assert "requireMFA" not in body

    def test_login_after_lapse_requires_mfa(self, client, auth, clock):
        clock.advance(minutes=30)
        resp = client.post("/api/login", json={"email": "ivan@example.com", "password": PASSWORD})
        body = resp.json()
        assert body["requireMFA"] is True
        assert body["message"] == "Login successful! MFA required."

    def test_login_before_verifying_keeps_emailed_code(self, client, services):
        registered = _register(client)
        resp = client.post("/api/login", json={"email": "ivan@example.com", "password": PASSWORD})
        body = resp.json()
        assert body["message"] == "Registration successful! MFA required."

        result = _verify(client, services, body)
        assert result["verified"] is True
        assert registered["user"]["_id"] == body["user"]["_id"]

    def test_login_wrong_password(self, client, auth):
        resp = client.post("/api/login", json={
            "email": "ivan@example.com", "password": "Wr0ng!Password",
        })
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid email and/or password"

    def test_logout_ends_session(self, client, auth):
        assert client.get("/api/logout", headers=auth).status_code == 200
        assert client.get("/api/passwords", headers=auth).status_code == 403

    def test_send_mfa_code_restarts_challenge(self, client, auth):
        resp = client.post("/api/send-mfa-code", headers=auth)
        assert resp.json()["requireMFA"] is True
        assert client.get("/api/mfa/status", headers=auth).json()["mfaRequired"] is True

    def test_mfa_duration(self, client, auth):
        resp = client.put("/api/mfa/duration", json={"duration": 30}, headers=auth)
        assert resp.status_code == 200
        assert resp.json()["mfaSessionDuration"] == 30

        resp = client.put("/api/mfa/duration", json={"duration": 61}, headers=auth)
        assert resp.status_code == 400

    def test_me(self, client, auth):
        body = client.get("/api/me", headers=auth).json()
        assert body["message"] == "Welcome back! Ivan Example"
        assert body["user"]["reminderFrequency"] == 90

    def test_update_profile(self, client, auth):
        resp = client.put("/api/updateprofile", json={"name": "  Ivan Renamed "}, headers=auth)
        assert resp.status_code == 200
        assert resp.json()["user"]["name"] == "Ivan Renamed"
        assert client.get("/api/me", headers=auth).json()["user"]["name"] == "Ivan Renamed"

    @pytest.mark.parametrize("name", ["I", "x" * 51])
    def test_update_profile_name_length(self, client, auth, name):
        resp = client.put("/api/updateprofile", json={"name": name}, headers=auth)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "name"

    def test_update_profile_requires_mfa(self, client):
        body = _register(client)
        resp = client.put("/api/updateprofile", json={"name": "Ivan Renamed"},
                          headers={"X-Session-Token": body["token"]})
        assert resp.status_code == 403

    def test_update_password(self, client, auth):
        resp = client.put("/api/updatepassword", headers=auth, json={
            "oldPassword": PASSWORD,
            "newPassword": "N3w!Passw0rdX",
            "confirmPassword": "N3w!Passw0rdX",
        })
        assert resp.status_code == 200

        resp = client.put("/api/updatepassword", headers=auth, json={
            "oldPassword": "N3w!Passw0rdX",
            "newPassword": "An0ther!Passw0rd",
            "confirmPassword": "Mismatch!1a",
        })
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["message"] == "Passwords do not match"

    def test_password_reset(self, client, services, auth):
        resp = client.post("/api/forgotpassword", json={"email": "ivan@example.com"})
        assert resp.status_code == 200
        code = services.notifier.latest("ivan@example.com", CodePurpose.RESET).value

        resp = client.post("/api/resetpassword", json={
            "email": "ivan@example.com", "otp": code, "newPassword": "R3set!Passw0rd",
        })
        assert resp.status_code == 200

        resp = client.post("/api/login", json={
            "email": "ivan@example.com", "password": "R3set!Passw0rd",
        })
        assert resp.status_code == 200

    def test_forgot_password_unknown_email(self, client):
        resp = client.post("/api/forgotpassword", json={"email": "nobody@example.com"})
        assert resp.status_code == 404

    def test_reminder_settings(self, client, auth):
        resp = client.put("/api/reminder-settings", json={"reminderFrequency": 45}, headers=auth)
        assert resp.json()["reminderFrequency"] == 45

        resp = client.put("/api/reminder-settings", json={"reminderFrequency": 29}, headers=auth)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "reminderFrequency"


# ── Vault ────────────────────────────────────────────────────────────

class TestVaultRoutes:

    def _add(self, client, auth, **overrides):
        payload = {
            "url": "https://example.com",
            "username": "ivan",
            "password": "Tr0ub4dor&3",
            "notes": "main account",
        }
        payload.update(overrides)
        resp = client.post("/api/passwords", json=payload, headers=auth)
        assert resp.status_code == 201, resp.text
        return resp.json()["password"]

    def test_crud(self, client, auth):
        created = self._add(client, auth)
        assert created["strengthScore"] == SCORE_MAPPING[zxcvbn("Tr0ub4dor&3")["score"]]
        assert "password" not in created

        resp = client.get(f"/api/passwords/{created['_id']}", headers=auth)
        assert resp.json()["password"]["password"] == "Tr0ub4dor&3"

        resp = client.put(f"/api/passwords/{created['_id']}", headers=auth,
                          json={"password": "password"})
        assert resp.json()["password"]["strengthScore"] == 25

        resp = client.delete(f"/api/passwords/{created['_id']}", headers=auth)
        assert resp.status_code == 200
        assert client.get(f"/api/passwords/{created['_id']}", headers=auth).status_code == 404

    def test_list_excludes_secrets(self, client, auth):
        self._add(client, auth)
        body = client.get("/api/passwords", headers=auth).json()
        assert body["count"] == 1
        assert "password" not in body["passwords"][0]

    @pytest.mark.parametrize("overrides,field", [
        ({"url": "not a url"}, "url"),
        ({"username": "x" * 101}, "username"),
        ({"notes": "x" * 501}, "notes"),
        ({"password": ""}, "password"),
    ])
    def test_add_validation(self, client, auth, overrides, field):
        payload = {"url": "https://example.com", "username": "ivan", "password": "p"}
        payload.update(overrides)
        resp = client.post("/api/passwords", json=payload, headers=auth)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == field

    def test_search(self, client, auth):
        self._add(client, auth, url="https://github.com")
        self._add(client, auth, url="https://bank.example.com")
        body = client.get("/api/passwords/search",
                          params={"query": "example", "sort": "alphabetical"},
                          headers=auth).json()
        assert body["count"] == 1
        assert body["totalPages"] == 1
        assert body["currentPage"] == 1

    def test_search_rejects_unknown_sort(self, client, auth):
        resp = client.get("/api/passwords/search", params={"sort": "random"}, headers=auth)
        assert resp.status_code == 400

    def test_update_needed(self, client, services, auth, clock):
        self._add(client, auth)
        assert client.get("/api/passwords/update-needed", headers=auth).json()["count"] == 0

        # Jump past the reminder date and open a fresh session
        clock.advance(days=91)
        resp = client.post("/api/login", json={"email": "ivan@example.com", "password": PASSWORD})
        body = resp.json()
        client.post("/api/send-mfa-code", headers={"X-Session-Token": body["token"]})
        _verify(client, services, body)
        headers = {"X-Session-Token": body["token"]}

        assert client.get("/api/passwords/update-needed", headers=headers).json()["count"] == 1

    def test_unknown_record(self, client, auth):
        assert client.get("/api/passwords/missing", headers=auth).status_code == 404
        assert client.delete("/api/passwords/missing", headers=auth).status_code == 404

    def test_unverified_account_cannot_modify(self, client, services, auth):
        created = self._add(client, auth)
        user_id = decode_token(auth["X-Session-Token"], "test-session-secret", services.clock())
        account = services.accounts.get(user_id)
        account.verified = False
        services.accounts.accounts.update(account)

        resp = client.put(f"/api/passwords/{created['_id']}", headers=auth, json={"notes": "x"})
        assert resp.status_code == 403
        resp = client.delete(f"/api/passwords/{created['_id']}", headers=auth)
        assert resp.status_code == 403


class TestCryptoFailure:

    def test_missing_key_is_generic_500(self, tmp_path, clock):
        services = _make_services(tmp_path, clock, SecretKeyProvider(None))
        app.dependency_overrides[get_services] = lambda: services
        try:
            client = TestClient(app)
            body = _register(client)
            _verify(client, services, body)
            resp = client.post("/api/passwords", headers={"X-Session-Token": body["token"]},
                               json={"url": "https://a.com", "username": "u", "password": "p"})
        finally:
            app.dependency_overrides.clear()

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": "Internal server error"}

    @pytest.mark.parametrize("exc,code", [
        (MFARequiredError("x"), 403),
        (AuthenticationError("x"), 401),
        (NotFoundError("x"), 404),
        (IntegrityError("x"), 500),
    ])
    def test_status_mapping(self, exc, code):
        assert status_for_error(exc) == code


# ── Strength ─────────────────────────────────────────────────────────

class TestStrengthRoute:

    def test_weak_password(self, client):
        resp = client.post("/api/check-password-strength", json={"password": "password"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["strengthScore"] == 25
        assert body["strengthCategory"] == "Weak"
        assert set(body["recommendation"]) == {"warning", "suggestions"}
        assert len(body["recommendedPassword"]["value"]) == 16
        assert set(body["details"]) == {"crackTimesSeconds", "crackTimesDisplay", "score", "feedback"}
        assert body["details"]["score"] == 0

    def test_strong_password_has_no_recommendation(self, client):
        resp = client.post("/api/check-password-strength",
                           json={"password": "c0rrect-Horse-battery-st@ple-42"})
        body = resp.json()
        assert body["strengthScore"] >= 60
        assert body["recommendation"] is None

    def test_empty_password(self, client):
        resp = client.post("/api/check-password-strength", json={"password": ""})
        assert resp.status_code == 400
