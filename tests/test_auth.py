"""
Login, token issuance and the bearer-token guard.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from auth import StaticCredentialVerifier, bearer_token, decode_token, issue_token
from errors import InvalidSignature, InvalidToken, Unauthenticated


class TestLogin:
    def test_login_with_valid_credentials_returns_token(self, client, settings):
        response = client.post("/login", json={"username": "admin", "password": "password"})

        assert response.status_code == 200
        claims = decode_token(response.json()["token"], settings)
        assert claims.username == "admin"

    def test_login_with_wrong_password(self, client):
        response = client.post("/login", json={"username": "admin", "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "invalid credentials"}

    def test_login_with_unknown_user(self, client):
        response = client.post("/login", json={"username": "mallory", "password": "password"})

        assert response.status_code == 401

    def test_login_with_missing_field(self, client):
        response = client.post("/login", json={"username": "admin"})

        assert response.status_code == 400
        assert response.json() == {"error": "invalid request body"}

    def test_issued_token_is_accepted_by_guard(self, client, token):
        response = client.get("/meeting_rooms", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200

    def test_token_expires_after_configured_ttl(self, settings):
        before = datetime.now(timezone.utc)
        claims = decode_token(issue_token("admin", settings), settings)

        expected = before + timedelta(hours=24)
        assert abs((claims.expires_at - expected).total_seconds()) < 5


class TestStaticCredentialVerifier:
    def test_accepts_only_configured_account(self):
        verifier = StaticCredentialVerifier("alice", "s3cret")

        assert verifier.verify("alice", "s3cret") is True
        assert verifier.verify("alice", "wrong") is False
        assert verifier.verify("bob", "s3cret") is False
        assert verifier.verify("", "") is False


class TestBearerToken:
    def test_missing_header(self):
        with pytest.raises(Unauthenticated, match="missing authorization header"):
            bearer_token(None)

    @pytest.mark.parametrize("header", ["B", "Bear", "Bearer", "Bearer ", "Basic abc", "bearer abc"])
    def test_malformed_header(self, header):
        with pytest.raises(Unauthenticated):
            bearer_token(header)

    def test_strips_prefix(self):
        assert bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"


class TestDecodeToken:
    def test_rejects_other_signing_algorithm(self, settings):
        token = jwt.encode(
            {"username": "admin", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            settings.jwt_secret,
            algorithm="HS512",
        )

        with pytest.raises(InvalidToken):
            decode_token(token, settings)

    def test_rejects_bad_signature(self, settings):
        token = jwt.encode(
            {"username": "admin", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "a-completely-different-secret-of-decent-length",
            algorithm="HS256",
        )

        with pytest.raises(InvalidSignature):
            decode_token(token, settings)

    def test_rejects_expired_token(self, settings):
        token = jwt.encode(
            {"username": "admin", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.jwt_secret,
            algorithm="HS256",
        )

        with pytest.raises(InvalidToken):
            decode_token(token, settings)

    def test_rejects_token_without_username(self, settings):
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            settings.jwt_secret,
            algorithm="HS256",
        )

        with pytest.raises(InvalidToken):
            decode_token(token, settings)

    def test_rejects_garbage(self, settings):
        with pytest.raises(InvalidToken):
            decode_token("not-a-jwt", settings)


class TestGuardedRoutes:
    def test_missing_authorization_header(self, client, room):
        response = client.post(
            f"/meeting_rooms/{room['id']}/bookings",
            data={"start": "2024-01-01T10:00:00Z", "end": "2024-01-01T11:00:00Z"},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "missing authorization header"}

    def test_header_shorter_than_prefix(self, client, room):
        response = client.post(
            f"/meeting_rooms/{room['id']}/bookings",
            data={"start": "2024-01-01T10:00:00Z", "end": "2024-01-01T11:00:00Z"},
            headers={"Authorization": "Bear"},
        )

        assert response.status_code == 401
        assert "error" in response.json()

    def test_bad_signature_is_reported(self, client):
        token = jwt.encode(
            {"username": "admin", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "a-completely-different-secret-of-decent-length",
            algorithm="HS256",
        )

        response = client.get("/meeting_rooms", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json() == {"error": "invalid token signature"}

    def test_health_is_public(self, client):
        assert client.get("/health").json() == {"status": "ok"}
