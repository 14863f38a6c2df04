"""Tests for Firebase ID token verification and account resolution."""
import time
from datetime import datetime, timedelta, timezone

import pytest
from conftest import make_account
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from jose import jwt as jose_jwt

from matfinder.models import UserAccount

KID = "test-key-1"
PROJECT = "matfinder-test"


@pytest.fixture(scope="module")
def signing_key():
    """RSA key with a self-signed certificate, standing in for Google's securetoken keys."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "securetoken.test")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    cert_pem = cert.public_bytes(serialization.Encoding.PEM).decode()
    return private_pem, cert_pem


@pytest.fixture(autouse=True)
def google_keys(monkeypatch, signing_key):
    monkeypatch.setattr("matfinder.auth._cached_keys", {KID: signing_key[1]})


def firebase_token(signing_key, **overrides) -> str:
    now = int(time.time())
    claims = {
        "iss": f"https://securetoken.google.com/{PROJECT}",
        "aud": PROJECT,
        "auth_time": now - 10,
        "iat": now - 10,
        "exp": now + 3600,
        "sub": "firebase-uid-1",
        "email": "firebase.user@example.com",
        "email_verified": True,
        "name": "Firebase User",
    }
    claims.update(overrides)
    return jose_jwt.encode(claims, signing_key[0], algorithm="RS256", headers={"kid": KID})


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestFirebaseTokens:
    def test_first_sign_in_creates_account(self, client, db, signing_key):
        response = client.get("/accounts/me", headers=bearer(firebase_token(signing_key)))
        assert response.status_code == 200

        data = response.json()
        assert data["email"] == "firebase.user@example.com"
        assert data["isVerified"] is True
        assert data["hasPassword"] is False

        account = db.query(UserAccount).filter(UserAccount.firebase_uid == "firebase-uid-1").one()
        assert account.name == "Firebase User"

    def test_links_existing_local_account(self, client, db, signing_key):
        local_id = make_account(db, "firebase.user@example.com", "localuser", verified=False).id

        response = client.get("/accounts/me", headers=bearer(firebase_token(signing_key)))
        assert response.json()["id"] == local_id

        db.expire_all()
        assert db.query(UserAccount).count() == 1
        assert db.query(UserAccount).one().firebase_uid == "firebase-uid-1"

    def test_wrong_audience(self, client, signing_key):
        token = firebase_token(signing_key, aud="someone-else")
        assert client.get("/accounts/me", headers=bearer(token)).status_code == 401

    def test_wrong_issuer(self, client, signing_key):
        token = firebase_token(signing_key, iss="https://evil.example.com")
        assert client.get("/accounts/me", headers=bearer(token)).status_code == 401

    def test_expired(self, client, signing_key):
        token = firebase_token(signing_key, exp=int(time.time()) - 60)
        response = client.get("/accounts/me", headers=bearer(token))
        assert response.status_code == 401
        assert response.headers.get("X-Token-Expired") == "true"

    def test_tampered_signature(self, client, signing_key):
        token = firebase_token(signing_key)
        header, payload, signature = token.split(".")
        forged = firebase_token(signing_key, sub="someone-else").split(".")[1]
        response = client.get("/accounts/me", headers=bearer(f"{header}.{forged}.{signature}"))
        assert response.status_code == 401

    def test_malformed_token(self, client):
        assert client.get("/accounts/me", headers=bearer("not-a-jwt")).status_code == 401


class TestAuthorization:
    def test_missing_header(self, client):
        assert client.get("/accounts/me").status_code in (401, 403)

    def test_admin_required(self, client, user_headers):
        assert client.get("/admin/users", headers=user_headers).status_code == 403
