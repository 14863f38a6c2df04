"""Tests for registration, sign-in, verification and account settings."""
import pytest
from conftest import DEFAULT_PASSWORD, auth_headers

from matfinder.config import USER_COLLECTION
from matfinder.models import UserAccount
from matfinder.security_utils import generate_verification_token
from matfinder.services.cloud_functions import CloudFunctionError

REGISTRATION = {
    "email": "Helio@Example.com",
    "userName": "helio",
    "name": "Helio Gracie",
    "password": DEFAULT_PASSWORD,
    "belt": "black",
}


def sent_tokens(cloud) -> list[str]:
    return [data["verificationToken"] for name, data in cloud.calls if name == "sendVerificationEmail"]


class TestRegistration:
    def test_register(self, client, db, cloud, remote_store):
        response = client.post("/accounts/register", json=REGISTRATION)
        assert response.status_code == 201

        data = response.json()
        assert data["email"] == "helio@example.com"
        assert data["isVerified"] is False
        assert data["isAdmin"] is False
        assert data["hasPassword"] is True
        assert "password" not in data

        account = db.query(UserAccount).filter(UserAccount.email == "helio@example.com").one()
        assert account.password_hash.startswith("$scrypt$")
        assert account.password_salt
        assert account.password_iterations == 16

        # Verification email and profile mirror run as background tasks
        assert len(sent_tokens(cloud)) == 1
        mirrored = remote_store.docs(USER_COLLECTION)[account.id]
        assert mirrored.data["userName"] == "helio"
        assert "password" not in str(mirrored.data).lower()

    def test_admin_email_bootstraps_admin(self, client):
        payload = {**REGISTRATION, "email": "admin@matfinder.test", "userName": "boss"}
        assert client.post("/accounts/register", json=payload).json()["isAdmin"] is True

    def test_duplicate_email(self, client):
        client.post("/accounts/register", json=REGISTRATION)
        response = client.post("/accounts/register", json={**REGISTRATION, "userName": "other"})
        assert response.status_code == 409

    def test_duplicate_user_name_case_insensitive(self, client):
        client.post("/accounts/register", json=REGISTRATION)
        response = client.post(
            "/accounts/register", json={**REGISTRATION, "email": "x@example.com", "userName": "HELIO"}
        )
        assert response.status_code == 409

    def test_weak_password(self, client):
        response = client.post("/accounts/register", json={**REGISTRATION, "password": "password1"})
        assert response.status_code == 422
        assert response.json()["detail"]["feedback"]

    def test_invalid_email(self, client):
        response = client.post("/accounts/register", json={**REGISTRATION, "email": "helio"})
        assert response.status_code == 422

    def test_email_failure_does_not_block_registration(self, client, cloud):
        cloud.fail_with = CloudFunctionError("sendVerificationEmail", "boom", status_code=500)
        assert client.post("/accounts/register", json=REGISTRATION).status_code == 201


class TestLogin:
    @pytest.fixture(autouse=True)
    def registered(self, client):
        client.post("/accounts/register", json=REGISTRATION)

    @pytest.mark.parametrize("identifier", ["helio@example.com", "HELIO@example.com", "helio", "Helio"])
    def test_login(self, client, identifier):
        response = client.post(
            "/accounts/login", json={"identifier": identifier, "password": DEFAULT_PASSWORD}
        )
        assert response.status_code == 200

        data = response.json()
        assert data["tokenType"] == "bearer"
        assert data["account"]["userName"] == "helio"

        me = client.get("/accounts/me", headers={"Authorization": f"Bearer {data['accessToken']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "helio@example.com"

    def test_wrong_password(self, client):
        response = client.post("/accounts/login", json={"identifier": "helio", "password": "Nope12345"})
        assert response.status_code == 401

    def test_unknown_user(self, client):
        response = client.post(
            "/accounts/login", json={"identifier": "nobody", "password": DEFAULT_PASSWORD}
        )
        assert response.status_code == 401

    def test_invalid_session_token(self, client):
        response = client.get("/accounts/me", headers={"Authorization": "Bearer abc.def.ghi"})
        assert response.status_code == 401


class TestVerification:
    def test_verify_email(self, client, cloud):
        client.post("/accounts/register", json=REGISTRATION)
        token = sent_tokens(cloud)[0]

        response = client.post("/accounts/verify", json={"token": token})
        assert response.status_code == 200
        assert response.json()["isVerified"] is True

    def test_invalid_token(self, client):
        response = client.post("/accounts/verify", json={"token": "garbage"})
        assert response.status_code == 400

    def test_token_for_unknown_email(self, client):
        token = generate_verification_token("ghost@example.com")
        assert client.post("/accounts/verify", json={"token": token}).status_code == 400

    def test_resend_supersedes_old_token(self, client, db, cloud):
        client.post("/accounts/register", json=REGISTRATION)
        old_token = sent_tokens(cloud)[0]
        account = db.query(UserAccount).filter(UserAccount.user_name == "helio").one()

        response = client.post("/accounts/resend-verification", headers=auth_headers(account))
        assert response.status_code == 200
        new_token = sent_tokens(cloud)[1]
        assert new_token != old_token

        assert client.post("/accounts/verify", json={"token": old_token}).status_code == 400
        assert client.post("/accounts/verify", json={"token": new_token}).status_code == 200

    def test_resend_when_verified(self, client, user_headers):
        response = client.post("/accounts/resend-verification", headers=user_headers)
        assert response.status_code == 400


class TestProfile:
    def test_update_profile(self, client, user_headers):
        response = client.patch(
            "/accounts/me", json={"name": "Roger", "belt": "brown"}, headers=user_headers
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Roger"
        assert response.json()["belt"] == "brown"

    def test_user_name_taken(self, client, other_user, user_headers):
        response = client.patch("/accounts/me", json={"userName": "rival"}, headers=user_headers)
        assert response.status_code == 409

    def test_personalized_ads_need_tracking(self, client, user_headers):
        response = client.patch(
            "/accounts/me/ad-settings", json={"personalizedAds": True}, headers=user_headers
        )
        assert response.json()["personalizedAds"] is False

        response = client.patch(
            "/accounts/me/ad-settings",
            json={"trackingAuthorized": True, "personalizedAds": True},
            headers=user_headers,
        )
        assert response.json()["trackingAuthorized"] is True
        assert response.json()["personalizedAds"] is True

        # Revoking tracking turns personalized ads off as well
        response = client.patch(
            "/accounts/me/ad-settings", json={"trackingAuthorized": False}, headers=user_headers
        )
        assert response.json()["personalizedAds"] is False

    def test_change_password(self, client, user_headers):
        response = client.post(
            "/accounts/me/password",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "NewerPass2025"},
            headers=user_headers,
        )
        assert response.status_code == 200

        login = client.post(
            "/accounts/login", json={"identifier": "grappler", "password": "NewerPass2025"}
        )
        assert login.status_code == 200

    def test_change_password_wrong_current(self, client, user_headers):
        response = client.post(
            "/accounts/me/password",
            json={"currentPassword": "WrongPass123", "newPassword": "NewerPass2025"},
            headers=user_headers,
        )
        assert response.status_code == 401


class TestDeleteAccount:
    def test_delete_me(self, client, db, user, user_headers, cloud):
        user_id = user.id
        response = client.delete("/accounts/me", headers=user_headers)
        assert response.status_code == 200
        assert cloud.calls == [("deleteUserData", {"uid": user_id, "email": "grappler@example.com"})]

        db.expire_all()
        assert db.query(UserAccount).filter(UserAccount.id == user_id).first() is None

    def test_remote_failure_keeps_account(self, client, db, user, user_headers, cloud):
        cloud.fail_with = CloudFunctionError("deleteUserData", "unavailable", status_code=503)
        response = client.delete("/accounts/me", headers=user_headers)
        assert response.status_code == 502

        db.expire_all()
        assert db.query(UserAccount).filter(UserAccount.id == user.id).first() is not None
