"""Tests for password hashing and token helpers."""
from datetime import timedelta

from matfinder.security_utils import (
    check_password_strength,
    constant_time_compare,
    create_access_token,
    generate_verification_token,
    hash_password,
    mask_sensitive_data,
    verify_access_token,
    verify_password,
    verify_verification_token,
)


class TestPasswordHashing:
    def test_scrypt_hash_records_salt_and_iterations(self):
        hashed = hash_password("MatTime2024x")
        assert hashed["hash"].startswith("$scrypt$")
        assert hashed["salt"]
        # SCRYPT_ROUNDS=4 in the test environment
        assert hashed["iterations"] == 16

    def test_verify(self):
        hashed = hash_password("MatTime2024x")
        assert verify_password("MatTime2024x", hashed["hash"])
        assert not verify_password("wrong-password", hashed["hash"])

    def test_verify_without_hash(self):
        assert not verify_password("anything", None)

    def test_salts_differ(self):
        assert hash_password("same")["salt"] != hash_password("same")["salt"]


class TestPasswordStrength:
    def test_strong(self):
        assert check_password_strength("MatTime2024x")["is_valid"]

    def test_too_short(self):
        result = check_password_strength("Ab1")
        assert not result["is_valid"]
        assert any("8 characters" in f for f in result["feedback"])

    def test_common_password(self):
        assert not check_password_strength("password1")["is_valid"]


class TestTokens:
    def test_access_token_round_trip(self):
        token = create_access_token({"sub": "account-1"})
        payload = verify_access_token(token)
        assert payload["sub"] == "account-1"
        assert payload["typ"] == "access"

    def test_expired_access_token(self):
        token = create_access_token({"sub": "account-1"}, expires_delta=timedelta(seconds=-5))
        assert verify_access_token(token) is None

    def test_garbage_access_token(self):
        assert verify_access_token("not.a.token") is None

    def test_verification_token(self):
        token = generate_verification_token("coach@example.com")
        assert verify_verification_token(token)["email"] == "coach@example.com"

    def test_tampered_verification_token(self):
        token = generate_verification_token("coach@example.com")
        assert verify_verification_token(token[:-2] + "xx") is None

    def test_verification_tokens_are_unique(self):
        assert generate_verification_token("a@b.co") != generate_verification_token("a@b.co")


class TestHelpers:
    def test_constant_time_compare(self):
        assert constant_time_compare("abc", "abc")
        assert not constant_time_compare("abc", "abd")

    def test_mask(self):
        assert mask_sensitive_data("secret-value") == "********alue"
