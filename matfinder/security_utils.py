"""
Security Utilities
Password hashing, session tokens and verification tokens
"""

import base64
import logging
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

# Token generation and validation
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from jose import JWTError
from jose import jwt as jose_jwt

# Password hashing
from passlib.context import CryptContext
from passlib.hash import scrypt as scrypt_handler

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, SCRYPT_ROUNDS, SECRET_KEY, VERIFICATION_TOKEN_MAX_AGE

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
VERIFICATION_SALT = "email-verification"

# Password hashing context
pwd_context = CryptContext(schemes=["scrypt"], deprecated="auto", scrypt__rounds=SCRYPT_ROUNDS)

# Symbols are welcome but not required
MIN_PASSWORD_LENGTH = 8
PASSWORD_RULES = [
    (r"[a-z]", "Add lowercase letters"),
    (r"[A-Z]", "Add uppercase letters"),
    (r"\d", "Add numbers"),
]
COMMON_PASSWORDS = {"password", "password1", "12345678", "qwerty123", "jiujitsu", "brazilianjj"}


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> dict[str, Any]:
    """
    Hash a password with scrypt.

    Returns:
        dict with 'hash' (full passlib string), 'salt' (base64) and
        'iterations' (the scrypt work factor N)
    """
    hashed = pwd_context.hash(password)
    parsed = scrypt_handler.from_string(hashed)
    return {
        "hash": hashed,
        "salt": base64.b64encode(parsed.salt).decode("ascii"),
        "iterations": 2**parsed.rounds,
    }


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against a stored scrypt hash"""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.error(f"Password verification error: {e}")
        return False


def check_password_strength(password: str) -> dict[str, Any]:
    """
    Check password strength and return feedback

    Returns:
        dict with 'score' (0-5), 'feedback' (list of suggestions) and 'is_valid' (bool)
    """
    feedback = [hint for pattern, hint in PASSWORD_RULES if not re.search(pattern, password)]
    score = len(PASSWORD_RULES) - len(feedback)

    if len(password) < MIN_PASSWORD_LENGTH:
        feedback.insert(0, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    else:
        score += 2 if len(password) >= 12 else 1

    if password.lower() in COMMON_PASSWORDS:
        score = 0
        feedback.append("This is a commonly used password - choose something unique")

    return {
        "score": score,
        "feedback": feedback,
        "is_valid": len(password) >= MIN_PASSWORD_LENGTH and score >= 4,
    }


# ============================================================================
# TOKEN GENERATION
# ============================================================================


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token"""
    return secrets.token_urlsafe(length)


def generate_verification_token(email: str) -> str:
    """Time-limited email verification token using itsdangerous"""
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    return serializer.dumps({"email": email, "nonce": generate_secure_token(8)}, salt=VERIFICATION_SALT)


def verify_verification_token(
    token: str, max_age: int = VERIFICATION_TOKEN_MAX_AGE
) -> Optional[dict[str, Any]]:
    """
    Verify and decode an email verification token

    Returns:
        Decoded data if valid, None if invalid or expired
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    try:
        return serializer.loads(token, salt=VERIFICATION_SALT, max_age=max_age)
    except SignatureExpired:
        logger.warning("Verification token expired")
        return None
    except BadSignature:
        logger.warning("Invalid verification token signature")
        return None


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a locally issued session JWT

    Args:
        data: Claims to encode; 'sub' should be the account ID
        expires_delta: Token lifetime (default ACCESS_TOKEN_EXPIRE_MINUTES)
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update({"exp": expire, "iat": now, "typ": "access"})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_access_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a locally issued JWT

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None
    if payload.get("typ") != "access":
        return None
    return payload


# ============================================================================
# AUDIT LOGGING
# ============================================================================


def log_security_event(
    event_type: str,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
):
    """Log security-related events (login, failed_login, account_deleted, ...)"""
    log_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "user_id": user_id,
        "ip_address": ip_address,
        "details": details or {},
    }
    logger.info(f"SECURITY_EVENT: {log_entry}")


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time"""
    return secrets.compare_digest(a.encode(), b.encode())


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """Mask sensitive data for logging, keeping the last few characters"""
    if len(data) <= visible_chars:
        return "*" * len(data)

    return "*" * (len(data) - visible_chars) + data[-visible_chars:]
