import base64
import json
import logging
import time

import httpx
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import ADMIN_EMAILS, FIREBASE_PROJECT_ID
from .database import get_db
from .models import UserAccount
from .security_utils import verify_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer()

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)

# Cache for Google's public keys
_cached_keys = None


def _b64decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def decode_token_header(token: str) -> dict:
    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format. Expected a valid JWT token.")
    try:
        return json.loads(_b64decode(parts[0]))
    except ValueError as e:
        logger.error(f"❌ Failed to decode token header: {e}")
        raise HTTPException(status_code=401, detail="Invalid token header") from e


async def get_google_public_keys(force_refresh: bool = False):
    """Fetch Google's public keys for Firebase token verification"""
    global _cached_keys
    if _cached_keys and not force_refresh:
        return _cached_keys

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(GOOGLE_CERTS_URL, timeout=10.0)
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Google public keys: {e}")
        return None

    if response.status_code != 200:
        logger.error(f"❌ Failed to fetch Google public keys: HTTP {response.status_code}")
        return None

    _cached_keys = response.json()
    logger.info(f"✅ Fetched {len(_cached_keys)} Google public keys")
    return _cached_keys


async def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token.
    Checks the RS256 signature against Google's certificates, then the
    audience, issuer, expiry, issued-at and auth_time claims.
    """
    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Firebase not configured")

    header = decode_token_header(token)
    header_b64, payload_b64, signature_b64 = token.split(".")

    kid = header.get("kid")
    if header.get("alg") != "RS256" or not kid:
        logger.error(f"❌ Invalid token header: alg={header.get('alg')}, kid={kid}")
        raise HTTPException(status_code=401, detail="Invalid token algorithm")

    public_keys = await get_google_public_keys()
    if not public_keys or kid not in public_keys:
        logger.warning(f"⚠️ Key ID {kid} not found in public keys, refreshing")
        public_keys = await get_google_public_keys(force_refresh=True)
        if not public_keys or kid not in public_keys:
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    try:
        cert = load_pem_x509_certificate(public_keys[kid].encode())
        cert.public_key().verify(
            _b64decode(signature_b64),
            f"{header_b64}.{payload_b64}".encode(),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        claims = json.loads(_b64decode(payload_b64))
    except Exception as e:
        logger.error(f"❌ Token signature verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    if claims.get("aud") != FIREBASE_PROJECT_ID:
        logger.error("❌ Token audience mismatch")
        raise HTTPException(status_code=401, detail="Invalid token audience")

    if claims.get("iss") != f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}":
        logger.error("❌ Token issuer mismatch")
        raise HTTPException(status_code=401, detail="Invalid token issuer")

    now = time.time()
    if claims.get("exp", 0) < now:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )

    # Allow 60 seconds clock skew
    if claims.get("iat", 0) > now + 60:
        logger.warning("⚠️ Token issued in the future")
        raise HTTPException(status_code=401, detail="Invalid token")

    if "auth_time" not in claims:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return claims


def _find_or_create_firebase_user(db: Session, claims: dict) -> UserAccount:
    firebase_uid = claims.get("sub") or claims.get("user_id")
    if not firebase_uid:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    email = (claims.get("email") or "").lower()
    email_verified = bool(claims.get("email_verified"))

    user = db.query(UserAccount).filter(UserAccount.firebase_uid == firebase_uid).first()
    if user:
        if email_verified and not user.is_verified:
            user.is_verified = True
            db.commit()
        return user

    if email:
        existing = db.query(UserAccount).filter(UserAccount.email == email).first()
        if existing:
            # Same person signing in through a provider after registering locally
            logger.info(f"🔄 Linking account {email} to Firebase UID {firebase_uid}")
            existing.firebase_uid = firebase_uid
            existing.is_verified = existing.is_verified or email_verified
            db.commit()
            db.refresh(existing)
            return existing

    logger.info(f"🆕 Creating account for Firebase user: {email or firebase_uid}")
    user = UserAccount(
        firebase_uid=firebase_uid,
        email=email or f"{firebase_uid}@users.noreply.firebase",
        name=claims.get("name"),
        is_verified=email_verified,
        is_admin=email in ADMIN_EMAILS,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"❌ Email {email} was taken by another account (race condition)")
        raise HTTPException(
            status_code=409,
            detail="This email is already registered. Please sign in with your existing account.",
        ) from e
    db.refresh(user)
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> UserAccount:
    """Resolve the account behind a local session JWT or a Firebase ID token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    header = decode_token_header(token)

    if header.get("alg") == "HS256":
        payload = verify_access_token(token)
        if not payload:
            raise HTTPException(
                status_code=401,
                detail="Session expired or invalid. Please sign in again.",
                headers={"X-Token-Expired": "true"},
            )
        user = db.query(UserAccount).filter(UserAccount.id == payload.get("sub")).first()
        if not user:
            raise HTTPException(status_code=401, detail="Account no longer exists")
        return user

    claims = await verify_firebase_token(token)
    user = _find_or_create_firebase_user(db, claims)
    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def get_verified_user(user: UserAccount = Depends(get_current_user)) -> UserAccount:
    """Accounts must verify their email before contributing data"""
    if not user.is_verified:
        logger.warning(f"⚠️ Unverified account {user.email} attempted a write")
        raise HTTPException(
            status_code=403,
            detail="Please verify your email address before continuing.",
            headers={"X-Verification-Required": "true"},
        )
    return user


async def require_admin(user: UserAccount = Depends(get_current_user)) -> UserAccount:
    if not user.is_admin:
        logger.warning(f"⚠️ Non-admin {user.email} attempted an admin action")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def user_identifier(user: UserAccount) -> str:
    """The ID recorded in createdByUserId / lastModifiedByUserId fields"""
    return user.firebase_uid or user.id
