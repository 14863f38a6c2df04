"""Account service - registration, sign-in, verification and settings"""

import logging
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import ACCESS_TOKEN_EXPIRE_MINUTES, ADMIN_EMAILS, USER_COLLECTION
from ...models import UserAccount, utcnow
from ...security_utils import (
    check_password_strength,
    constant_time_compare,
    create_access_token,
    generate_verification_token,
    hash_password,
    log_security_event,
    mask_sensitive_data,
    verify_password,
    verify_verification_token,
)
from ...services.cloud_functions import CloudFunctionError, CloudFunctionsClient
from ...services.firestore_client import FirestoreClient, RemoteStoreError
from .repository import AccountRepository
from .schemas import (
    AccountResponse,
    AccountUpdate,
    AdSettingsUpdate,
    PasswordChangeRequest,
    RegisterRequest,
    TokenResponse,
)

logger = logging.getLogger(__name__)


def profile_document(account: UserAccount) -> dict[str, Any]:
    """Public profile fields mirrored to the remote users collection"""
    return {
        "userID": account.firebase_uid or account.id,
        "email": account.email,
        "userName": account.user_name,
        "name": account.name,
        "belt": account.belt,
        "isVerified": account.is_verified,
        "createdTimestamp": account.created_at,
        "lastModifiedTimestamp": account.updated_at,
    }


# ============================================================================
# BACKGROUND SIDE EFFECTS
# ============================================================================


async def send_verification_email(
    cloud: CloudFunctionsClient, email: str, user_name: str, token: str
) -> None:
    """Background task; failures are logged, the user can ask for a resend"""
    try:
        await cloud.send_verification_email(email, user_name, token)
        logger.info(f"📧 Verification email requested for {email}")
    except CloudFunctionError as e:
        logger.error(f"❌ Failed to send verification email to {email}: {e}")


async def mirror_user_profile(store: Optional[FirestoreClient], document_id: str, profile: dict) -> None:
    """Background task; the local account stays authoritative"""
    if store is None:
        return
    try:
        await store.set_document(USER_COLLECTION, document_id, profile)
    except RemoteStoreError as e:
        logger.warning(f"⚠️ Could not mirror profile {document_id}: {e}")


class AccountService:
    """Service layer for account business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AccountRepository()

    def get_account(self, account_id: str) -> UserAccount:
        account = self.repo.get_by_id(self.db, account_id)
        if not account:
            raise HTTPException(status_code=404, detail="User not found")
        return account

    def _ensure_available(self, email: Optional[str] = None, user_name: Optional[str] = None,
                          exclude_id: Optional[str] = None) -> None:
        if email:
            existing = self.repo.get_by_email(self.db, email)
            if existing and existing.id != exclude_id:
                raise HTTPException(status_code=409, detail="An account with this email already exists")
        if user_name:
            existing = self.repo.get_by_user_name(self.db, user_name)
            if existing and existing.id != exclude_id:
                raise HTTPException(status_code=409, detail="This user name is already taken")

    @staticmethod
    def _require_strong_password(password: str) -> None:
        strength = check_password_strength(password)
        if not strength["is_valid"]:
            raise HTTPException(
                status_code=422,
                detail={"message": "Password is too weak", "feedback": strength["feedback"]},
            )

    # ------------------------------------------------------------------
    # Registration and sign-in
    # ------------------------------------------------------------------

    def register(self, data: RegisterRequest, ip_address: Optional[str] = None) -> UserAccount:
        """Create a local account; the caller sends the verification email"""
        self._ensure_available(email=data.email, user_name=data.userName)
        self._require_strong_password(data.password)

        hashed = hash_password(data.password)
        try:
            account = self.repo.create(
                self.db,
                email=data.email,
                user_name=data.userName,
                name=data.name,
                belt=data.belt,
                password_hash=hashed["hash"],
                password_salt=hashed["salt"],
                password_iterations=hashed["iterations"],
                verification_token=generate_verification_token(data.email),
                is_admin=data.email in ADMIN_EMAILS,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="An account with this email already exists") from e

        log_security_event("account_registered", user_id=account.id, ip_address=ip_address)
        logger.info(f"🆕 Account registered: {account.email}")
        return account

    def login(self, identifier: str, password: str, ip_address: Optional[str] = None) -> TokenResponse:
        account = self.repo.get_by_identifier(self.db, identifier)
        if not account or not verify_password(password, account.password_hash):
            log_security_event(
                "failed_login", ip_address=ip_address, details={"identifier": identifier}
            )
            raise HTTPException(status_code=401, detail="Invalid email/user name or password")

        log_security_event("login", user_id=account.id, ip_address=ip_address)
        return self.issue_session(account)

    @staticmethod
    def issue_session(account: UserAccount) -> TokenResponse:
        token = create_access_token({"sub": account.id, "email": account.email})
        return TokenResponse(
            accessToken=token,
            expiresIn=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            account=AccountResponse.from_account(account),
        )

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    def verify_email(self, token: str) -> UserAccount:
        payload = verify_verification_token(token)
        if not payload or not payload.get("email"):
            raise HTTPException(status_code=400, detail="Verification link is invalid or has expired")

        account = self.repo.get_by_email(self.db, payload["email"])
        if not account:
            raise HTTPException(status_code=400, detail="Verification link is invalid or has expired")
        if account.is_verified:
            return account
        # Only the most recently issued token is honoured
        if not account.verification_token or not constant_time_compare(account.verification_token, token):
            logger.warning(f"⚠️ Superseded verification token {mask_sensitive_data(token)} for {account.email}")
            raise HTTPException(status_code=400, detail="Verification link has been superseded")

        account = self.repo.update(self.db, account, is_verified=True, verification_token=None)
        logger.info(f"✅ Email verified: {account.email}")
        return account

    def issue_verification_token(self, account: UserAccount) -> str:
        if account.is_verified:
            raise HTTPException(status_code=400, detail="Email is already verified")
        token = generate_verification_token(account.email)
        self.repo.update(self.db, account, verification_token=token)
        return token

    def set_verified(self, account_id: str) -> UserAccount:
        """Admin override"""
        account = self.get_account(account_id)
        account = self.repo.update(self.db, account, is_verified=True, verification_token=None)
        logger.info(f"✅ Account {account.email} manually verified")
        return account

    def reset_verification(self, account_id: str) -> tuple[UserAccount, str]:
        """Admin action: mark unverified and issue a fresh token"""
        account = self.get_account(account_id)
        token = generate_verification_token(account.email)
        account = self.repo.update(self.db, account, is_verified=False, verification_token=token)
        logger.info(f"🔄 Verification reset for {account.email}")
        return account, token

    # ------------------------------------------------------------------
    # Profile and settings
    # ------------------------------------------------------------------

    def update_profile(self, account: UserAccount, data: AccountUpdate) -> UserAccount:
        updates = {}
        if data.userName is not None and data.userName != account.user_name:
            self._ensure_available(user_name=data.userName, exclude_id=account.id)
            updates["user_name"] = data.userName
        if data.name is not None:
            updates["name"] = data.name
        if "belt" in data.model_fields_set:
            updates["belt"] = data.belt
        updates["updated_at"] = utcnow()
        return self.repo.update(self.db, account, **updates)

    def update_ad_settings(self, account: UserAccount, data: AdSettingsUpdate) -> UserAccount:
        tracking = account.tracking_authorized if data.trackingAuthorized is None else data.trackingAuthorized
        personalized = account.personalized_ads if data.personalizedAds is None else data.personalizedAds
        # Personalized ads depend on tracking consent
        if not tracking:
            personalized = False
        return self.repo.update(
            self.db, account, tracking_authorized=tracking, personalized_ads=personalized
        )

    def change_password(self, account: UserAccount, data: PasswordChangeRequest) -> dict:
        if not verify_password(data.currentPassword, account.password_hash):
            log_security_event("failed_password_change", user_id=account.id)
            raise HTTPException(status_code=401, detail="Current password is incorrect")
        self._require_strong_password(data.newPassword)

        hashed = hash_password(data.newPassword)
        self.repo.update(
            self.db,
            account,
            password_hash=hashed["hash"],
            password_salt=hashed["salt"],
            password_iterations=hashed["iterations"],
        )
        log_security_event("password_changed", user_id=account.id)
        return {"message": "Password updated successfully"}

    async def delete_account(self, account: UserAccount, cloud: CloudFunctionsClient) -> dict:
        """Remove remote user data first so a failure leaves the account intact"""
        uid = account.firebase_uid or account.id
        try:
            await cloud.delete_user_data(uid, account.email)
        except CloudFunctionError as e:
            raise HTTPException(status_code=502, detail="Could not delete remote user data") from e

        email = account.email
        self.repo.delete(self.db, account)
        log_security_event("account_deleted", user_id=uid)
        logger.info(f"🗑️ Account deleted: {email}")
        return {"message": "Account deleted successfully"}

    def list_accounts(self, search: Optional[str] = None) -> list[UserAccount]:
        return self.repo.search(self.db, search)
