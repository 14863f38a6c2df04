"""Account router - registration, sign-in and profile endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import UserAccount
from ...rate_limiter import get_client_ip, rate_limit_login, rate_limit_register
from ...services.cloud_functions import CloudFunctionsClient, get_cloud_functions
from ...services.firestore_client import FirestoreClient, get_optional_document_store
from .schemas import (
    AccountResponse,
    AccountUpdate,
    AdSettingsUpdate,
    LoginRequest,
    PasswordChangeRequest,
    RegisterRequest,
    TokenResponse,
    VerifyEmailRequest,
)
from .service import AccountService, mirror_user_profile, profile_document, send_verification_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts", tags=["Accounts"])


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    """Dependency injection for AccountService"""
    return AccountService(db)


def _queue_profile_mirror(
    background_tasks: BackgroundTasks, store: Optional[FirestoreClient], account: UserAccount
) -> None:
    background_tasks.add_task(
        mirror_user_profile, store, account.firebase_uid or account.id, profile_document(account)
    )


# ============================================================================
# REGISTRATION & SIGN-IN
# ============================================================================


@router.post(
    "/register",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit_register)],
)
async def register(
    data: RegisterRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    service: AccountService = Depends(get_account_service),
    cloud: CloudFunctionsClient = Depends(get_cloud_functions),
    store: Optional[FirestoreClient] = Depends(get_optional_document_store),
):
    """Create an account and send the verification email"""
    account = service.register(data, ip_address=get_client_ip(request))
    background_tasks.add_task(
        send_verification_email, cloud, account.email, account.user_name, account.verification_token
    )
    _queue_profile_mirror(background_tasks, store, account)
    return AccountResponse.from_account(account)


@router.post("/login", response_model=TokenResponse, dependencies=[Depends(rate_limit_login)])
async def login(
    data: LoginRequest,
    request: Request,
    service: AccountService = Depends(get_account_service),
):
    """Sign in with email or user name and password"""
    return service.login(data.identifier, data.password, ip_address=get_client_ip(request))


@router.post("/verify", response_model=AccountResponse)
async def verify_email(
    data: VerifyEmailRequest,
    background_tasks: BackgroundTasks,
    service: AccountService = Depends(get_account_service),
    store: Optional[FirestoreClient] = Depends(get_optional_document_store),
):
    account = service.verify_email(data.token)
    _queue_profile_mirror(background_tasks, store, account)
    return AccountResponse.from_account(account)


@router.post("/resend-verification")
async def resend_verification(
    background_tasks: BackgroundTasks,
    current_user: UserAccount = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
    cloud: CloudFunctionsClient = Depends(get_cloud_functions),
):
    token = service.issue_verification_token(current_user)
    background_tasks.add_task(
        send_verification_email,
        cloud,
        current_user.email,
        current_user.user_name or current_user.name or "",
        token,
    )
    return {"message": "Verification email sent"}


# ============================================================================
# PROFILE & SETTINGS
# ============================================================================


@router.get("/me", response_model=AccountResponse)
async def get_me(current_user: UserAccount = Depends(get_current_user)):
    return AccountResponse.from_account(current_user)


@router.patch("/me", response_model=AccountResponse)
async def update_me(
    data: AccountUpdate,
    background_tasks: BackgroundTasks,
    current_user: UserAccount = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
    store: Optional[FirestoreClient] = Depends(get_optional_document_store),
):
    account = service.update_profile(current_user, data)
    _queue_profile_mirror(background_tasks, store, account)
    return AccountResponse.from_account(account)


@router.patch("/me/ad-settings", response_model=AccountResponse)
async def update_ad_settings(
    data: AdSettingsUpdate,
    current_user: UserAccount = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Ad-tracking consent; personalized ads require tracking authorization"""
    return AccountResponse.from_account(service.update_ad_settings(current_user, data))


@router.post("/me/password")
async def change_password(
    data: PasswordChangeRequest,
    current_user: UserAccount = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    return service.change_password(current_user, data)


@router.delete("/me")
async def delete_me(
    current_user: UserAccount = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
    cloud: CloudFunctionsClient = Depends(get_cloud_functions),
):
    """Delete the account and all remote user data"""
    return await service.delete_account(current_user, cloud)


__all__ = ["router"]
