"""
Admin router - moderation of gyms, schedules, reviews and user accounts
All endpoints require an admin account.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import UserAccount
from ...security_utils import log_security_event
from ...services.cloud_functions import CloudFunctionError, CloudFunctionsClient, get_cloud_functions
from ..accounts.schemas import AccountResponse
from ..accounts.service import AccountService, send_verification_email
from ..reviews.schemas import ReviewResponse, ReviewSort
from ..reviews.service import ReviewService
from ..schedules.service import ScheduleService
from ..venues.service import VenueService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


class CustomTokenResponse(BaseModel):
    userId: str
    customToken: str


# ============================================================================
# CONTENT MODERATION
# ============================================================================


@router.get("/reviews", response_model=list[ReviewResponse])
async def list_reviews(
    sort: ReviewSort = Query(ReviewSort.LATEST),
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Every review across all gyms"""
    return [ReviewResponse.from_review(r) for r in ReviewService(db).list_all_reviews(sort)]


@router.delete("/reviews/{review_id}")
async def delete_review(
    review_id: str,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ReviewService(db).delete_review(review_id, admin)


@router.delete("/venues/{venue_id}")
async def delete_venue(
    venue_id: str,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete a gym with its schedule and reviews"""
    return VenueService(db).delete_venue(venue_id, admin)


@router.delete("/schedule-entries/{entry_id}")
async def delete_schedule_entry(
    entry_id: str,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ScheduleService(db).delete_entry(entry_id)


# ============================================================================
# USER MANAGEMENT
# ============================================================================


@router.get("/users", response_model=list[AccountResponse])
async def list_users(
    search: Optional[str] = Query(None),
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [AccountResponse.from_account(a) for a in AccountService(db).list_accounts(search)]


@router.post("/users/{user_id}/verify", response_model=AccountResponse)
async def verify_user(
    user_id: str,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
):
    account = AccountService(db).set_verified(user_id)
    log_security_event("admin_verified_user", user_id=admin.id, details={"target": user_id})
    return AccountResponse.from_account(account)


@router.post("/users/{user_id}/reset-verification", response_model=AccountResponse)
async def reset_user_verification(
    user_id: str,
    background_tasks: BackgroundTasks,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
    cloud: CloudFunctionsClient = Depends(get_cloud_functions),
):
    """Mark the user unverified and send a fresh verification email"""
    account, token = AccountService(db).reset_verification(user_id)
    background_tasks.add_task(
        send_verification_email, cloud, account.email, account.user_name or account.name or "", token
    )
    log_security_event("admin_reset_verification", user_id=admin.id, details={"target": user_id})
    return AccountResponse.from_account(account)


@router.post("/users/{user_id}/custom-token", response_model=CustomTokenResponse)
async def create_custom_token(
    user_id: str,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
    cloud: CloudFunctionsClient = Depends(get_cloud_functions),
):
    """Mint a Firebase custom token for a user through getCustomToken"""
    account = AccountService(db).get_account(user_id)
    if not cloud.configured:
        raise HTTPException(status_code=503, detail="Cloud functions not configured")

    uid = account.firebase_uid or account.id
    try:
        token = await cloud.get_custom_token(uid)
    except CloudFunctionError as e:
        raise HTTPException(status_code=502, detail="Could not create custom token") from e
    if not token:
        raise HTTPException(status_code=502, detail="Cloud function returned no token")

    log_security_event("admin_custom_token", user_id=admin.id, details={"target": uid})
    return CustomTokenResponse(userId=uid, customToken=token)


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
    cloud: CloudFunctionsClient = Depends(get_cloud_functions),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Use account settings to delete your own account")
    service = AccountService(db)
    account = service.get_account(user_id)
    return await service.delete_account(account, cloud)


__all__ = ["router"]
