"""Account domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import require_text, validate_email, validate_user_name


class RegisterRequest(BaseModel):
    email: str
    userName: str
    name: str
    password: str
    belt: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(require_text(v, "Email"))

    @field_validator("userName")
    @classmethod
    def check_user_name(cls, v):
        return validate_user_name(v)

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return require_text(v, "Name")


class LoginRequest(BaseModel):
    identifier: str  # email or user name
    password: str


class VerifyEmailRequest(BaseModel):
    token: str


class AccountUpdate(BaseModel):
    name: Optional[str] = None
    userName: Optional[str] = None
    belt: Optional[str] = None

    @field_validator("userName")
    @classmethod
    def check_user_name(cls, v):
        return validate_user_name(v)

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        if v is None:
            return v
        return require_text(v, "Name")


class AdSettingsUpdate(BaseModel):
    trackingAuthorized: Optional[bool] = None
    personalizedAds: Optional[bool] = None


class PasswordChangeRequest(BaseModel):
    currentPassword: str
    newPassword: str


class AccountResponse(BaseModel):
    id: str
    email: str
    userName: Optional[str] = None
    name: Optional[str] = None
    belt: Optional[str] = None
    isVerified: bool
    isAdmin: bool
    trackingAuthorized: bool
    personalizedAds: bool
    hasPassword: bool
    createdTimestamp: datetime

    @classmethod
    def from_account(cls, account) -> "AccountResponse":
        return cls(
            id=account.id,
            email=account.email,
            userName=account.user_name,
            name=account.name,
            belt=account.belt,
            isVerified=account.is_verified,
            isAdmin=account.is_admin,
            trackingAuthorized=account.tracking_authorized,
            personalizedAds=account.personalized_ads,
            hasPassword=bool(account.password_hash),
            createdTimestamp=account.created_at,
        )


class TokenResponse(BaseModel):
    accessToken: str
    tokenType: str = "bearer"
    expiresIn: int
    account: AccountResponse
