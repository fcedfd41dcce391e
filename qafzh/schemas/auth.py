import re
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from qafzh.constants import AccountRole, PASSWORD_REGEX, URL_REGEX
from qafzh.schemas.common import PhoneStr

_password_re = re.compile(PASSWORD_REGEX)

class RegisterRequest(BaseModel):
    phone: PhoneStr
    name: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, description="At least 6 characters with upper, lower, digit and special character")
    profile_image_url: Optional[str] = Field(None, pattern=URL_REGEX)

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _password_re.match(value):
            raise ValueError(
                "Password must be at least 6 characters long and include uppercase, "
                "lowercase, number, and special character."
            )
        return value

class RequestCodeRequest(BaseModel):
    phone: PhoneStr

class VerifyCodeRequest(BaseModel):
    otp: str = Field(..., min_length=4, max_length=10, description="One-time code received by SMS")

class PhoneLoginRequest(BaseModel):
    phone: PhoneStr
    password: str = Field(..., min_length=1)

class RefreshRequest(BaseModel):
    refresh_token: str

class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    profile_image_url: Optional[str] = Field(None, pattern=URL_REGEX)

class AccountResponse(BaseModel):
    id: int
    phone: str
    name: str
    profile_image_url: Optional[str] = None
    role: AccountRole
    is_verified: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True

class CodeIssued(BaseModel):
    phone: str
    otp_expires_at: datetime

class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class AuthPayload(Token):
    account: AccountResponse

class TokenData(BaseModel):
    account_id: int
    role: AccountRole
    token_type: str

class PhoneAvailability(BaseModel):
    available: bool
    message: str
