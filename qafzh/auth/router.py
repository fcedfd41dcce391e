from datetime import timedelta
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from qafzh.auth.dependencies import auth_rate_limit, auth_service, get_current_account, require_verified
from qafzh.config import settings
from qafzh.database import get_db
from qafzh.models.account import Account
from qafzh.schemas.auth import (
    AccountResponse,
    AuthPayload,
    CodeIssued,
    PhoneAvailability,
    PhoneLoginRequest,
    RefreshRequest,
    RegisterRequest,
    RequestCodeRequest,
    Token,
    UpdateProfileRequest,
    VerifyCodeRequest,
)
from qafzh.schemas.common import ApiResponse, ErrorResponse

router = APIRouter()

def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=not settings.IS_DEV_ENV,
        samesite="strict",
        path="/",
        max_age=int(timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES).total_seconds()),
    )

def _auth_payload(account: Account, token: Token) -> AuthPayload:
    return AuthPayload(account=AccountResponse.model_validate(account), **token.model_dump())

@router.post(
    "/register",
    response_model=ApiResponse[CodeIssued],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        409: {"model": ErrorResponse, "description": "Phone already registered and verified"},
        429: {"model": ErrorResponse, "description": "Too Many Requests"},
    },
)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    issued = auth_service.register(data, db)
    return ApiResponse(
        message="Registration successful. Please verify your phone number using OTP.",
        data=issued,
    )

@router.post(
    "/request-otp",
    response_model=ApiResponse[CodeIssued],
    dependencies=[Depends(auth_rate_limit)],
    responses={
        404: {"model": ErrorResponse, "description": "User not found"},
        429: {"model": ErrorResponse, "description": "Too Many Requests"},
    },
)
def request_otp(data: RequestCodeRequest, db: Session = Depends(get_db)):
    issued = auth_service.request_code(data.phone, db)
    return ApiResponse(message="OTP sent successfully", data=issued)

@router.post(
    "/verify-otp/{phone}",
    response_model=ApiResponse[AuthPayload],
    dependencies=[Depends(auth_rate_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired code"},
        404: {"model": ErrorResponse, "description": "User not found"},
        429: {"model": ErrorResponse, "description": "Too Many Requests"},
    },
)
def verify_otp(phone: str, data: VerifyCodeRequest, response: Response, db: Session = Depends(get_db)):
    account, token = auth_service.verify_code(phone, data.otp, db)
    set_auth_cookie(response, token.access_token)
    return ApiResponse(message="Phone number verified successfully", data=_auth_payload(account, token))

@router.post(
    "/login",
    response_model=ApiResponse[AuthPayload],
    dependencies=[Depends(auth_rate_limit)],
    responses={
        401: {"model": ErrorResponse, "description": "Incorrect phone or password"},
        404: {"model": ErrorResponse, "description": "User not found"},
        429: {"model": ErrorResponse, "description": "Too Many Requests"},
    },
)
def login(data: PhoneLoginRequest, response: Response, db: Session = Depends(get_db)):
    account, token = auth_service.login(data.phone, data.password, db)
    set_auth_cookie(response, token.access_token)
    return ApiResponse(message="Login successful", data=_auth_payload(account, token))

@router.post("/token", response_model=Token, dependencies=[Depends(auth_rate_limit)])
def login_form(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    _, token = auth_service.login(form_data.username, form_data.password, db)
    return token

@router.post("/refresh", response_model=ApiResponse[Token])
def refresh_token(data: RefreshRequest, db: Session = Depends(get_db)):
    token = auth_service.refresh(data.refresh_token, db)
    return ApiResponse(data=token)

@router.get("/check-phone", response_model=ApiResponse[PhoneAvailability])
def check_phone(phone: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    return ApiResponse(data=auth_service.check_phone(phone, db))

@router.get("/profile", response_model=ApiResponse[AccountResponse])
def read_profile(account: Account = Depends(get_current_account)):
    return ApiResponse(data=AccountResponse.model_validate(account))

@router.put("/update-profile", response_model=ApiResponse[AccountResponse])
def update_profile(
    data: UpdateProfileRequest,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    account = auth_service.update_profile(account, data, db)
    return ApiResponse(message="Profile updated successfully", data=AccountResponse.model_validate(account))

@router.post("/logout", response_model=ApiResponse[None])
def logout(response: Response, account: Account = Depends(get_current_account)):
    # Tokens stay valid until they expire; logging out only drops the cookie
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
    return ApiResponse(message="Logged out successfully")

@router.delete("/account", response_model=ApiResponse[None])
def delete_account(
    response: Response,
    account: Account = Depends(require_verified),
    db: Session = Depends(get_db),
):
    auth_service.deactivate(account, db)
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
    return ApiResponse(message="Account deleted successfully")
