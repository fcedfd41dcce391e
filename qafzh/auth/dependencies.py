from typing import Optional
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session
from qafzh.auth.service import AuthService
from qafzh.config import settings
from qafzh.database import get_db
from qafzh.exceptions import AuthenticationError, AuthorizationError, RateLimitError
from qafzh.models.account import Account
from qafzh.utils import get_logger

logger = get_logger(__name__)

auth_service = AuthService()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/token", auto_error=False)

def get_credential(request: Request, bearer: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """Bearer header first, then the HTTP-only cookie."""
    return bearer or request.cookies.get(settings.AUTH_COOKIE_NAME)

def get_current_account(
    token: Optional[str] = Depends(get_credential),
    db: Session = Depends(get_db),
) -> Account:
    if not token:
        raise AuthenticationError("You are not logged in! Please log in to get access.")
    return auth_service.get_account_for_token(token, db)

def require_verified(account: Account = Depends(get_current_account)) -> Account:
    if not account.is_verified:
        raise AuthorizationError("Please verify your phone number first.")
    return account

def require_admin(account: Account = Depends(get_current_account)) -> Account:
    if not account.is_admin:
        raise AuthorizationError("Access denied. Admins only.")
    return account

def auth_rate_limit(request: Request) -> None:
    limiter = request.app.state.auth_rate_limiter
    key = get_remote_address(request)
    if not limiter.check(key):
        logger.warning("Too many authentication attempts from %s", key)
        raise RateLimitError("Too many authentication attempts. Please try again later.")
