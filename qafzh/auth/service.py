from datetime import timedelta
from typing import Optional, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from qafzh.config import settings
from qafzh.constants import AccountRole
from qafzh.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from qafzh.models.account import Account
from qafzh.schemas.auth import CodeIssued, PhoneAvailability, RegisterRequest, Token, TokenData, UpdateProfileRequest
from qafzh.services.sms import SMSService
from qafzh.utils import get_logger, normalize_phone, utcnow

logger = get_logger(__name__)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)
sms_service = SMSService()

class AuthService:
    def _create_token(self, account: Account, token_type: str, expires_delta: timedelta) -> str:
        now = utcnow()
        to_encode = {
            "sub": str(account.id),
            "role": account.role.value,
            "type": token_type,
            "iat": now,
            "exp": now + expires_delta,
        }
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    def create_access_token(self, account: Account, expires_delta: Optional[timedelta] = None) -> str:
        return self._create_token(
            account, ACCESS_TOKEN, expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )

    def create_refresh_token(self, account: Account, expires_delta: Optional[timedelta] = None) -> str:
        return self._create_token(
            account, REFRESH_TOKEN, expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        )

    def issue_tokens(self, account: Account) -> Token:
        return Token(
            access_token=self.create_access_token(account),
            refresh_token=self.create_refresh_token(account),
            token_type="bearer",
        )

    def decode_token(self, token: str, expected_type: str = ACCESS_TOKEN) -> TokenData:
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
            token_data = TokenData(
                account_id=int(payload["sub"]),
                role=payload["role"],
                token_type=payload["type"],
            )
        except (JWTError, KeyError, ValueError, TypeError):
            raise AuthenticationError()
        if token_data.token_type != expected_type:
            raise AuthenticationError()
        return token_data

    def _get_by_phone(self, db: Session, phone: str) -> Optional[Account]:
        return db.query(Account).filter(Account.phone == phone).first()

    def _issue_code(self, account: Account) -> str:
        code = sms_service.generate_verification_code()
        account.verification_code = code
        account.verification_code_expires = sms_service.get_code_expiration()
        return code

    def register(self, data: RegisterRequest, db: Session) -> CodeIssued:
        phone = sms_service.validate_phone_number(data.phone)
        account = self._get_by_phone(db, phone)
        if account and account.is_verified:
            raise ConflictError("User already exists with this phone number. Please login instead.")

        if account is None:
            account = Account(phone=phone, role=AccountRole.user, is_verified=False, is_active=True)
            db.add(account)
            logger.info("Registering new account for %s", phone)
        else:
            logger.info("Re-issuing verification code for unverified account %s", phone)

        if data.name is not None:
            account.name = data.name.strip()
        if data.profile_image_url is not None:
            account.profile_image_url = data.profile_image_url
        if data.password is not None:
            account.hashed_password = pwd_context.hash(data.password)
        code = self._issue_code(account)

        try:
            db.commit()
        except IntegrityError:
            # Another request registered this phone between our lookup and commit
            db.rollback()
            logger.warning("Concurrent registration for %s", phone)
            raise ConflictError("User already exists with this phone number. Please login instead.")
        db.refresh(account)

        sms_service.send_verification_code(phone, code)
        return CodeIssued(phone=account.phone, otp_expires_at=account.verification_code_expires)

    def request_code(self, phone: str, db: Session) -> CodeIssued:
        phone = sms_service.validate_phone_number(phone)
        account = self._get_by_phone(db, phone)
        if not account:
            raise NotFoundError("No user found with this phone number. Please register first.")
        code = self._issue_code(account)
        db.commit()
        db.refresh(account)
        sms_service.send_verification_code(phone, code)
        return CodeIssued(phone=account.phone, otp_expires_at=account.verification_code_expires)

    def verify_code(self, phone: str, code: str, db: Session) -> Tuple[Account, Token]:
        # A malformed number cannot belong to any account, so it falls through to 404
        phone = normalize_phone(phone or "")
        account = self._get_by_phone(db, phone)
        if not account:
            raise NotFoundError("No user found with this phone number")

        if not account.verification_code or not account.verification_code_expires:
            raise ValidationError("No verification code found. Please request a new one.")
        if utcnow() >= account.verification_code_expires:
            raise ValidationError("Verification code expired")
        if not sms_service.codes_match(account.verification_code, code):
            raise ValidationError("Invalid verification code")
        if not account.is_active:
            raise AuthenticationError("The user account no longer exists or is inactive.")

        account.is_verified = True
        account.verification_code = None
        account.verification_code_expires = None
        account.last_login = utcnow()
        db.commit()
        db.refresh(account)
        logger.info("Phone verified for account %s", account.id)

        return account, self.issue_tokens(account)

    def login(self, phone: str, password: str, db: Session) -> Tuple[Account, Token]:
        phone = sms_service.validate_phone_number(phone)
        account = self._get_by_phone(db, phone)
        if not account:
            raise NotFoundError("User not found")
        if not account.hashed_password or not pwd_context.verify(password, account.hashed_password):
            logger.warning("Failed password login for %s", phone)
            raise AuthenticationError("Invalid phone number or password")
        if not account.is_active:
            raise AuthenticationError("The user account no longer exists or is inactive.")

        account.last_login = utcnow()
        db.commit()
        db.refresh(account)
        logger.info("Password login for account %s", account.id)
        return account, self.issue_tokens(account)

    def get_account_for_token(self, token: str, db: Session, expected_type: str = ACCESS_TOKEN) -> Account:
        token_data = self.decode_token(token, expected_type)
        account = db.get(Account, token_data.account_id)
        if account is None or not account.is_active:
            raise AuthenticationError("The user account no longer exists or is inactive.")
        return account

    def refresh(self, refresh_token: str, db: Session) -> Token:
        account = self.get_account_for_token(refresh_token, db, expected_type=REFRESH_TOKEN)
        return self.issue_tokens(account)

    def check_phone(self, phone: str, db: Session) -> PhoneAvailability:
        phone = sms_service.validate_phone_number(phone)
        taken = db.query(Account).filter(Account.phone == phone, Account.is_verified.is_(True)).first()
        return PhoneAvailability(
            available=taken is None,
            message="Phone number already registered" if taken else "Phone number available",
        )

    def update_profile(self, account: Account, data: UpdateProfileRequest, db: Session) -> Account:
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] is not None:
            account.name = changes["name"].strip()
        if "profile_image_url" in changes:
            account.profile_image_url = changes["profile_image_url"]
        db.commit()
        db.refresh(account)
        return account

    def deactivate(self, account: Account, db: Session) -> None:
        account.is_active = False
        db.commit()
        logger.info("Account %s deactivated", account.id)

    def ensure_admin(self, phone: str, password: str, name: str, db: Session) -> Account:
        """Create an administrator, or promote the existing account with this phone."""
        phone = sms_service.validate_phone_number(phone)
        account = self._get_by_phone(db, phone)
        if account is None:
            account = Account(phone=phone)
            db.add(account)
        account.name = name
        account.hashed_password = pwd_context.hash(password)
        account.role = AccountRole.admin
        account.is_verified = True
        account.is_active = True
        db.commit()
        db.refresh(account)
        logger.info("Administrator %s ready", phone)
        return account
