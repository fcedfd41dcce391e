from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    class Config:
        env_file = ".env"
        extra = "ignore"

    PROJECT_NAME: str = "Qafzh Solar Marketplace"
    DOMAIN: str = "yourdomain.com"
    IS_DEV_ENV: bool = True  # False in production
    API_PREFIX: str = "/api/v1"

    DATABASE_URL: str = "sqlite:///./qafzh.db"

    # Tokens
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    AUTH_COOKIE_NAME: str = "jwt"
    BCRYPT_ROUNDS: int = 12

    # One-time codes
    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 10
    # Deterministic code for automated testing only, never set in production
    OTP_FIXED_CODE: Optional[str] = None
    SMS_ENABLED: bool = False
    SMS_API_URL: str = "https://sms.ru/sms/send"
    SMSRU_API_ID: str = ""

    # Rate limiting
    AUTH_RATE_LIMIT: str = "5/minute"
    RATE_LIMIT_DEFAULT: str = "100/15minutes"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Listings
    LISTING_EXPIRY_DAYS: int = 90
    LISTING_AUTO_APPROVE: bool = False
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 50
    EXPIRY_SWEEP_ENABLED: bool = False
    EXPIRY_SWEEP_INTERVAL_MINUTES: int = 60

    LOG_LEVEL: str = "INFO"

settings = Settings()
