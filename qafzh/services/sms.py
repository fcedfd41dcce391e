import asyncio
import re
import secrets
import aiohttp
import anyio.from_thread
from datetime import datetime, timedelta
from qafzh.config import settings
from qafzh.constants import PHONE_REGEX
from qafzh.exceptions import InternalError, ValidationError
from qafzh.utils import get_logger, normalize_phone, utcnow

logger = get_logger(__name__)

_phone_re = re.compile(PHONE_REGEX)

class SMSService:
    @staticmethod
    def generate_verification_code() -> str:
        """Random numeric code, or the configured fixed code in test deployments."""
        if settings.OTP_FIXED_CODE:
            return settings.OTP_FIXED_CODE
        return "".join(secrets.choice("0123456789") for _ in range(settings.OTP_LENGTH))

    @staticmethod
    def get_code_expiration() -> datetime:
        return utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)

    @staticmethod
    def codes_match(stored: str, supplied: str) -> bool:
        return secrets.compare_digest(stored.encode(), supplied.encode())

    def validate_phone_number(self, phone: str) -> str:
        """
        Normalize a phone number and check it is in international format.

        Raises:
            ValidationError: if the number cannot be a valid phone number
        """
        normalized = normalize_phone(phone or "")
        if not _phone_re.match(normalized):
            raise ValidationError("Please provide a valid phone number")
        return normalized

    def send_verification_code(self, phone: str, code: str) -> None:
        """
        Send the code through the SMS.ru HTTP API.

        Called from request worker threads; the HTTP call itself runs on the
        event loop. With SMS disabled the code is only logged, and only in
        dev environments.

        Raises:
            InternalError: if the provider rejects the message or is unreachable
        """
        if not settings.SMS_ENABLED:
            if settings.IS_DEV_ENV:
                logger.info("SMS disabled, verification code for %s is %s", phone, code)
            return
        anyio.from_thread.run(self.deliver, phone, code)

    async def deliver(self, phone: str, code: str) -> None:
        params = {
            "api_id": settings.SMSRU_API_ID,
            "to": phone.lstrip("+"),
            "msg": f"Your Qafzh verification code: {code}",
            "json": 1,
        }
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10)) as session:
                async with session.get(settings.SMS_API_URL, params=params) as response:
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Error sending SMS to %s: %s", phone, e)
            raise InternalError("Failed to send verification code. Please try again later.")

        if data.get("status") != "OK":
            logger.error("SMS provider refused message to %s: %s", phone, data.get("status_text", "Unknown error"))
            raise InternalError("Failed to send verification code. Please try again later.")
        logger.info("SMS sent successfully to %s", phone)
