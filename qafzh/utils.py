"""Shared helpers: logging setup and UTC clock."""
import logging
from datetime import datetime, timezone

from qafzh.config import settings

_configured = False

def get_logger(name: str = "qafzh") -> logging.Logger:
    global _configured
    if not _configured:
        logging.basicConfig(
            format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
            level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        )
        _configured = True
    return logging.getLogger(name)

def normalize_phone(phone):
    """Drop spaces, dashes, dots and parentheses; keep a leading "+"."""
    if not isinstance(phone, str):
        return phone
    return "".join(ch for ch in phone.strip() if ch.isdigit() or ch == "+")

def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
