import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional, Dict, Any

import jwt
from pydantic import NaiveDatetime

from .core.config import settings

logger = logging.getLogger(__name__)

# Column annotation for naive UTC timestamps; maps to DATETIME without time zone.
NaiveUTC = Annotated[datetime, NaiveDatetime]


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every column in the store uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_jwt_token(data: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_jwt_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("JWT token has expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"JWT token rejected: {e}")
        return None


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already."""
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
