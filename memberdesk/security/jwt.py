from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from memberdesk.core import settings
from memberdesk.core.logging_config import get_logger

logger = get_logger("auth.jwt")

ALGORITHM = "HS256"


# Security configuration helper
def get_cookie_secure_setting():
    """Return secure cookie setting based on environment"""
    return settings.ENVIRONMENT == "production"


def get_cookie_samesite_setting():
    """Return samesite cookie setting based on environment"""
    return "strict" if settings.ENVIRONMENT == "production" else "lax"


def get_refresh_cookie_max_age_seconds() -> int:
    """Return cookie Max-Age in seconds for refresh token."""
    return settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))
    logger.debug(f"Refresh token expires at: {expire}")
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY_REFRESH_TOKEN, algorithm=ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    logger.debug(f"Access token expires at: {expire}")
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY_ACCESS_TOKEN, algorithm=ALGORITHM)


def verify_token(token: str):
    try:
        return jwt.decode(token, settings.SECRET_KEY_ACCESS_TOKEN, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Error verifying access token: {e}")
        return None


def verify_refresh_token(token: str):
    try:
        return jwt.decode(token, settings.SECRET_KEY_REFRESH_TOKEN, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Error verifying refresh token: {e}")
        return None
