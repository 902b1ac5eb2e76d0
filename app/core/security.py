from datetime import datetime, timedelta, timezone
from typing import Any, Union, Optional

from jose import jwt, JWTError
from pydantic import ValidationError
import logging

from app.core.config import settings
from app.schemas.token import TokenPayload

logger = logging.getLogger(__name__)

ALGORITHM = settings.ALGORITHM


def _create_token(subject: Union[str, Any], secret: str, token_type: str, expires_delta: timedelta) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"exp": expire, "sub": str(subject), "type": token_type}
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def create_access_token(subject: Union[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Creates a signed JWT access token for the user id ``subject``.
    """
    return _create_token(
        subject, settings.SECRET_KEY, "access",
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(subject: Union[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Creates a signed JWT refresh token (separate secret) for ``subject``.
    """
    return _create_token(
        subject, settings.REFRESH_TOKEN_SECRET_KEY, "refresh",
        expires_delta or timedelta(minutes=settings.REFRESH_TOKEN_EXPIRE_MINUTES),
    )


def _decode(token: str, secret: str, token_type: str) -> Optional[TokenPayload]:
    try:
        payload = TokenPayload(**jwt.decode(token, secret, algorithms=[ALGORITHM]))
    except (JWTError, ValidationError, KeyError) as e:
        logger.warning(f"Error decoding {token_type} token: {e}")
        return None
    if payload.type and payload.type != token_type:
        logger.warning(f"Token of type '{payload.type}' used as {token_type} token.")
        return None
    return payload


def decode_access_token(token: str) -> Optional[TokenPayload]:
    """
    Decodes an access token and validates its structure and expiry.
    """
    return _decode(token, settings.SECRET_KEY, "access")


def decode_refresh_token(token: str) -> Optional[TokenPayload]:
    """
    Decodes a refresh token and validates its structure and expiry.
    """
    return _decode(token, settings.REFRESH_TOKEN_SECRET_KEY, "refresh")
