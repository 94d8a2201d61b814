"""
Access token helpers.

Session issuance lives with the identity provider; this service only needs
to read the bearer token it hands out. ``create_access_token`` exists for
development tooling and tests.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import jwt

from orderhub.core.settings import settings
from orderhub.exceptions import InvalidTokenError


def create_access_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    """Create a signed access token whose subject is the user id."""
    expire = datetime.utcnow() + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    payload = {"sub": str(user_id), "type": "access", "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify an access token.

    Raises:
        InvalidTokenError: if the signature, expiry or token type is wrong
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise InvalidTokenError("Token has expired") from e
    except jwt.PyJWTError as e:
        raise InvalidTokenError() from e

    if payload.get("type") != "access":
        raise InvalidTokenError("Wrong token type")
    return payload


def get_user_id_from_token(token: str) -> int:
    payload = decode_access_token(token)
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidTokenError("Token has no subject") from e
