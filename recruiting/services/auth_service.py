"""
Access-token verification.

Tokens are issued by the identity service; this module only decodes them.
create_access_token exists for development tooling and tests.
"""

import logging
import os
from datetime import timedelta
from typing import Dict, Optional

import jwt

from recruiting.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))


def create_access_token(user_id: int, role: str, expires_minutes: Optional[int] = None) -> str:
    """
    Create a signed access token.

    Args:
        user_id: ID of the user
        role: UserRole value ("player" or "organization")
        expires_minutes: Lifetime override (default: ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT string
    """
    lifetime = expires_minutes if expires_minutes is not None else ACCESS_TOKEN_EXPIRE_MINUTES
    payload = {
        "id": user_id,
        "role": role,
        "exp": utcnow() + timedelta(minutes=lifetime),
    }
    return jwt.encode(payload, JWT_ACCESS_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Optional[Dict]:
    """
    Verify an access token.

    Args:
        token: Encoded JWT

    Returns:
        Dict with "user_id" and "role", or None if the token is invalid or expired
    """
    try:
        decoded = jwt.decode(token, JWT_ACCESS_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired access token")
        return None
    except jwt.InvalidTokenError:
        return None

    user_id = decoded.get("id")
    if user_id is None:
        return None
    return {"user_id": int(user_id), "role": decoded.get("role")}
