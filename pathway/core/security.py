"""Security utilities for bearer access tokens."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from pathway.core.config import settings


def create_access_token(
    member_id: UUID,
    role: str,
    org_id: UUID | None,
) -> str:
    """
    Create signed access JWT.

    Always signs with current secret (JWT_SECRET).
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(member_id),
        "role": role,
        "org_id": str(org_id) if org_id else None,
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_access_token(token: str) -> dict:
    """
    Decode and verify access JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore
