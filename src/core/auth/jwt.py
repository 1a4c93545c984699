from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from src.core.auth.models import PrincipalKind
from src.core.config import settings
from src.core.exceptions import AuthenticationError


def _encode(
    subject_id: int, kind: PrincipalKind, token_type: str, expire: datetime, version: int
) -> str:
    payload = {
        "sub": str(subject_id),
        "role": kind.value,
        "type": token_type,
        "ver": version,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(subject_id: int, kind: PrincipalKind, version: int = 0) -> str:
    """Create JWT access token."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    return _encode(subject_id, kind, "access", expire, version)


def create_refresh_token(subject_id: int, kind: PrincipalKind, version: int = 0) -> str:
    """Create JWT refresh token."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expire_days)
    return _encode(subject_id, kind, "refresh", expire, version)


def decode_token(token: str, token_type: str = "access") -> dict[str, Any]:
    """
    Decode and validate JWT token.

    Args:
        token: JWT token string
        token_type: Expected token type ('access' or 'refresh')

    Returns:
        Decoded token payload

    Raises:
        AuthenticationError: If token is invalid, expired or carries an unknown role
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise AuthenticationError(f"Invalid token: {str(e)}")

    if payload.get("type") != token_type:
        raise AuthenticationError(f"Invalid token type, expected {token_type}")

    if payload.get("role") not in {kind.value for kind in PrincipalKind}:
        raise AuthenticationError("Invalid token role")

    return payload
