"""JWT access token creation and verification.

Identity is issued by the upstream auth/session service; this engine only
verifies tokens. Claims used:
    sub       user id (opaque string)
    is_admin  admin-privilege flag, defaults to False
    type      must be "access"

HS256 with the shared JWT_SECRET. create_access_token exists for the
upstream service's contract and for tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from config.settings import settings
from src.ws_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(user_id: str, is_admin: bool = False) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": "access",
        "is_admin": is_admin,
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token; raise InvalidCredentialsError otherwise."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access" or not payload.get("sub"):
        raise InvalidCredentialsError()
    return payload
