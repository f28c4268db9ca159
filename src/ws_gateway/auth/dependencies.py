"""FastAPI dependencies: get_current_user, require_admin.

Usage in any protected router:
    from src.ws_gateway.auth.dependencies import CurrentUser, get_current_user

    @router.get("/protected")
    async def protected(user: CurrentUser = Depends(get_current_user)):
        ...
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from src.ws_common.errors import AuthorizationError, InvalidCredentialsError
from src.ws_gateway.auth.jwt_handler import decode_access_token

# tokenUrl points at the upstream auth service (used for the Swagger "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    is_admin: bool = False


async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """Validate the Bearer token and return the caller's identity. HTTP 401 otherwise."""
    try:
        payload = decode_access_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None
    return CurrentUser(user_id=str(payload["sub"]), is_admin=bool(payload.get("is_admin", False)))


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Reject non-admin callers with AuthorizationError (403) before any mutation."""
    if not current_user.is_admin:
        raise AuthorizationError("admin privileges required")
    return current_user
