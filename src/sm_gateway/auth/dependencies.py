"""FastAPI dependencies: get_current_actor, require_admin.

Usage in any protected router:
    from src.sm_gateway.auth.dependencies import get_current_actor

    @router.get("/protected")
    async def protected(actor: Actor = Depends(get_current_actor)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from src.sm_common.enums import Role
from src.sm_common.errors import ForbiddenError, InvalidCredentialsError
from src.sm_gateway.auth.actor import Actor
from src.sm_gateway.auth.jwt_handler import decode_access_token

# Tokens come from the external auth service; tokenUrl only feeds Swagger UI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_actor(token: str = Depends(oauth2_scheme)) -> Actor:
    """Extract and validate the JWT Bearer token, return the caller identity.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    try:
        payload = decode_access_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None
    return Actor(user_id=str(payload["sub"]), role=Role(payload["role"]))


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Verify the caller holds the admin role (HTTP 403 otherwise)."""
    if not actor.is_admin:
        raise ForbiddenError("Administrator role required")
    return actor
