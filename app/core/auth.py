from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.errors import ForbiddenError, UnauthorizedError
from app.schemas.user import Identity

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so public routes can share the same dependency (guest mode).
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity | None:
    """
    Resolve the caller from an `Authorization: Bearer <token>` header.

    Flow:
      1. If no Authorization header => guest => return None.
      2. Verify the token through the app's AuthService.

    Returns:
        Identity(id, role) if authenticated, else None for guests.

    Raises:
        UnauthorizedError(401): if the token is invalid/expired/malformed.
    """
    if credentials is None:
        return None  # guest mode

    return request.app.state.auth_service.verify_token(credentials.credentials)


def require_auth(identity: Identity | None = Depends(get_current_identity)) -> Identity:
    """
    Enforce authentication.

    If attached to a route, guests (missing JWT) are rejected with 401.

    Raises:
        UnauthorizedError(401): if identity is None.
    """
    if identity is None:
        raise UnauthorizedError("Not authorized, no token")
    return identity


def require_admin(identity: Identity = Depends(require_auth)) -> Identity:
    """
    Enforce admin role. Always runs after require_auth.

    Raises:
        ForbiddenError(403): if role is not admin.
    """
    if identity.role != "admin":
        raise ForbiddenError("Access denied: admin only")
    return identity
