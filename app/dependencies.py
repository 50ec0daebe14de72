from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User, UserRole
from app.utils.security import verify_access_token
from app.utils.exceptions import (
    AppException,
    UnauthorizedException,
    ForbiddenException,
)

# Bearer token extractor (the auth cookie takes precedence)
bearer_scheme = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if token:
        return token
    return credentials.credentials if credentials else None


# ─── Get Current User ─────────────────────────────────────────────────────────
def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Validate the auth cookie / Bearer token and return the current User.
    Raises 401 if the token is missing, invalid, expired or its user is gone.
    """
    token = _extract_token(request, credentials)
    if not token:
        raise UnauthorizedException("Authentication required. Please log in to continue.")

    payload = verify_access_token(token)
    user_id: str | None = payload.get("sub")

    if user_id is None or not str(user_id).isdigit():
        raise UnauthorizedException("Invalid token payload")

    user = db.query(User).filter(User.id == int(user_id)).first()
    if not user:
        raise UnauthorizedException("Account no longer exists")

    return user


def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    """Same as get_current_user, but anonymous / invalid credentials yield None."""
    try:
        return get_current_user(request, credentials, db)
    except AppException:
        return None


# ─── Role Guards ──────────────────────────────────────────────────────────────
def require_roles(*roles: UserRole):
    """
    Factory that returns a FastAPI dependency requiring one of the given roles.

    Usage:
        @router.get("/admin-only")
        def admin_route(current_user = Depends(require_roles(UserRole.ADMIN))):
            ...
    """
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise ForbiddenException("You are not authorized to view this page.")
        return current_user
    return dependency


def get_admin_user(current_user: User = Depends(require_roles(UserRole.ADMIN))) -> User:
    return current_user


# ─── Request metadata ─────────────────────────────────────────────────────────
def get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
