from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session

from library_api.api.v1.dependencies import get_db
from library_api.core.errors import AuthError, AuthzError
from library_api.core.logging import get_logger, user_id_ctx
from library_api.core.security import verify_password
from library_api.db.models import User, UserRole

logger = get_logger("api.auth")

# Basic auth: email as username, password as secret. auto_error is off so
# missing credentials go through our own 401 body.
basic_scheme = HTTPBasic(auto_error=False)


def get_current_user(
    request: Request,
    credentials: HTTPBasicCredentials | None = Depends(basic_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolves the caller from the Basic credentials.
    Raises 401 when they are missing, unknown or wrong.
    """
    client_ip = request.client.host if request.client else None

    if credentials is None or not credentials.username:
        raise AuthError("Missing credentials")

    user: User | None = db.query(User).filter(User.email == credentials.username).first()

    if user is None or not verify_password(credentials.password, user.hashed_password):
        logger.warning(
            "auth_failed",
            extra={
                "operation": "auth_basic",
                "resource": "user",
                "email": credentials.username,
                "status_code": 401,
                "ip": client_ip,
            },
        )
        raise AuthError("Incorrect email or password")

    # keep user_id around for structured logging
    user_id_ctx.set(user.id)
    request.state.user = user

    return user


def require_role(required_role: UserRole):
    """
    Dependency factory that only admits users of ``required_role``.
    Roles are compared case-insensitively; there is no role hierarchy.
    """
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role.value.lower() != required_role.value.lower():
            logger.warning(
                "auth_forbidden",
                extra={
                    "operation": "auth_role",
                    "resource": "user",
                    "required_role": required_role.value,
                    "status_code": 403,
                },
            )
            raise AuthzError(f"{required_role.value.capitalize()} role required")
        return current_user

    return dependency
