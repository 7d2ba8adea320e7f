from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError
from sqlalchemy.orm import Session

from clinic_api.auth import jwt_handler
from clinic_api.core.errors import AuthenticationError, ForbiddenError
from clinic_api.database import get_db
from clinic_api.models.user import User
from clinic_api.scheduling.types import Role
from clinic_api.services import user_service

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise AuthenticationError("Access token required")

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except InvalidTokenError as exc:
        raise AuthenticationError("Invalid or expired token") from exc

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise AuthenticationError("Invalid token subject")

    user = user_service.find_user_by_id(db, int(subject))
    if user is None:
        raise AuthenticationError("User not found")
    return user


def require_roles(*roles: Role):
    allowed = {Role(role).value for role in roles}

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise ForbiddenError("Access denied")
        return current_user

    return checker
