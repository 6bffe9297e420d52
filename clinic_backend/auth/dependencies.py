from collections.abc import Callable

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinic_backend.auth import jwt_handler
from clinic_backend.database import get_db
from clinic_backend.errors import ForbiddenError, UnauthorizedError
from clinic_backend.models.user import User

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError('Access token required.')

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise UnauthorizedError('Invalid token.') from exc

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError) as exc:
        raise UnauthorizedError('Invalid token subject.') from exc

    user = db.get(User, user_id)
    if user is None:
        raise ForbiddenError('User no longer exists.')
    return user


def require_role(role: str) -> Callable[..., User]:
    def check_role(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            raise ForbiddenError('Insufficient permissions.')
        return current_user

    return check_role
