from fastapi import Depends

from app.exceptions import Forbidden
from app.models.user import User
from app.utils.token import get_current_user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise Forbidden("Admin access required")
    return current_user
