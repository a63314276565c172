"""
Bearer token verification.

Tokens are issued by the institute's auth service and carry the user id in
``sub`` (older ones in ``user_id``). This API only verifies them and loads the
user; ``create_access_token`` is kept for local tooling and tests.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlmodel import Session

from app.config import settings
from app.database import get_session
from app.exceptions import Forbidden, Unauthenticated
from app.models.user import User

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def create_access_token(claims: dict, expires_in: Optional[timedelta] = None) -> str:
    expires_in = expires_in or timedelta(minutes=settings.access_token_expire_minutes)
    return jwt.encode(
        {**claims, "exp": datetime.utcnow() + expires_in},
        settings.secret_key,
        algorithm=settings.algorithm,
    )


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None


def user_id_from_claims(claims: dict) -> Optional[int]:
    subject = claims.get("sub") or claims.get("user_id")
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> User:
    claims = decode_access_token(token)
    if claims is None:
        raise Unauthenticated()

    user_id = user_id_from_claims(claims)
    if user_id is None:
        raise Unauthenticated("Token does not identify a user")

    user = session.get(User, user_id)
    if user is None:
        raise Unauthenticated("User not found")

    if not user.can_login:
        raise Forbidden("User account is disabled")

    return user
