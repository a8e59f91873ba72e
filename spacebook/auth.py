import logging
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from spacebook.config import settings
from spacebook.errors import AuthenticationError, AuthorizationError


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    role: str = "user"


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """Verified identity of the caller; tokens are issued by the identity service"""
    if credentials is None:
        raise AuthenticationError("Authentication required")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token expired, please login again", e) from e
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise AuthenticationError("Invalid token, please login again", e) from e

    user_id = payload.get("sub") or payload.get("id")
    if user_id is None:
        raise AuthenticationError("Invalid token, please login again")

    return CurrentUser(id=str(user_id), role=payload.get("role", "user"))


def require_roles(*roles: str):
    def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise AuthorizationError("You do not have permission to perform this action")
        return user

    return checker
