from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from thermogestion.auth.jwt import decode_token
from thermogestion.core.logging_config import logger
from thermogestion.db import get_db
from thermogestion.models.user import User

AUTH_COOKIE = "access_token"

bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def token_from_request(request: Request, creds: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """API clients send a Bearer header; the browser back-office relies on the cookie."""
    if creds is not None and creds.credentials:
        return creds.credentials
    return request.cookies.get(AUTH_COOKIE) or None


def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    token = token_from_request(request, creds)
    if token is None:
        raise _unauthorized("Not authenticated")

    try:
        claims = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.PyJWTError:
        raise _unauthorized("Invalid token")

    user = db.get(User, claims["sub"])
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    if claims["tenant_id"] != user.tenant_id:
        logger.warning("token_tenant_mismatch", user_id=user.id)
        raise _unauthorized("Invalid token")

    # picked up by the request_finished log line
    request.state.tenant_id = user.tenant_id
    return user
