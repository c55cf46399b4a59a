from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from thermogestion.core.settings import settings

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "tenant_id", "exp"]


def create_access_token(*, user_id: str, tenant_id: str, email: str, role: str = "owner") -> str:
    """Session token; the tenant is carried in the claims and re-checked against the user row."""
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "tenant_id": tenant_id,
        "email": email,
        "role": role,
        "iat": issued,
        "exp": issued + timedelta(hours=settings.JWT_EXP_HOURS),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    return jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[ALGORITHM],
        options={"require": REQUIRED_CLAIMS},
    )
