"""Tenant-scoped staff tokens (HS256).

Claims: sub (user id), tenant, role, exp. A token is only valid for the tenant
named in its `tenant` claim.
"""
import warnings
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from shared.config.settings import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_SECRET_KEY

ALGORITHM = "HS256"

SECRET_KEY = JWT_SECRET_KEY
if not SECRET_KEY:
    warnings.warn(
        "JWT_SECRET_KEY is not set; staff tokens are signed with an insecure default",
        stacklevel=2,
    )
    SECRET_KEY = "insecure-jwt-secret-change-me"

REQUIRED_CLAIMS = ("sub", "tenant")


def issue_staff_token(user_id: str, tenant_id: str, role: str, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": user_id, "tenant": tenant_id, "role": role, "exp": expire}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def verify_access_token(token: str) -> dict | None:
    """Returns the claims of a valid, unexpired token carrying sub and tenant, else None."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if not all(claims.get(name) for name in REQUIRED_CLAIMS):
        return None
    return claims
