from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, OAuth2PasswordBearer

from .api_key import verify_api_key
from .jwt_handler import verify_access_token

# Staff tokens (Bearer <token>) issued by /auth/login
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

api_key_header = APIKeyHeader(name="X-Internal-API-Key", auto_error=False)


async def get_current_user(request: Request, token: str | None = Depends(oauth2_scheme)) -> dict:
    """Validates the staff JWT and returns its claims (sub, tenant, role)."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception

    claims = verify_access_token(token)
    if not claims:
        raise credentials_exception

    # read by the rate limiter key function
    request.state.user_id = claims["sub"]
    return claims


async def verify_internal_api_key(api_key: str | None = Depends(api_key_header)) -> bool:
    if not verify_api_key(api_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing X-Internal-API-Key header",
        )
    return True
