from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .jwt_handler import verify_access_token


def user_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI.

    Staff requests are keyed by user id. Storefront checkouts are anonymous, so
    they are keyed by tenant and client address, letting one busy store not
    starve another behind the same proxy.
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        claims = verify_access_token(auth_header.split(" ", 1)[1])
        if claims and "sub" in claims:
            return f"user:{claims['sub']}"

    forwarded = request.headers.get("X-Forwarded-For")
    address = forwarded.split(",")[0].strip() if forwarded else get_remote_address(request)
    tenant = request.headers.get("X-Tenant-ID") or request.headers.get("host", "")
    return f"ip:{tenant}:{address}"


limiter = Limiter(key_func=user_id_or_ip)
