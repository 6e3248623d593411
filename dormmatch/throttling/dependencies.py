from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from ..services import get_rate_limiter
from .limiter import RateLimiter


def client_key(request: Request) -> str:
    """Identify the caller by remote host."""
    return request.client.host if request.client else "anonymous"


def enforce_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    """Raise 429 once the caller has used up its request window."""
    key = client_key(request)
    if not limiter.allow(key):
        raise HTTPException(
            status_code=429,
            detail="Too many search requests, please try again later",
            headers={"Retry-After": str(limiter.retry_after(key))},
        )
