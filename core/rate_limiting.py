"""
In-memory fixed-window rate limiting for the /api/ routes.
"""
import time
from collections import defaultdict
from typing import Any, Dict, Optional, Tuple

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from core.config import settings
from core.exceptions import error_envelope
from core.logging import security_logger

RATE_LIMIT_MESSAGE = "Too many requests, please try again later"


def client_host(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """Fixed-window counters keyed by policy and client."""

    def __init__(self, policies: Optional[Dict[str, Dict[str, int]]] = None):
        # {key: {"count": int, "window_start": float}}
        self.storage: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"count": 0, "window_start": time.time()})
        self.policies = policies or {
            "default": {"requests": settings.rate_limit_requests, "window": settings.rate_limit_window_seconds},
            "auth": {"requests": settings.auth_rate_limit_requests, "window": settings.rate_limit_window_seconds},
        }

    def is_allowed(self, client_key: str, policy_name: str = "default") -> Tuple[bool, Dict[str, Any]]:
        policy = self.policies.get(policy_name, self.policies["default"])
        rate_key = f"{policy_name}_{client_key}"
        current_time = time.time()
        client_data = self.storage[rate_key]

        if current_time - client_data["window_start"] >= policy["window"]:
            client_data["count"] = 0
            client_data["window_start"] = current_time

        window_end = client_data["window_start"] + policy["window"]
        if client_data["count"] >= policy["requests"]:
            return False, {
                "limit": policy["requests"],
                "remaining": 0,
                "retry_after": max(1, int(window_end - current_time)),
            }

        client_data["count"] += 1
        return True, {
            "limit": policy["requests"],
            "remaining": policy["requests"] - client_data["count"],
            "reset": int(window_end),
        }

    def cleanup_expired(self) -> int:
        """Drop counters whose window ended; returns how many were removed."""
        current_time = time.time()
        longest_window = max(policy["window"] for policy in self.policies.values())
        expired_keys = [
            key for key, data in self.storage.items()
            if current_time - data["window_start"] > longest_window
        ]
        for key in expired_keys:
            del self.storage[key]
        return len(expired_keys)

    def reset(self):
        self.storage.clear()


rate_limiter = RateLimiter()


def policy_for(path: str) -> Optional[str]:
    if not path.startswith("/api/"):
        return None
    if path.startswith("/api/auth/login") or path.startswith("/api/auth/register"):
        return "auth"
    return "default"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        policy = policy_for(request.url.path)
        if policy is None:
            return await call_next(request)

        client = client_host(request)
        allowed, info = self.limiter.is_allowed(client, policy)
        if not allowed:
            security_logger.warning(
                "Rate limit exceeded",
                client_host=client,
                policy=policy,
                path=request.url.path,
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=error_envelope(RATE_LIMIT_MESSAGE),
                headers={"Retry-After": str(info["retry_after"])},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(info["limit"])
        response.headers["X-RateLimit-Remaining"] = str(info["remaining"])
        return response
