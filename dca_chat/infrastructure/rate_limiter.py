"""
Rate limiting for the chat API using SlowAPI.

Clients are keyed by the first X-Forwarded-For hop when the service runs
behind the mini-app proxy, otherwise by remote address. An exceeded limit is
answered in the same shape as a normal chat reply so the mini-app can render
it inline.
"""

import logging
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from dca_chat.config import get_settings

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = (
    "⏳ You're sending messages faster than I can process them. "
    "Please wait a moment and try again."
)


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=client_identifier,
    default_limits=[get_settings().rate_limit_default],
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit hit for %s on %s: %s", client_identifier(request), request.url.path, exc.detail)
    return JSONResponse(
        status_code=429,
        content={"success": False, "response": RATE_LIMITED_MESSAGE, "action": "rate_limited"},
    )


def setup_rate_limiter(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


def limit_chat(func: Callable) -> Callable:
    """Apply the per-client chat limit (RATE_LIMIT_CHAT, default 30/minute)."""
    return limiter.limit(get_settings().rate_limit_chat)(func)
