"""Rate limiting using slowapi.

Reads fall under the limiter's default limit; mutating job routes are
decorated with :func:`write_limit`.
"""

import logging

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from jobdock.config import settings

logger = logging.getLogger(__name__)


def get_rate_limit_key(request: Request) -> str:
    """Use user_id for authenticated users, IP for anonymous."""
    user = getattr(request.state, "user", {}) or {}
    sub = user.get("sub", "")
    if sub and sub not in ("anonymous", ""):
        return f"user:{sub}"
    return get_remote_address(request)


def write_limit() -> str:
    return f"{settings.rate_limit_writes_per_minute}/minute"


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[f"{settings.rate_limit_reads_per_minute}/minute"],
    storage_uri="memory://" if settings.local_mode else settings.redis_url,
    enabled=settings.rate_limit_enabled,
)


def setup_rate_limiter(app) -> None:
    """Attach the slowapi limiter to the FastAPI app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    if limiter.enabled:
        logger.info(
            "Rate limiter configured (writes=%d/min, reads=%d/min)",
            settings.rate_limit_writes_per_minute,
            settings.rate_limit_reads_per_minute,
        )
