"""JWT Bearer authentication middleware."""

import logging

from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from jobdock.config import settings

logger = logging.getLogger(__name__)

# Paths that do not require authentication
_PUBLIC_PATHS = {
    "/api/v1/health",
    "/api/v1/health/live",
    "/api/v1/health/ready",
    "/docs",
    "/openapi.json",
    "/redoc",
}

_ANONYMOUS = {"sub": "anonymous", "tenant_id": None}


def _decode_jwt(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as exc:
        logger.debug("JWT decode failed: %s", exc)
        raise ValueError(f"Invalid token: {exc}") from exc


class AuthMiddleware(BaseHTTPMiddleware):
    """Validate the Bearer token and attach its claims to request.state.user.

    Tokens are issued elsewhere; only ``sub`` and ``tenant_id`` are trusted
    here. Role and capabilities are loaded from the database per request.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path

        if path in _PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc"):
            request.state.user = dict(_ANONYMOUS)
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            request.state.user = self._validate_jwt(auth_header[7:])
        else:
            # Routes enforce auth through the get_current_user dependency
            request.state.user = dict(_ANONYMOUS)
        return await call_next(request)

    def _validate_jwt(self, token: str) -> dict:
        try:
            payload = _decode_jwt(token)
        except ValueError:
            return {**_ANONYMOUS, "_auth_error": "Invalid or expired token"}

        if payload.get("type") == "refresh":
            return {**_ANONYMOUS, "_auth_error": "Refresh tokens cannot be used for API access"}
        if not payload.get("sub") or not payload.get("tenant_id"):
            return {**_ANONYMOUS, "_auth_error": "Token is missing sub or tenant_id"}

        return {
            "sub": payload["sub"],
            "tenant_id": payload["tenant_id"],
            "email": payload.get("email", ""),
        }
