"""FastAPI exception handlers producing the ErrorResponse envelope."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from jobdock.errors.exceptions import AuthorizationError, ConflictDetectedError, JobDockError
from jobdock.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(JobDockError)
    async def jobdock_error_handler(request: Request, exc: JobDockError):
        trace_id = getattr(request.state, "trace_id", "unknown")
        if isinstance(exc, AuthorizationError):
            user = getattr(request.state, "user", {}) or {}
            logger.warning(
                "job_access_denied",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "trace_id": trace_id,
                    "user_sub": user.get("sub", "anonymous"),
                    "tenant_id": user.get("tenant_id"),
                    "reason": exc.reason,
                },
            )
        elif isinstance(exc, ConflictDetectedError):
            logger.info("Advisory conflict on %s: %d overlapping jobs", request.url.path, len(exc.conflicts))
        elif exc.status_code >= 500:
            logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)

        error_response = ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
                trace_id=trace_id,
                timestamp=datetime.now(timezone.utc),
            ),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.model_dump(mode="json", exclude_none=True),
        )
