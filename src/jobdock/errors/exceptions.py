"""Custom exception classes for the JobDock scheduling engine."""


class JobDockError(Exception):
    """Base exception for JobDock."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(JobDockError):
    """Malformed recurrence, missing required field or invalid time range."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(JobDockError):
    """Resource not found in the caller's tenant."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class AuthenticationError(JobDockError):
    """Authentication required or token invalid."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class AuthorizationError(JobDockError):
    """Guard denial. ``reason`` is one of the DenyReason codes."""

    def __init__(self, message: str = "Insufficient permissions", reason: str | None = None):
        self.reason = reason
        details = {"reason": reason} if reason else None
        super().__init__("AUTHORIZATION_ERROR", message, details, status_code=403)


class ConflictDetectedError(JobDockError):
    """Advisory double-booking; retry with force=true to persist anyway."""

    def __init__(self, conflicts: list):
        self.conflicts = conflicts
        count = len(conflicts)
        noun = "booking" if count == 1 else "bookings"
        super().__init__(
            "CONFLICT_DETECTED",
            f"Time slot overlaps {count} existing {noun}",
            details={"conflicts": [c.model_dump(mode="json") for c in conflicts]},
            status_code=409,
        )


class PersistenceError(JobDockError):
    """Storage failure; the mutation was not applied."""

    def __init__(self, message: str = "Could not save changes, please try again"):
        super().__init__("PERSISTENCE_ERROR", message, status_code=503)


class ArchiveWriteError(JobDockError):
    """Object-storage write failed for one job during the sweep."""

    def __init__(self, tenant_id: str, job_id: str, cause: str):
        self.tenant_id = tenant_id
        self.job_id = job_id
        super().__init__(
            "ARCHIVE_WRITE_ERROR",
            f"Failed to archive job {job_id} (tenant {tenant_id}): {cause}",
        )
