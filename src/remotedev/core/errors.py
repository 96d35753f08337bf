"""Error handling module for remotedev.

Error Response Format:
{
    "error": {
        "code": "QUOTA_EXCEEDED",
        "message": "...",
        "details": [...]
    }
}

Usage:
    from remotedev.core.errors import WorkspaceNotFoundError

    raise WorkspaceNotFoundError()
"""

from enum import StrEnum

from pydantic import BaseModel


class ErrorCode(StrEnum):
    """Error codes."""

    FORBIDDEN = "FORBIDDEN"
    WORKSPACE_NOT_FOUND = "WORKSPACE_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    WORKSPACE_TERMINATED = "WORKSPACE_TERMINATED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    SCHEMA_INVALID = "SCHEMA_INVALID"
    AGENT_CONFIG_INVALID = "AGENT_CONFIG_INVALID"


class ViolationKind(StrEnum):
    """Classification of a single field violation."""

    BINDING = "binding"  # missing/disabled agent config, dns zone mismatch
    TERMINAL = "terminal"  # change away from Terminated
    INVALID = "invalid"  # value outside allowed set/range


class FieldError(BaseModel):
    """A violation attributed to one field."""

    field: str
    message: str
    kind: ViolationKind = ViolationKind.INVALID

    model_config = {"frozen": True}


class QuotaScope(StrEnum):
    PER_USER = "per_user"
    PER_AGENT = "per_agent"


class ErrorDetail(BaseModel):
    """Error detail containing code and message."""

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Error response format."""

    error: ErrorDetail


class RemoteDevError(Exception):
    """Base exception for remotedev.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
        status_code: HTTP status code the API layer should return
    """

    def __init__(self, code: ErrorCode, message: str, status_code: int) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def details(self) -> list[dict] | None:
        return None

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse model."""
        return ErrorResponse(
            error=ErrorDetail(
                code=self.code.value, message=self.message, details=self.details()
            )
        )


class ForbiddenError(RemoteDevError):
    """403 Forbidden - Permission denied."""

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(ErrorCode.FORBIDDEN, message, 403)


class WorkspaceNotFoundError(RemoteDevError):
    """404 Not Found - Workspace not found."""

    def __init__(self, message: str = "Workspace not found") -> None:
        super().__init__(ErrorCode.WORKSPACE_NOT_FOUND, message, 404)


class ValidationFailedError(RemoteDevError):
    """422 - One or more field violations (binding or value errors)."""

    def __init__(
        self, errors: list[FieldError], message: str = "Workspace validation failed"
    ) -> None:
        self.errors = list(errors)
        super().__init__(ErrorCode.VALIDATION_FAILED, message, 422)

    def details(self) -> list[dict]:
        return [e.model_dump(mode="json") for e in self.errors]

    def fields(self) -> set[str]:
        return {e.field for e in self.errors}


class WorkspaceTerminatedError(ValidationFailedError):
    """409 - Attempt to change desired_state away from Terminated."""

    def __init__(
        self,
        errors: list[FieldError],
        message: str = "Workspace is terminated and cannot be updated. Create a new workspace instead.",
    ) -> None:
        super().__init__(errors, message)
        self.code = ErrorCode.WORKSPACE_TERMINATED
        self.status_code = 409


class QuotaExceededError(RemoteDevError):
    """403 - Per-user or per-agent workspace quota reached."""

    def __init__(self, scope: QuotaScope, count: int, limit: int) -> None:
        self.scope = scope
        self.count = count
        self.limit = limit
        if scope == QuotaScope.PER_USER:
            message = (
                f"You cannot create a workspace because you already have {count} "
                f"existing workspaces for the given agent with a per user quota of "
                f"{limit} workspaces"
            )
        else:
            message = (
                f"You cannot create a workspace because there are already {count} "
                f"existing workspaces for the given agent with a total quota of "
                f"{limit} workspaces"
            )
        super().__init__(ErrorCode.QUOTA_EXCEEDED, message, 403)

    def details(self) -> list[dict]:
        return [{"scope": self.scope.value, "count": self.count, "limit": self.limit}]


class SchemaValidationError(RemoteDevError):
    """422 - Document rejected by the schema validator (errors passed through)."""

    def __init__(self, schema_name: str, errors: list[str]) -> None:
        self.schema_name = schema_name
        self.errors = list(errors)
        super().__init__(
            ErrorCode.SCHEMA_INVALID, f"'{schema_name}' failed schema validation", 422
        )

    def details(self) -> list[dict]:
        return [{"schema": self.schema_name, "error": e} for e in self.errors]


class AgentConfigInvalidError(RemoteDevError):
    """422 - Agent config document has invalid values."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__(ErrorCode.AGENT_CONFIG_INVALID, "Agent config is invalid", 422)

    def details(self) -> list[dict]:
        return [e.model_dump(mode="json") for e in self.errors]
