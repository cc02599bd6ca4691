"""Service layer — business logic orchestration."""


class ServiceError(Exception):
    """Base service exception.

    *warnings* carries non-fatal diagnostics gathered before the failure
    (e.g. fixes that could not be applied).
    """

    def __init__(self, message: str = "", *, warnings: list[str] | None = None) -> None:
        super().__init__(message)
        self.warnings: list[str] = list(warnings or [])


class NotFoundError(ServiceError):
    """Resource not found (-> HTTP 404)."""


class ConflictError(ServiceError):
    """Business rule conflict (-> HTTP 409)."""


class ValidationError(ServiceError):
    """Input validation or state transition error (-> HTTP 422)."""


class MissingRemoteError(ServiceError):
    """Project has no usable remote for submission (-> HTTP 422)."""


class NoFixableIssuesError(ServiceError):
    """Fix batch is empty or carries no original/suggestion pairs (-> HTTP 422)."""


class NoFixesAppliedError(ServiceError):
    """Every fix in the batch failed to apply (-> HTTP 422)."""


class ToolNotInstalledError(ServiceError):
    """An external command-line tool is missing (-> HTTP 503)."""


class ToolExecutionError(ServiceError):
    """An external tool exited unexpectedly or reported failure (-> HTTP 502)."""


class CheckerFailedError(ToolExecutionError):
    """The spell checker exited with an unexpected code."""

    def __init__(self, exit_code: int | None, stderr: str) -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"typos exited with code {exit_code}: {stderr.strip()}")


class RepositoryStateError(ServiceError):
    """Working copy could not be materialized, even by re-cloning (-> HTTP 502)."""
