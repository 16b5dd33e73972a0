"""Custom exceptions for the PQC scanner."""


class PQCScanError(Exception):
    """Base exception for all scanner errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class FetchError(PQCScanError):
    """Raised when a repository cannot be cloned or checked out."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        branch: str | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.branch = branch


class ToolError(PQCScanError):
    """Raised when an analysis tool times out, overflows or emits unparseable output."""

    def __init__(
        self,
        message: str,
        tool: str | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details)
        self.tool = tool


class ClassificationError(PQCScanError):
    """Raised when a finding or its metadata is malformed."""

    pass


class IntegrationError(PQCScanError):
    """Raised when an external scanner violates its API contract."""

    def __init__(
        self,
        message: str,
        integration: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details)
        self.integration = integration
        self.status_code = status_code


class PersistenceError(PQCScanError):
    """Raised when the scan store fails."""

    pass


class JobStateError(PQCScanError):
    """Raised on an illegal scan job state transition."""

    pass


class ProcessTimeoutError(PQCScanError):
    """Raised when a subprocess exceeds its wall-clock timeout."""

    pass


class OutputLimitError(PQCScanError):
    """Raised when a subprocess writes more than its output budget."""

    pass


class ExecutableNotFoundError(PQCScanError):
    """Raised when a subprocess executable is not installed."""

    pass
