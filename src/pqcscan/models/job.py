"""Scan job models."""

from datetime import datetime
from uuid import uuid4

from pydantic import Field

from pqcscan.core.exceptions import JobStateError
from pqcscan.models.base import BaseSchema, ScanStatus, utcnow

DEFAULT_TOOLS = ["semgrep", "pqc-analyzer"]


class RepositoryInfo(BaseSchema):
    """Repository metadata supplied by the surrounding application."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    url: str = Field(min_length=1)
    name: str | None = None
    default_branch: str | None = None
    description: str | None = None

    @property
    def display_name(self) -> str:
        """Return the repository name, derived from the URL when unset."""
        if self.name:
            return self.name
        tail = self.url.rstrip("/").rsplit("/", 1)[-1]
        return tail.removesuffix(".git") or self.url


class ScanConfig(BaseSchema):
    """Per-job tool and language configuration.

    Unset limits fall back to the application settings.
    """

    tools: list[str] = Field(default_factory=lambda: list(DEFAULT_TOOLS))
    languages: list[str] = Field(default_factory=list)
    custom_rules: list[str] = Field(default_factory=list)
    timeout_seconds: int | None = Field(default=None, ge=1)
    max_output_bytes: int | None = Field(default=None, ge=1024)
    max_file_size: int | None = Field(default=None, ge=1)


class ScanJob(BaseSchema):
    """A repository scan and its lifecycle state.

    Status moves pending -> running -> completed|failed exactly once and
    progress never decreases within a job.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    repository: RepositoryInfo
    branch: str = "main"
    config: ScanConfig = Field(default_factory=ScanConfig)

    status: ScanStatus = ScanStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    resolved_branch: str | None = None
    warnings: list[str] = Field(default_factory=list)
    error_message: str | None = None

    created_at: datetime = Field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def mark_running(self) -> None:
        if self.status != ScanStatus.PENDING:
            raise JobStateError(f"Job {self.id} cannot start from status {self.status.value}")
        self.status = ScanStatus.RUNNING
        self.progress = 0
        self.started_at = utcnow()

    def advance(self, progress: int) -> None:
        """Move progress forward; lower values are ignored."""
        if self.status != ScanStatus.RUNNING:
            raise JobStateError(f"Job {self.id} is not running (status {self.status.value})")
        self.progress = max(self.progress, min(progress, 100))

    def mark_completed(self) -> None:
        if self.status != ScanStatus.RUNNING:
            raise JobStateError(f"Job {self.id} cannot complete from status {self.status.value}")
        self.progress = 100
        self.status = ScanStatus.COMPLETED
        self.completed_at = utcnow()

    def mark_failed(self, message: str) -> None:
        if self.is_terminal:
            raise JobStateError(f"Job {self.id} already finished with status {self.status.value}")
        self.status = ScanStatus.FAILED
        self.error_message = message
        self.completed_at = utcnow()
