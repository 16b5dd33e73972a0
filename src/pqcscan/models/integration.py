"""External scanner integration models."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import ConfigDict, Field

from pqcscan.models.base import BaseSchema


class ExternalScanStatus(str, Enum):
    """Remote scan states reported by the external scanner."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ExternalScanStatus.COMPLETED, ExternalScanStatus.FAILED)


class ExternalScannerIntegration(BaseSchema):
    """A configured third-party scanning service."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    scan_url: str = Field(min_length=1)
    status_url: str | None = None
    enabled: bool = True
    is_active: bool = True
    last_used: datetime | None = None

    @property
    def effective_status_url(self) -> str:
        return self.status_url or self.scan_url

    @property
    def is_usable(self) -> bool:
        return self.enabled and self.is_active


class ExternalScanHandle(BaseSchema):
    """Correlates a local scan job with a remote scan while polling is active."""

    scan_id: str
    repository_id: str | None = None
    external_id: str
    status_url: str
    integration_id: str
    status: ExternalScanStatus = ExternalScanStatus.QUEUED
    attempts: int = 0
    ingested: bool = False

    @property
    def poll_url(self) -> str:
        base = self.status_url if self.status_url.endswith("/") else f"{self.status_url}/"
        return f"{base}{self.external_id}"


class ExternalScanStatusResponse(BaseSchema):
    """Status document returned by the external scanner."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    status: ExternalScanStatus
    semgrep_output: str | dict | None = Field(default=None, alias="semgrepOutput")
    error_message: str | None = Field(default=None, alias="errorMessage")
