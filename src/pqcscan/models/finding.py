"""Finding and raw tool output models."""

from typing import Any

from pydantic import ConfigDict, Field

from pqcscan.models.base import BaseSchema, PqcCategory, Severity


class FindingMetadata(BaseSchema):
    """Optional cryptographic context attached to a finding."""

    model_config = ConfigDict(frozen=True)

    algorithm: str | None = None
    library: str | None = None
    key_size: int | None = Field(default=None, ge=1)
    nist_standard: str | None = None
    technology: str | None = None


class Finding(BaseSchema):
    """One static-analysis hit with a canonical severity."""

    # Location, message and snippet are kept exactly as the tool reported them.
    model_config = ConfigDict(frozen=True, str_strip_whitespace=False)

    rule_id: str = Field(min_length=1)
    severity: Severity
    message: str
    file_path: str = Field(min_length=1)
    start_line: int | None = Field(default=None, ge=0)
    end_line: int | None = Field(default=None, ge=0)
    start_col: int | None = None
    code_snippet: str = ""
    category: str = "security"
    tool: str
    pqc_category: PqcCategory = PqcCategory.CRYPTO_WEAKNESS
    recommendation: str | None = None
    metadata: FindingMetadata = Field(default_factory=FindingMetadata)

    @property
    def location(self) -> str:
        if self.start_line is None:
            return self.file_path
        return f"{self.file_path}:{self.start_line}"


class RawOutput(BaseSchema):
    """Parsed structured output of one tool run."""

    tool: str
    exit_code: int = 0
    data: dict[str, Any] = Field(default_factory=dict)
    stderr: str = ""
    workspace: str | None = None
    duration_seconds: float = 0.0


class ScanSummary(BaseSchema):
    """Finding counts for a scan."""

    total_files: int = 0
    total_findings: int = 0
    by_severity: dict[str, int] = Field(default_factory=dict)
    by_tool: dict[str, int] = Field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return self.by_severity.get("critical", 0) + self.by_severity.get("high", 0)

    @property
    def warning_count(self) -> int:
        return self.by_severity.get("medium", 0) + self.by_severity.get("low", 0)

    @property
    def info_count(self) -> int:
        return self.by_severity.get("info", 0)
