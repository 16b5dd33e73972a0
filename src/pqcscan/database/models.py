"""SQLModel ORM models for database storage."""

from datetime import datetime

from sqlmodel import Column, Field, SQLModel, Text

from pqcscan.models import CryptoAsset, Finding, ScanJob, ScanReport


class ScanRecord(SQLModel, table=True):
    """A scan job. The full job document is kept as JSON."""

    __tablename__ = "scans"

    id: str = Field(primary_key=True)
    repository_id: str = Field(index=True)
    repository_url: str
    branch: str
    status: str = Field(default="pending", index=True)
    progress: int = 0
    error_message: str | None = Field(default=None, sa_column=Column(Text))

    created_at: datetime = Field(index=True)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    job_json: str = Field(default="{}", sa_column=Column(Text))

    @classmethod
    def from_job(cls, job: ScanJob) -> "ScanRecord":
        record = cls(
            id=job.id,
            repository_id=job.repository.id,
            repository_url=job.repository.url,
            branch=job.branch,
            created_at=job.created_at,
        )
        record.apply(job)
        return record

    def apply(self, job: ScanJob) -> None:
        """Copy mutable job state onto the record."""
        self.status = job.status.value
        self.progress = job.progress
        self.error_message = job.error_message
        self.started_at = job.started_at
        self.completed_at = job.completed_at
        self.job_json = job.model_dump_json()

    def to_job(self) -> ScanJob:
        return ScanJob.model_validate_json(self.job_json)


class FindingRecord(SQLModel, table=True):
    """A normalized finding belonging to one scan."""

    __tablename__ = "findings"

    id: int | None = Field(default=None, primary_key=True)
    scan_id: str = Field(index=True)
    position: int = 0
    rule_id: str
    severity: str = Field(index=True)
    tool: str
    file_path: str
    start_line: int | None = None
    pqc_category: str

    finding_json: str = Field(default="{}", sa_column=Column(Text))

    @classmethod
    def from_finding(cls, scan_id: str, position: int, finding: Finding) -> "FindingRecord":
        return cls(
            scan_id=scan_id,
            position=position,
            rule_id=finding.rule_id,
            severity=finding.severity.value,
            tool=finding.tool,
            file_path=finding.file_path,
            start_line=finding.start_line,
            pqc_category=finding.pqc_category.value,
            finding_json=finding.model_dump_json(),
        )

    def to_finding(self) -> Finding:
        return Finding.model_validate_json(self.finding_json)


class CryptoAssetRecord(SQLModel, table=True):
    """A classified crypto asset belonging to one scan."""

    __tablename__ = "crypto_assets"

    id: int | None = Field(default=None, primary_key=True)
    scan_id: str = Field(index=True)
    position: int = 0
    algorithm: str = Field(index=True)
    safety: str
    file_path: str
    line: int | None = None

    asset_json: str = Field(default="{}", sa_column=Column(Text))

    @classmethod
    def from_asset(cls, scan_id: str, position: int, asset: CryptoAsset) -> "CryptoAssetRecord":
        return cls(
            scan_id=scan_id,
            position=position,
            algorithm=asset.algorithm,
            safety=asset.safety.value,
            file_path=asset.file_path,
            line=asset.line,
            asset_json=asset.model_dump_json(),
        )

    def to_asset(self) -> CryptoAsset:
        return CryptoAsset.model_validate_json(self.asset_json)


class ReportRecord(SQLModel, table=True):
    """A report payload (CBOM, compliance, VDRs) for a scan."""

    __tablename__ = "reports"

    id: str = Field(primary_key=True)
    scan_id: str = Field(index=True)
    source: str = Field(default="local", index=True)
    created_at: datetime

    report_json: str = Field(default="{}", sa_column=Column(Text))

    @classmethod
    def from_report(cls, report: ScanReport) -> "ReportRecord":
        return cls(
            id=report.id,
            scan_id=report.scan_id,
            source=report.source,
            created_at=report.created_at,
            report_json=report.model_dump_json(),
        )

    def to_report(self) -> ScanReport:
        return ScanReport.model_validate_json(self.report_json)
