"""Abstract interfaces for analysis tools and the scan store."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pqcscan.models import (
        CryptoAsset,
        Finding,
        RawOutput,
        ScanConfig,
        ScanJob,
        ScanReport,
        ScanStatus,
    )


class IAnalysisTool(ABC):
    """Base interface for all analysis tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name used in scan configurations."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description."""
        ...

    @abstractmethod
    async def run(self, workspace: Path, config: "ScanConfig") -> "RawOutput":
        """Run the tool against a workspace and return its parsed output."""
        ...

    @abstractmethod
    def applies_to(self, workspace: Path, config: "ScanConfig") -> bool:
        """Check if this tool has anything to analyze in the workspace."""
        ...


class IScanStore(ABC):
    """Persistence collaborator for scan jobs and their results.

    Finding, asset and report writes for a scan are full replaces so a retried
    run never accumulates stale entries.
    """

    @abstractmethod
    async def create_job(self, job: "ScanJob") -> None:
        """Persist a new job."""
        ...

    @abstractmethod
    async def update_job(self, job: "ScanJob") -> None:
        """Persist job status, progress and timestamps."""
        ...

    @abstractmethod
    async def get_job(self, job_id: str) -> "ScanJob | None":
        """Get a persisted job by ID."""
        ...

    @abstractmethod
    async def list_jobs(self, status: "ScanStatus | None" = None) -> list["ScanJob"]:
        """List persisted jobs, oldest first."""
        ...

    @abstractmethod
    async def replace_results(
        self,
        scan_id: str,
        findings: list["Finding"],
        assets: list["CryptoAsset"],
        report: "ScanReport | None" = None,
    ) -> None:
        """Atomically replace the findings, assets and local report of a scan."""
        ...

    @abstractmethod
    async def save_report(self, report: "ScanReport") -> None:
        """Store an additional report payload (e.g. from an external scanner)."""
        ...

    @abstractmethod
    async def get_findings(self, scan_id: str) -> list["Finding"]:
        ...

    @abstractmethod
    async def get_assets(self, scan_id: str) -> list["CryptoAsset"]:
        ...

    @abstractmethod
    async def get_reports(self, scan_id: str) -> list["ScanReport"]:
        ...
