"""Scan store implementations: in-memory and SQL."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError

from pqcscan.core.exceptions import PersistenceError
from pqcscan.core.interfaces import IScanStore
from pqcscan.core.logging import get_logger
from pqcscan.database.connection import Database
from pqcscan.database.repository import ScanRepository
from pqcscan.models import CryptoAsset, Finding, ScanJob, ScanReport, ScanStatus

T = TypeVar("T")


class MemoryScanStore(IScanStore):
    """Process-local store. Everything goes in and comes out as a deep copy."""

    def __init__(self) -> None:
        self._jobs: dict[str, ScanJob] = {}
        self._findings: dict[str, list[Finding]] = {}
        self._assets: dict[str, list[CryptoAsset]] = {}
        self._reports: dict[str, list[ScanReport]] = {}

    async def create_job(self, job: ScanJob) -> None:
        if job.id in self._jobs:
            raise PersistenceError(f"Job {job.id} already exists")
        self._jobs[job.id] = job.model_copy(deep=True)

    async def update_job(self, job: ScanJob) -> None:
        if job.id not in self._jobs:
            raise PersistenceError(f"Job {job.id} does not exist")
        self._jobs[job.id] = job.model_copy(deep=True)

    async def get_job(self, job_id: str) -> ScanJob | None:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def list_jobs(self, status: ScanStatus | None = None) -> list[ScanJob]:
        jobs = sorted(self._jobs.values(), key=lambda j: j.created_at)
        return [j.model_copy(deep=True) for j in jobs if status is None or j.status == status]

    async def replace_results(
        self,
        scan_id: str,
        findings: list[Finding],
        assets: list[CryptoAsset],
        report: ScanReport | None = None,
    ) -> None:
        self._findings[scan_id] = list(findings)
        self._assets[scan_id] = list(assets)
        reports = [r for r in self._reports.get(scan_id, []) if r.source != "local"]
        if report is not None:
            reports.append(report.model_copy(deep=True))
        self._reports[scan_id] = reports

    async def save_report(self, report: ScanReport) -> None:
        self._reports.setdefault(report.scan_id, []).append(report.model_copy(deep=True))

    async def get_findings(self, scan_id: str) -> list[Finding]:
        return list(self._findings.get(scan_id, []))

    async def get_assets(self, scan_id: str) -> list[CryptoAsset]:
        return list(self._assets.get(scan_id, []))

    async def get_reports(self, scan_id: str) -> list[ScanReport]:
        return [r.model_copy(deep=True) for r in self._reports.get(scan_id, [])]


class SQLScanStore(IScanStore):
    """Store backed by SQLModel tables through async SQLAlchemy sessions."""

    def __init__(self, database: Database | None = None) -> None:
        self.database = database or Database()
        self.logger = get_logger("store")

    async def init(self) -> None:
        await self._guard("init", self.database.init)

    async def close(self) -> None:
        await self.database.close()

    async def create_job(self, job: ScanJob) -> None:
        async def op(repo: ScanRepository) -> None:
            await repo.create(job)

        await self._run("create_job", op)

    async def update_job(self, job: ScanJob) -> None:
        async def op(repo: ScanRepository) -> None:
            if await repo.update_from_job(job) is None:
                raise PersistenceError(f"Job {job.id} does not exist")

        await self._run("update_job", op)

    async def get_job(self, job_id: str) -> ScanJob | None:
        async def op(repo: ScanRepository) -> ScanJob | None:
            record = await repo.get_by_id(job_id)
            return record.to_job() if record else None

        return await self._run("get_job", op)

    async def list_jobs(self, status: ScanStatus | None = None) -> list[ScanJob]:
        async def op(repo: ScanRepository) -> list[ScanJob]:
            records = await repo.list_scans(status.value if status else None)
            return [r.to_job() for r in records]

        return await self._run("list_jobs", op)

    async def replace_results(
        self,
        scan_id: str,
        findings: list[Finding],
        assets: list[CryptoAsset],
        report: ScanReport | None = None,
    ) -> None:
        async def op(repo: ScanRepository) -> None:
            await repo.replace_results(scan_id, findings, assets, report)

        await self._run("replace_results", op)
        self.logger.debug(
            "results_replaced",
            scan_id=scan_id,
            findings=len(findings),
            assets=len(assets),
        )

    async def save_report(self, report: ScanReport) -> None:
        async def op(repo: ScanRepository) -> None:
            await repo.add_report(report)

        await self._run("save_report", op)

    async def get_findings(self, scan_id: str) -> list[Finding]:
        async def op(repo: ScanRepository) -> list[Finding]:
            return [r.to_finding() for r in await repo.findings_for(scan_id)]

        return await self._run("get_findings", op)

    async def get_assets(self, scan_id: str) -> list[CryptoAsset]:
        async def op(repo: ScanRepository) -> list[CryptoAsset]:
            return [r.to_asset() for r in await repo.assets_for(scan_id)]

        return await self._run("get_assets", op)

    async def get_reports(self, scan_id: str) -> list[ScanReport]:
        async def op(repo: ScanRepository) -> list[ScanReport]:
            return [r.to_report() for r in await repo.reports_for(scan_id)]

        return await self._run("get_reports", op)

    async def _run(self, operation: str, op: Callable[[ScanRepository], Awaitable[T]]) -> T:
        async def in_session() -> T:
            async with self.database.session() as session:
                return await op(ScanRepository(session))

        return await self._guard(operation, in_session)

    async def _guard(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call()
        except SQLAlchemyError as e:
            self.logger.error("store_operation_failed", operation=operation, error=str(e))
            raise PersistenceError(
                f"Store operation {operation} failed: {e}",
                details={"operation": operation},
            ) from e
