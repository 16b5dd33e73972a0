"""Repository layer for database operations."""

from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from pqcscan.database.models import CryptoAssetRecord, FindingRecord, ReportRecord, ScanRecord
from pqcscan.models import CryptoAsset, Finding, ScanJob, ScanReport


class ScanRepository:
    """Repository for scan, finding, asset and report rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, job: ScanJob) -> ScanRecord:
        record = ScanRecord.from_job(job)
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_by_id(self, scan_id: str) -> ScanRecord | None:
        result = await self.session.execute(select(ScanRecord).where(ScanRecord.id == scan_id))
        return result.scalar_one_or_none()

    async def update_from_job(self, job: ScanJob) -> ScanRecord | None:
        """Update a scan record from a job. Returns None when it does not exist."""
        record = await self.get_by_id(job.id)
        if not record:
            return None
        record.apply(job)
        self.session.add(record)
        await self.session.flush()
        return record

    async def list_scans(self, status: str | None = None) -> list[ScanRecord]:
        """List scan records, oldest first."""
        query = select(ScanRecord)
        if status:
            query = query.where(ScanRecord.status == status)
        query = query.order_by(ScanRecord.created_at.asc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def replace_results(
        self,
        scan_id: str,
        findings: Sequence[Finding],
        assets: Sequence[CryptoAsset],
        report: ScanReport | None,
    ) -> None:
        """Delete then insert a scan's findings, assets and local reports."""
        await self.session.execute(delete(FindingRecord).where(FindingRecord.scan_id == scan_id))
        await self.session.execute(
            delete(CryptoAssetRecord).where(CryptoAssetRecord.scan_id == scan_id)
        )
        await self.session.execute(
            delete(ReportRecord).where(
                ReportRecord.scan_id == scan_id,
                ReportRecord.source == "local",
            )
        )
        self.session.add_all(
            FindingRecord.from_finding(scan_id, i, f) for i, f in enumerate(findings)
        )
        self.session.add_all(
            CryptoAssetRecord.from_asset(scan_id, i, a) for i, a in enumerate(assets)
        )
        if report is not None:
            self.session.add(ReportRecord.from_report(report))
        await self.session.flush()

    async def add_report(self, report: ScanReport) -> ReportRecord:
        record = ReportRecord.from_report(report)
        self.session.add(record)
        await self.session.flush()
        return record

    async def findings_for(self, scan_id: str) -> list[FindingRecord]:
        result = await self.session.execute(
            select(FindingRecord)
            .where(FindingRecord.scan_id == scan_id)
            .order_by(FindingRecord.position)
        )
        return list(result.scalars().all())

    async def assets_for(self, scan_id: str) -> list[CryptoAssetRecord]:
        result = await self.session.execute(
            select(CryptoAssetRecord)
            .where(CryptoAssetRecord.scan_id == scan_id)
            .order_by(CryptoAssetRecord.position)
        )
        return list(result.scalars().all())

    async def reports_for(self, scan_id: str) -> list[ReportRecord]:
        result = await self.session.execute(
            select(ReportRecord)
            .where(ReportRecord.scan_id == scan_id)
            .order_by(ReportRecord.created_at)
        )
        return list(result.scalars().all())
