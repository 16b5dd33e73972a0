"""Tests for the job scheduler and the scan pipeline."""

import asyncio

import pytest

from pqcscan.core.exceptions import JobStateError, PersistenceError
from pqcscan.database import MemoryScanStore
from pqcscan.models import (
    ComplianceStatus,
    CryptoAsset,
    Finding,
    PqcCategory,
    QuantumSafety,
    RepositoryInfo,
    ScanConfig,
    ScanJob,
    ScanReport,
    ScanStatus,
    Severity,
)
from pqcscan.orchestration import JobScheduler, ScanPipeline
from pqcscan.tools import SemgrepTool, ToolRunner
from pqcscan.workspace import RepositoryFetcher


class RecordingStore(MemoryScanStore):
    """Memory store that records every persisted progress value per job."""

    def __init__(self) -> None:
        super().__init__()
        self.progress: dict[str, list[int]] = {}
        self.statuses: dict[str, list[ScanStatus]] = {}

    async def update_job(self, job: ScanJob) -> None:
        await super().update_job(job)
        self.progress.setdefault(job.id, []).append(job.progress)
        self.statuses.setdefault(job.id, []).append(job.status)


class FakePipeline:
    """Pipeline double that reports progress and tracks concurrency."""

    def __init__(self, delay: float = 0.05, fail_for: set[str] | None = None) -> None:
        self.delay = delay
        self.fail_for = fail_for or set()
        self.running = 0
        self.peak = 0

    async def execute(self, job, checkpoint):
        self.running += 1
        self.peak = max(self.peak, self.running)
        try:
            for progress in (10, 30, 80, 95):
                await asyncio.sleep(self.delay)
                await checkpoint(progress)
            if job.id in self.fail_for:
                raise RuntimeError("pipeline exploded")
            return ScanReport(scan_id=job.id, compliance=ComplianceStatus())
        finally:
            self.running -= 1


class BlockingPipeline:
    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def execute(self, job, checkpoint):
        self.started.set()
        await self.release.wait()
        await checkpoint(10)
        return ScanReport(scan_id=job.id)


class WritingPipeline:
    """Writes a result set after its last checkpoint, like ScanPipeline."""

    def __init__(self, store: MemoryScanStore, gate: bool = False) -> None:
        self.store = store
        self.reported = asyncio.Event()
        self.release = asyncio.Event()
        if not gate:
            self.release.set()

    async def execute(self, job, checkpoint):
        for progress in (10, 30, 80, 95):
            await checkpoint(progress)
        self.reported.set()
        await self.release.wait()

        finding = Finding(
            rule_id="pqc-rsa-key-generation",
            severity=Severity.CRITICAL,
            message="RSA key generation is quantum-vulnerable",
            file_path="keys.py",
            start_line=1,
            tool="pqc-analyzer",
        )
        asset = CryptoAsset(
            algorithm="RSA",
            safety=QuantumSafety.VULNERABLE,
            file_path="keys.py",
            line=1,
        )
        report = ScanReport(scan_id=job.id, compliance=ComplianceStatus())
        await self.store.replace_results(job.id, [finding], [asset], report)
        return report


def make_job(url: str = "https://example.com/repo.git", tools: list[str] | None = None) -> ScanJob:
    return ScanJob(
        repository=RepositoryInfo(url=url),
        config=ScanConfig(tools=tools or ["pqc-analyzer"]),
    )


class TestJobScheduler:
    async def test_concurrency_never_exceeds_limit(self):
        store = RecordingStore()
        pipeline = FakePipeline()
        async with JobScheduler(store, pipeline, max_concurrent=2, tick_seconds=0.01) as scheduler:
            ids = [await scheduler.submit(make_job()) for _ in range(5)]
            await scheduler.drain()

        assert pipeline.peak <= 2
        assert scheduler.peak_active <= 2
        for job_id in ids:
            assert scheduler.get(job_id).status == ScanStatus.COMPLETED

    async def test_progress_is_monotonic_and_ends_at_100(self):
        store = RecordingStore()
        async with JobScheduler(store, FakePipeline(delay=0), tick_seconds=0.01) as scheduler:
            job_id = await scheduler.submit(make_job())
            job = await scheduler.wait(job_id)

        history = store.progress[job_id]
        assert history == sorted(history)
        assert history[-1] == 100
        assert store.statuses[job_id][0] == ScanStatus.RUNNING
        assert store.statuses[job_id][-1] == ScanStatus.COMPLETED
        assert job.status == ScanStatus.COMPLETED
        assert (await store.get_job(job_id)).progress == 100

    async def test_pipeline_failure_marks_job_failed(self):
        store = MemoryScanStore()
        bad = make_job()
        good = make_job()
        pipeline = FakePipeline(delay=0, fail_for={bad.id})
        async with JobScheduler(store, pipeline, tick_seconds=0.01) as scheduler:
            await scheduler.submit(bad)
            await scheduler.submit(good)
            await scheduler.drain()

        failed = await store.get_job(bad.id)
        assert failed.status == ScanStatus.FAILED
        assert failed.error_message == "pipeline exploded"
        assert (await store.get_job(good.id)).status == ScanStatus.COMPLETED

    async def test_submit_rejects_duplicates_and_non_pending(self):
        scheduler = JobScheduler(MemoryScanStore(), FakePipeline())
        job = make_job()
        await scheduler.submit(job)
        with pytest.raises(JobStateError):
            await scheduler.submit(job)

        running = make_job()
        running.mark_running()
        with pytest.raises(JobStateError):
            await scheduler.submit(running)

    async def test_returned_jobs_are_copies(self):
        scheduler = JobScheduler(MemoryScanStore(), FakePipeline())
        job_id = await scheduler.submit(make_job())
        scheduler.get(job_id).warnings.append("tampered")
        assert scheduler.get(job_id).warnings == []
        assert len(scheduler.list(ScanStatus.PENDING)) == 1

    async def test_mark_failed_pending_job(self):
        store = MemoryScanStore()
        pipeline = FakePipeline(delay=0)
        scheduler = JobScheduler(store, pipeline, tick_seconds=0.01)
        job_id = await scheduler.submit(make_job())

        await scheduler.mark_failed(job_id, "Cancelled by operator")
        assert scheduler.tick() == 0

        job = await scheduler.wait(job_id)
        assert job.status == ScanStatus.FAILED
        assert job.error_message == "Cancelled by operator"
        assert pipeline.peak == 0

    async def test_mark_failed_running_job_stops_at_checkpoint(self):
        store = RecordingStore()
        pipeline = BlockingPipeline()
        async with JobScheduler(store, pipeline, tick_seconds=0.01) as scheduler:
            job_id = await scheduler.submit(make_job())
            await pipeline.started.wait()

            await scheduler.mark_failed(job_id, "Stopped by operator")
            pipeline.release.set()
            job = await scheduler.wait(job_id)

        assert job.status == ScanStatus.FAILED
        assert job.error_message == "Stopped by operator"
        assert ScanStatus.COMPLETED not in store.statuses[job_id]

    async def test_store_failure_still_fails_job(self):
        class BrokenStore(MemoryScanStore):
            async def update_job(self, job):
                if job.status == ScanStatus.RUNNING and job.progress >= 30:
                    raise PersistenceError("disk full")
                if job.status == ScanStatus.FAILED:
                    raise PersistenceError("disk full")
                await super().update_job(job)

        async with JobScheduler(BrokenStore(), FakePipeline(delay=0), tick_seconds=0.01) as scheduler:
            job_id = await scheduler.submit(make_job())
            job = await scheduler.wait(job_id)

        assert job.status == ScanStatus.FAILED
        assert "disk full" in job.error_message

    async def test_failed_completion_commit_discards_results(self):
        class CompletionFailsStore(MemoryScanStore):
            async def update_job(self, job):
                if job.status == ScanStatus.COMPLETED:
                    raise PersistenceError("disk full")
                await super().update_job(job)

        store = CompletionFailsStore()
        job = make_job()
        external = ScanReport(scan_id=job.id, source="external")

        async with JobScheduler(store, WritingPipeline(store), tick_seconds=0.01) as scheduler:
            job_id = await scheduler.submit(job)
            await store.save_report(external)
            done = await scheduler.wait(job_id)

        assert done.status == ScanStatus.FAILED
        assert "disk full" in done.error_message
        assert await store.get_findings(job_id) == []
        assert await store.get_assets(job_id) == []
        assert [r.source for r in await store.get_reports(job_id)] == ["external"]

    async def test_mark_failed_after_last_checkpoint_discards_results(self):
        store = MemoryScanStore()
        pipeline = WritingPipeline(store, gate=True)
        async with JobScheduler(store, pipeline, tick_seconds=0.01) as scheduler:
            job_id = await scheduler.submit(make_job())
            await pipeline.reported.wait()

            await scheduler.mark_failed(job_id, "Stopped by operator")
            pipeline.release.set()
            job = await scheduler.wait(job_id)

        assert job.status == ScanStatus.FAILED
        assert await store.get_findings(job_id) == []
        assert await store.get_assets(job_id) == []
        assert await store.get_reports(job_id) == []

    async def test_completed_job_keeps_results(self):
        store = MemoryScanStore()
        async with JobScheduler(store, WritingPipeline(store), tick_seconds=0.01) as scheduler:
            job = await scheduler.wait(await scheduler.submit(make_job()))

        assert job.status == ScanStatus.COMPLETED
        assert [a.algorithm for a in await store.get_assets(job.id)] == ["RSA"]
        assert len(await store.get_reports(job.id)) == 1

    async def test_wait_unknown_job(self):
        with pytest.raises(JobStateError):
            await JobScheduler(MemoryScanStore(), FakePipeline()).wait("missing")


class TestScanPipelineEndToEnd:
    async def test_rsa_1024_scan(self, make_git_repo):
        url = make_git_repo({"keys.py": "key = RSA.generate(1024)\n"})
        store = MemoryScanStore()
        fetcher = RepositoryFetcher()

        async with JobScheduler(store, ScanPipeline(store, fetcher=fetcher), tick_seconds=0.01) as scheduler:
            job_id = await scheduler.submit(make_job(url))
            job = await scheduler.wait(job_id)

        assert job.status == ScanStatus.COMPLETED, job.error_message
        assert job.resolved_branch == "main"

        [finding] = await store.get_findings(job_id)
        assert finding.severity == Severity.CRITICAL
        assert finding.pqc_category == PqcCategory.QUANTUM_VULNERABLE
        assert finding.file_path == "keys.py"
        assert finding.start_line == 1

        [asset] = await store.get_assets(job_id)
        assert asset.algorithm == "RSA"
        assert asset.quantum_safe is False
        assert asset.key_size == 1024

        [report] = await store.get_reports(job_id)
        assert report.compliance.score < 100
        assert report.content["components"][0]["name"] == "RSA"
        assert not fetcher.workspace_for(job_id).exists()

    async def test_branch_fallback_recorded_as_warning(self, make_git_repo):
        url = make_git_repo({"hash.py": "h = hashlib.sha3_256()\n"})
        store = MemoryScanStore()
        job = make_job(url)
        job.branch = "feature/missing"

        async with JobScheduler(store, tick_seconds=0.01) as scheduler:
            job_id = await scheduler.submit(job)
            done = await scheduler.wait(job_id)

        assert done.status == ScanStatus.COMPLETED
        assert done.resolved_branch == "main"
        assert any("feature/missing" in w for w in done.warnings)

    async def test_all_tools_failing_fails_job_and_cleans_up(self, make_git_repo):
        url = make_git_repo({"a.py": "x = 1\n"})
        store = MemoryScanStore()
        fetcher = RepositoryFetcher()
        runner = ToolRunner({"semgrep": SemgrepTool(executable="pqcscan-no-such-semgrep")})
        pipeline = ScanPipeline(store, fetcher=fetcher, tool_runner=runner)

        async with JobScheduler(store, pipeline, tick_seconds=0.01) as scheduler:
            job_id = await scheduler.submit(make_job(url, tools=["semgrep"]))
            job = await scheduler.wait(job_id)

        assert job.status == ScanStatus.FAILED
        assert "All analysis tools failed" in job.error_message
        assert await store.get_findings(job_id) == []
        assert not fetcher.workspace_for(job_id).exists()

    async def test_one_failing_tool_becomes_warning(self, make_git_repo):
        url = make_git_repo({"a.py": "h = md5(x)\n"})
        store = MemoryScanStore()
        runner = ToolRunner({"semgrep": SemgrepTool(executable="pqcscan-no-such-semgrep")})
        pipeline = ScanPipeline(store, tool_runner=runner)

        async with JobScheduler(store, pipeline, tick_seconds=0.01) as scheduler:
            job_id = await scheduler.submit(make_job(url, tools=["semgrep", "pqc-analyzer"]))
            job = await scheduler.wait(job_id)

        assert job.status == ScanStatus.COMPLETED
        assert any(w.startswith("semgrep:") for w in job.warnings)
        assert [a.algorithm for a in await store.get_assets(job_id)] == ["MD5"]

    async def test_clone_failure_fails_job(self, tmp_path):
        store = MemoryScanStore()
        async with JobScheduler(store, tick_seconds=0.01) as scheduler:
            job_id = await scheduler.submit(make_job((tmp_path / "missing").as_uri()))
            job = await scheduler.wait(job_id)

        assert job.status == ScanStatus.FAILED
        assert "clone" in job.error_message.lower()
