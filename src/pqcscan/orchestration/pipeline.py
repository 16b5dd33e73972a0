"""Scan pipeline: fetch, analyze, classify, report."""

from collections.abc import Awaitable, Callable

from pqcscan.analysis import CryptoClassifier, FindingNormalizer
from pqcscan.core.exceptions import ToolError
from pqcscan.core.interfaces import IScanStore
from pqcscan.core.logging import get_logger
from pqcscan.models import ScanJob, ScanReport
from pqcscan.reports import ComplianceAggregator
from pqcscan.tools import ToolRunner
from pqcscan.workspace import RepositoryFetcher

Checkpoint = Callable[[int], Awaitable[None]]

# Progress reached when each stage finishes
PROGRESS_FETCHED = 10
PROGRESS_ANALYZED = 30
PROGRESS_CLASSIFIED = 80
PROGRESS_REPORTED = 95


class ScanPipeline:
    """Runs the stages of one scan job in order.

    Results are written to the store in a single replace after every stage
    has succeeded, so a failed run never leaves partial results behind. The
    scheduler discards them again if the job is not then marked completed.
    The job's workspace is removed however the run ends.
    """

    def __init__(
        self,
        store: IScanStore,
        fetcher: RepositoryFetcher | None = None,
        tool_runner: ToolRunner | None = None,
        normalizer: FindingNormalizer | None = None,
        classifier: CryptoClassifier | None = None,
        aggregator: ComplianceAggregator | None = None,
    ) -> None:
        self.logger = get_logger("pipeline")
        self.store = store
        self.fetcher = fetcher or RepositoryFetcher()
        self.tool_runner = tool_runner or ToolRunner()
        self.normalizer = normalizer or FindingNormalizer()
        self.classifier = classifier or CryptoClassifier()
        self.aggregator = aggregator or ComplianceAggregator()

    async def execute(self, job: ScanJob, checkpoint: Checkpoint) -> ScanReport:
        """Run every stage for ``job``, reporting progress through ``checkpoint``."""
        log = self.logger.bind(job_id=job.id)
        try:
            workspace = await self.fetcher.fetch(job.repository.url, job.branch, job.id)
            job.resolved_branch = workspace.branch
            if workspace.used_default_branch:
                job.warnings.append(
                    f"Branch '{job.branch}' not found; scanned default branch "
                    f"'{workspace.branch or 'unknown'}'"
                )
            await checkpoint(PROGRESS_FETCHED)

            outputs, errors = await self.tool_runner.run_all(workspace.path, job.config)
            for tool, message in errors.items():
                job.warnings.append(f"{tool}: {message}")
            if errors and not outputs:
                raise ToolError(
                    "All analysis tools failed: "
                    + "; ".join(f"{tool}: {msg}" for tool, msg in errors.items()),
                    details={"errors": errors},
                )
            await checkpoint(PROGRESS_ANALYZED)

            findings = self.normalizer.normalize_all(outputs)
            assets = self.classifier.classify_findings(findings)
            summary = self.normalizer.summarize(findings, outputs)
            log.info("findings_ingested", findings=len(findings), assets=len(assets))
            await checkpoint(PROGRESS_CLASSIFIED)

            report = self.aggregator.build_report(
                job.id, job.repository, findings, assets, summary
            )
            await checkpoint(PROGRESS_REPORTED)

            await self.store.replace_results(job.id, findings, assets, report)
            return report
        finally:
            await self.fetcher.cleanup(self.fetcher.workspace_for(job.id))
