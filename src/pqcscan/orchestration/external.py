"""External scanner integration: trigger remote scans and poll for results."""

import asyncio
import json
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from pqcscan.analysis import CryptoClassifier, FindingNormalizer
from pqcscan.core.config import get_settings
from pqcscan.core.exceptions import IntegrationError, PersistenceError
from pqcscan.core.interfaces import IScanStore
from pqcscan.core.logging import get_logger
from pqcscan.infrastructure.http import HTTPClient
from pqcscan.models import (
    ExternalScanHandle,
    ExternalScannerIntegration,
    ExternalScanStatus,
    ExternalScanStatusResponse,
    RawOutput,
    RepositoryInfo,
    ScanJob,
    utcnow,
)
from pqcscan.reports import ComplianceAggregator


class ExternalScannerPoller:
    """Triggers scans on third-party services and ingests their results.

    Each accepted scan is polled by its own task. Polling never touches the
    local job's status; a completed remote scan only adds a report.
    """

    def __init__(
        self,
        store: IScanStore,
        transport: httpx.AsyncBaseTransport | None = None,
        initial_delay: float | None = None,
        poll_interval: float | None = None,
        max_attempts: int | None = None,
        normalizer: FindingNormalizer | None = None,
        classifier: CryptoClassifier | None = None,
        aggregator: ComplianceAggregator | None = None,
    ) -> None:
        settings = get_settings()
        self.logger = get_logger("external_scanner")
        self.store = store
        self.http = HTTPClient(transport=transport)
        self.initial_delay = settings.external_initial_delay if initial_delay is None else initial_delay
        self.poll_interval = settings.external_poll_interval if poll_interval is None else poll_interval
        self.max_attempts = max_attempts or settings.external_max_attempts
        self.normalizer = normalizer or FindingNormalizer()
        self.classifier = classifier or CryptoClassifier()
        self.aggregator = aggregator or ComplianceAggregator()

        self._integrations: dict[str, ExternalScannerIntegration] = {}
        self._handles: dict[str, ExternalScanHandle] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    async def __aenter__(self) -> "ExternalScannerPoller":
        await self.http.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def get_integration(self, integration_id: str) -> ExternalScannerIntegration | None:
        integration = self._integrations.get(integration_id)
        return integration.model_copy(deep=True) if integration else None

    def active(self) -> list[ExternalScanHandle]:
        """Handles of remote scans still being polled."""
        return [
            self._handles[key].model_copy(deep=True)
            for key, task in self._tasks.items()
            if not task.done()
        ]

    async def trigger(self, job: ScanJob, integration: ExternalScannerIntegration) -> str:
        """Start a remote scan for ``job`` and begin polling it.

        Returns the external scan ID. Raises ``IntegrationError`` unless the
        service answers with ``{"status": "QUEUED", "id": ...}``.
        """
        await self.http.open()
        payload = {"repoUrl": job.repository.url, "tool": "both", "branch": job.branch}
        try:
            response = await self.http.post(integration.scan_url, json=payload)
        except httpx.HTTPError as e:
            raise IntegrationError(
                f"Failed to reach external scanner: {e}",
                integration=integration.name,
            ) from e

        if not response.is_success:
            raise IntegrationError(
                f"External scanner returned HTTP {response.status_code}",
                integration=integration.name,
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as e:
            raise IntegrationError(
                "External scanner returned a non-JSON response",
                integration=integration.name,
                status_code=response.status_code,
            ) from e
        if (
            not isinstance(body, dict)
            or body.get("status") != ExternalScanStatus.QUEUED.value
            or not body.get("id")
        ):
            raise IntegrationError(
                "External scanner did not queue the scan",
                integration=integration.name,
                status_code=response.status_code,
                details={"response": body},
            )

        handle = ExternalScanHandle(
            scan_id=job.id,
            repository_id=job.repository.id,
            external_id=str(body["id"]),
            status_url=integration.effective_status_url,
            integration_id=integration.id,
        )
        key = f"{integration.id}:{handle.external_id}"
        self._integrations[integration.id] = integration.model_copy(deep=True)
        self._handles[key] = handle
        task = asyncio.create_task(self._poll(key, job.repository))
        task.add_done_callback(lambda _: self._forget(key))
        self._tasks[key] = task

        self.logger.info(
            "external_scan_queued",
            job_id=job.id,
            integration=integration.name,
            external_id=handle.external_id,
        )
        return handle.external_id

    async def trigger_all(
        self,
        job: ScanJob,
        integrations: Sequence[ExternalScannerIntegration],
    ) -> list[str]:
        """Trigger every enabled and active integration; failures are logged."""
        external_ids: list[str] = []
        for integration in integrations:
            if not integration.is_usable:
                continue
            try:
                external_ids.append(await self.trigger(job, integration))
            except IntegrationError as e:
                self.logger.warning(
                    "external_scan_trigger_failed",
                    job_id=job.id,
                    integration=integration.name,
                    status_code=e.status_code,
                    error=e.message,
                )
        return external_ids

    async def wait_all(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def close(self) -> None:
        """Cancel outstanding polls and close the HTTP client."""
        for task in list(self._tasks.values()):
            task.cancel()
        await self.wait_all()
        await self.http.close()

    async def test_connection(
        self,
        integration: ExternalScannerIntegration,
    ) -> tuple[bool, str | None]:
        """Check that the scan endpoint answers a HEAD request."""
        await self.http.open()
        try:
            response = await self.http.head(integration.scan_url)
        except httpx.HTTPError as e:
            return False, str(e) or type(e).__name__
        if response.is_success:
            return True, None
        return False, f"HTTP {response.status_code}: {response.reason_phrase}"

    def _forget(self, key: str) -> None:
        self._tasks.pop(key, None)
        self._handles.pop(key, None)

    async def _poll(self, key: str, repository: RepositoryInfo) -> None:
        handle = self._handles[key]
        log = self.logger.bind(job_id=handle.scan_id, external_id=handle.external_id)

        await asyncio.sleep(self.initial_delay)
        while handle.attempts < self.max_attempts:
            if handle.attempts:
                await asyncio.sleep(self.poll_interval)
            handle.attempts += 1

            try:
                status = await self._fetch_status(handle)
            except IntegrationError as e:
                log.warning("external_status_check_failed", attempt=handle.attempts, error=e.message)
                continue

            handle.status = status.status
            log.debug("external_scan_status", status=status.status.value, attempt=handle.attempts)
            if status.status == ExternalScanStatus.COMPLETED:
                await self._ingest(handle, repository, status)
                return
            if status.status == ExternalScanStatus.FAILED:
                log.error("external_scan_failed", error=status.error_message)
                return

        log.error("external_scan_timeout", attempts=handle.attempts)

    async def _fetch_status(self, handle: ExternalScanHandle) -> ExternalScanStatusResponse:
        try:
            response = await self.http.get(handle.poll_url)
        except httpx.HTTPError as e:
            raise IntegrationError(f"Status request failed: {e}") from e
        if not response.is_success:
            raise IntegrationError(
                f"Status request returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return ExternalScanStatusResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise IntegrationError(f"Invalid status response: {e}") from e

    async def _ingest(
        self,
        handle: ExternalScanHandle,
        repository: RepositoryInfo,
        status: ExternalScanStatusResponse,
    ) -> None:
        if handle.ingested:
            return
        handle.ingested = True
        log = self.logger.bind(job_id=handle.scan_id, external_id=handle.external_id)

        if status.semgrep_output is None:
            log.warning("external_output_missing")
            return

        try:
            data = self._parse_output(status.semgrep_output)
        except ValueError as e:
            log.error("external_output_invalid", error=str(e))
            return

        raw = RawOutput(tool="semgrep", data=data)
        findings = self.normalizer.normalize(raw, "semgrep")
        assets = self.classifier.classify_findings(findings)
        report = self.aggregator.build_report(
            handle.scan_id,
            repository,
            findings,
            assets,
            self.normalizer.summarize(findings, [raw]),
            source="external",
        )
        try:
            await self.store.save_report(report)
        except PersistenceError as e:
            log.error("external_report_not_saved", error=e.message)
            return

        integration = self._integrations.get(handle.integration_id)
        if integration:
            integration.last_used = utcnow()
        log.info("external_scan_ingested", findings=len(findings), assets=len(assets))

    @staticmethod
    def _parse_output(output: str | dict) -> dict:
        if isinstance(output, dict):
            return output
        data = json.loads(output)
        if not isinstance(data, dict):
            raise ValueError("semgrepOutput is not a JSON object")
        return data
