"""Tests for external scanner triggering and polling."""

import json

import httpx
import pytest

from pqcscan.core.exceptions import IntegrationError
from pqcscan.database import MemoryScanStore
from pqcscan.models import ExternalScannerIntegration
from pqcscan.orchestration import ExternalScannerPoller

SCAN_URL = "https://scanner.example/api/scan"

SEMGREP_OUTPUT = {
    "results": [
        {
            "check_id": "pqc-rsa-key-generation",
            "path": "src/keys.py",
            "start": {"line": 2, "col": 1},
            "end": {"line": 2, "col": 20},
            "extra": {
                "severity": "ERROR",
                "message": "RSA key generation is quantum-vulnerable",
                "metadata": {"algorithm": "RSA", "pqc_category": "quantum_vulnerable"},
            },
        }
    ]
}


class FakeScanner:
    """Scripted external scanner: accepts one scan, then replays statuses."""

    def __init__(self, statuses: list[dict], trigger_response: httpx.Response | None = None):
        self.statuses = list(statuses)
        self.trigger_response = trigger_response
        self.requests: list[httpx.Request] = []
        self.status_calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "HEAD":
            return httpx.Response(200)
        if request.method == "POST":
            return self.trigger_response or httpx.Response(
                200, json={"id": "ext-1", "status": "QUEUED"}
            )
        self.status_calls += 1
        body = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return httpx.Response(200, json=body)


def make_poller(store, scanner, max_attempts: int = 5) -> ExternalScannerPoller:
    return ExternalScannerPoller(
        store,
        transport=httpx.MockTransport(scanner),
        initial_delay=0,
        poll_interval=0,
        max_attempts=max_attempts,
    )


@pytest.fixture
def integration() -> ExternalScannerIntegration:
    return ExternalScannerIntegration(name="remote", scan_url=SCAN_URL)


class TestTrigger:
    async def test_trigger_payload(self, sample_job, integration):
        scanner = FakeScanner([{"id": "ext-1", "status": "RUNNING"}])
        async with make_poller(MemoryScanStore(), scanner, max_attempts=1) as poller:
            external_id = await poller.trigger(sample_job, integration)
            await poller.wait_all()

        assert external_id == "ext-1"
        body = json.loads(scanner.requests[0].content)
        assert body == {
            "repoUrl": sample_job.repository.url,
            "tool": "both",
            "branch": "main",
        }
        assert str(scanner.requests[1].url) == f"{SCAN_URL}/ext-1"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, json={"error": "down"}),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={"status": "QUEUED"}),
            httpx.Response(200, json={"id": "x", "status": "REJECTED"}),
        ],
    )
    async def test_bad_trigger_response_raises(self, sample_job, integration, response):
        scanner = FakeScanner([{}], trigger_response=response)
        async with make_poller(MemoryScanStore(), scanner) as poller:
            with pytest.raises(IntegrationError):
                await poller.trigger(sample_job, integration)
            assert poller.active() == []

    async def test_trigger_all_skips_disabled_and_swallows_errors(self, sample_job):
        scanner = FakeScanner(
            [{"id": "ext-1", "status": "RUNNING"}],
            trigger_response=httpx.Response(503),
        )
        integrations = [
            ExternalScannerIntegration(name="off", scan_url=SCAN_URL, enabled=False),
            ExternalScannerIntegration(name="broken", scan_url=SCAN_URL),
        ]
        async with make_poller(MemoryScanStore(), scanner) as poller:
            assert await poller.trigger_all(sample_job, integrations) == []
        assert len(scanner.requests) == 1


class TestPolling:
    async def test_completed_scan_ingested_once(self, sample_job, integration, memory_store):
        await memory_store.create_job(sample_job)
        completed = {"id": "ext-1", "status": "COMPLETED", "semgrepOutput": json.dumps(SEMGREP_OUTPUT)}
        scanner = FakeScanner([{"id": "ext-1", "status": "RUNNING"}, completed])

        async with make_poller(memory_store, scanner) as poller:
            await poller.trigger(sample_job, integration)
            await poller.wait_all()
            stored = poller.get_integration(integration.id)

        [report] = await memory_store.get_reports(sample_job.id)
        assert report.source == "external"
        assert report.compliance.vulnerable_count == 1
        assert report.crypto_assets[0].algorithm == "RSA"
        assert scanner.status_calls == 2
        assert stored.last_used is not None
        # The local job is never touched by polling
        assert (await memory_store.get_job(sample_job.id)).status == sample_job.status

    async def test_failed_scan_saves_nothing(self, sample_job, integration, memory_store):
        scanner = FakeScanner([{"id": "ext-1", "status": "FAILED", "errorMessage": "boom"}])
        async with make_poller(memory_store, scanner) as poller:
            await poller.trigger(sample_job, integration)
            await poller.wait_all()

        assert await memory_store.get_reports(sample_job.id) == []
        assert scanner.status_calls == 1

    async def test_completed_without_output_saves_nothing(self, sample_job, integration, memory_store):
        scanner = FakeScanner([{"id": "ext-1", "status": "COMPLETED"}])
        async with make_poller(memory_store, scanner) as poller:
            await poller.trigger(sample_job, integration)
            await poller.wait_all()
            stored = poller.get_integration(integration.id)

        assert await memory_store.get_reports(sample_job.id) == []
        assert scanner.status_calls == 1
        assert stored.last_used is None

    async def test_finished_polls_are_released(self, sample_job, integration, memory_store):
        scanner = FakeScanner([{"id": "ext-1", "status": "FAILED"}])
        async with make_poller(memory_store, scanner) as poller:
            await poller.trigger(sample_job, integration)
            assert len(poller.active()) == 1
            await poller.wait_all()

            assert poller.active() == []
            assert poller._tasks == {}
            assert poller._handles == {}

    async def test_polling_gives_up_after_max_attempts(self, sample_job, integration, memory_store):
        scanner = FakeScanner([{"id": "ext-1", "status": "RUNNING"}])
        async with make_poller(memory_store, scanner, max_attempts=3) as poller:
            await poller.trigger(sample_job, integration)
            await poller.wait_all()

        assert scanner.status_calls == 3
        assert await memory_store.get_reports(sample_job.id) == []

    async def test_status_errors_count_as_attempts(self, sample_job, integration, memory_store):
        scanner = FakeScanner([{"unexpected": True}])
        async with make_poller(memory_store, scanner, max_attempts=2) as poller:
            await poller.trigger(sample_job, integration)
            await poller.wait_all()

        assert scanner.status_calls == 2

    async def test_dict_output_accepted(self, sample_job, integration, memory_store):
        scanner = FakeScanner([{"id": "ext-1", "status": "COMPLETED", "semgrepOutput": SEMGREP_OUTPUT}])
        async with make_poller(memory_store, scanner) as poller:
            await poller.trigger(sample_job, integration)
            await poller.wait_all()

        [report] = await memory_store.get_reports(sample_job.id)
        assert report.summary.total_findings == 1


class TestConnection:
    async def test_reachable(self, integration):
        async with make_poller(MemoryScanStore(), FakeScanner([{}])) as poller:
            assert await poller.test_connection(integration) == (True, None)

    async def test_unreachable(self, integration):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        poller = ExternalScannerPoller(MemoryScanStore(), transport=httpx.MockTransport(refuse))
        async with poller:
            ok, error = await poller.test_connection(integration)
        assert not ok
        assert "refused" in error

    async def test_http_error_status(self, integration):
        poller = ExternalScannerPoller(
            MemoryScanStore(),
            transport=httpx.MockTransport(lambda request: httpx.Response(404)),
        )
        async with poller:
            ok, error = await poller.test_connection(integration)
        assert not ok
        assert error.startswith("HTTP 404")
