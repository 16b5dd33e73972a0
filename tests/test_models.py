"""Tests for scan job state transitions and model helpers."""

import pytest
from pydantic import ValidationError

from pqcscan.core.exceptions import JobStateError
from pqcscan.models import (
    CryptoAsset,
    ExternalScanHandle,
    ExternalScanStatusResponse,
    Finding,
    QuantumSafety,
    RepositoryInfo,
    ScanJob,
    ScanStatus,
    Severity,
)


class TestScanJobTransitions:
    def test_new_job_is_pending(self, sample_job):
        assert sample_job.status == ScanStatus.PENDING
        assert sample_job.progress == 0
        assert not sample_job.is_terminal

    def test_running_to_completed(self, sample_job):
        sample_job.mark_running()
        assert sample_job.started_at is not None
        sample_job.advance(40)
        sample_job.mark_completed()
        assert sample_job.status == ScanStatus.COMPLETED
        assert sample_job.progress == 100
        assert sample_job.duration_seconds is not None

    def test_progress_never_decreases(self, sample_job):
        sample_job.mark_running()
        sample_job.advance(60)
        sample_job.advance(30)
        assert sample_job.progress == 60

    def test_progress_capped_at_100(self, sample_job):
        sample_job.mark_running()
        sample_job.advance(250)
        assert sample_job.progress == 100

    def test_cannot_complete_pending_job(self, sample_job):
        with pytest.raises(JobStateError):
            sample_job.mark_completed()

    def test_cannot_start_twice(self, sample_job):
        sample_job.mark_running()
        with pytest.raises(JobStateError):
            sample_job.mark_running()

    def test_pending_job_can_fail(self, sample_job):
        sample_job.mark_failed("cancelled by operator")
        assert sample_job.status == ScanStatus.FAILED
        assert sample_job.error_message == "cancelled by operator"

    def test_terminal_job_cannot_fail_again(self, sample_job):
        sample_job.mark_running()
        sample_job.mark_completed()
        with pytest.raises(JobStateError):
            sample_job.mark_failed("late failure")

    def test_advance_requires_running(self, sample_job):
        with pytest.raises(JobStateError):
            sample_job.advance(10)


class TestRepositoryInfo:
    def test_display_name_from_url(self):
        repo = RepositoryInfo(url="https://github.com/org/project.git")
        assert repo.display_name == "project"

    def test_url_required(self):
        with pytest.raises(ValidationError):
            RepositoryInfo(url="")


class TestCryptoAsset:
    def test_quantum_safe_tristate(self):
        safe = CryptoAsset(algorithm="ML-KEM", safety=QuantumSafety.SAFE, file_path="a.py")
        vuln = CryptoAsset(algorithm="RSA", safety=QuantumSafety.VULNERABLE, file_path="a.py")
        unknown = CryptoAsset(algorithm="Foo123", file_path="a.py")
        assert safe.quantum_safe is True
        assert vuln.quantum_safe is False
        assert unknown.quantum_safe is None

    def test_location_includes_line(self):
        asset = CryptoAsset(algorithm="RSA", file_path="src/keys.py", line=12)
        assert asset.location == "src/keys.py:12"


class TestFinding:
    def test_location(self):
        finding = Finding(
            rule_id="r",
            severity=Severity.HIGH,
            message="m",
            file_path="a.py",
            start_line=3,
            tool="semgrep",
        )
        assert finding.location == "a.py:3"


class TestExternalModels:
    def test_status_response_aliases(self):
        status = ExternalScanStatusResponse.model_validate(
            {"id": "x1", "status": "COMPLETED", "semgrepOutput": "{}", "extra": 1}
        )
        assert status.semgrep_output == "{}"

    def test_poll_url_joins_id(self):
        handle = ExternalScanHandle(
            scan_id="s",
            external_id="abc",
            status_url="https://scanner.example/api/scan",
            integration_id="i",
        )
        assert handle.poll_url == "https://scanner.example/api/scan/abc"


def test_job_copy_is_independent(sample_job):
    copy = sample_job.model_copy(deep=True)
    copy.warnings.append("changed")
    assert sample_job.warnings == []
    assert isinstance(copy, ScanJob)
