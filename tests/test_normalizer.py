"""Tests for finding normalization."""

from pqcscan.analysis import FindingNormalizer, map_severity
from pqcscan.analysis.normalizer import pqc_category_for, recommendation_for
from pqcscan.models import PqcCategory, RawOutput, Severity


def semgrep_result(**overrides) -> dict:
    result = {
        "check_id": "pqc-rsa-key-generation",
        "path": "/work/scan-1/src/keys.py",
        "start": {"line": 4, "col": 7},
        "end": {"line": 4, "col": 30},
        "extra": {
            "severity": "ERROR",
            "message": "RSA key generation is quantum-vulnerable",
            "lines": "key = RSA.generate(2048)",
            "metadata": {
                "category": "cryptography",
                "algorithm": "RSA",
                "pqc_category": "quantum_vulnerable",
            },
        },
    }
    result.update(overrides)
    return result


def bandit_result(**overrides) -> dict:
    result = {
        "test_id": "B303",
        "test_name": "md5",
        "issue_text": "Use of insecure MD5 hash function.",
        "issue_severity": "MEDIUM",
        "filename": "/work/scan-1/app.py",
        "line_number": 9,
        "col_offset": 4,
        "code": "hashlib.md5(data)",
    }
    result.update(overrides)
    return result


class TestSeverityMapping:
    def test_semgrep_table(self):
        assert map_severity("semgrep", "ERROR") == Severity.CRITICAL
        assert map_severity("semgrep", "WARNING") == Severity.MEDIUM
        assert map_severity("semgrep", "INFO") == Severity.INFO

    def test_bandit_table(self):
        assert map_severity("bandit", "HIGH") == Severity.HIGH
        assert map_severity("bandit", "low") == Severity.LOW

    def test_canonical_names_pass_through(self):
        assert map_severity("pqc-analyzer", "critical") == Severity.CRITICAL

    def test_unknown_defaults_to_high(self):
        assert map_severity("semgrep", "SEVERE") == Severity.HIGH
        assert map_severity("other", None) == Severity.HIGH


class TestSemgrepNormalization:
    def test_fields_mapped(self):
        raw = RawOutput(tool="semgrep", data={"results": [semgrep_result()]}, workspace="/work/scan-1")
        [finding] = FindingNormalizer().normalize(raw)

        assert finding.rule_id == "pqc-rsa-key-generation"
        assert finding.severity == Severity.CRITICAL
        assert finding.file_path == "src/keys.py"
        assert finding.start_line == 4
        assert finding.pqc_category == PqcCategory.QUANTUM_VULNERABLE
        assert finding.metadata.algorithm == "RSA"
        assert finding.category == "cryptography"
        assert "ML-KEM" in finding.recommendation

    def test_category_derived_from_message(self):
        result = semgrep_result()
        result["extra"]["metadata"] = {}
        result["extra"]["message"] = "ECDSA signature in use"
        raw = RawOutput(tool="semgrep", data={"results": [result]})
        [finding] = FindingNormalizer().normalize(raw)
        assert finding.pqc_category == PqcCategory.QUANTUM_VULNERABLE

    def test_malformed_results_skipped(self):
        results = [
            "not a dict",
            {"path": "a.py"},
            semgrep_result(start={"line": -3}),
            semgrep_result(),
        ]
        raw = RawOutput(tool="semgrep", data={"results": results})
        findings = FindingNormalizer().normalize(raw)
        assert len(findings) == 1

    def test_list_metadata_values(self):
        result = semgrep_result()
        result["extra"]["metadata"]["algorithm"] = ["ECDSA", "RSA"]
        result["extra"]["metadata"]["technology"] = ["python", "cryptography"]
        raw = RawOutput(tool="semgrep", data={"results": [result]})
        [finding] = FindingNormalizer().normalize(raw)
        assert finding.metadata.algorithm == "ECDSA"
        assert finding.metadata.technology == "python, cryptography"

    def test_missing_results_key(self):
        raw = RawOutput(tool="semgrep", data={"errors": []})
        assert FindingNormalizer().normalize(raw) == []


class TestBanditNormalization:
    def test_crypto_results_kept(self):
        raw = RawOutput(tool="bandit", data={"results": [bandit_result()]}, workspace="/work/scan-1")
        [finding] = FindingNormalizer().normalize(raw)
        assert finding.tool == "bandit"
        assert finding.rule_id == "B303"
        assert finding.severity == Severity.MEDIUM
        assert finding.file_path == "app.py"
        assert finding.category == "cryptography"
        assert finding.metadata.algorithm == "MD5"

    def test_non_crypto_results_dropped(self):
        result = bandit_result(
            test_id="B101",
            test_name="assert_used",
            issue_text="Use of assert detected.",
        )
        raw = RawOutput(tool="bandit", data={"results": [result]})
        assert FindingNormalizer().normalize(raw) == []

    def test_weak_test_name_is_quantum_vulnerable(self):
        result = bandit_result(test_id="B505", test_name="weak_cryptographic_key")
        raw = RawOutput(tool="bandit", data={"results": [result]})
        [finding] = FindingNormalizer().normalize(raw)
        assert finding.pqc_category == PqcCategory.QUANTUM_VULNERABLE


class TestSummary:
    def test_counts(self):
        results = [semgrep_result(), semgrep_result(path="/work/scan-1/b.py")]
        scanned = ["/work/scan-1/src/keys.py", "/work/scan-1/b.py", "/work/scan-1/c.py"]
        raw = RawOutput(
            tool="semgrep",
            data={"results": results, "paths": {"scanned": scanned}},
            workspace="/work/scan-1",
        )
        normalizer = FindingNormalizer()
        findings = normalizer.normalize(raw)
        summary = normalizer.summarize(findings, [raw])
        assert summary.total_files == 3
        assert summary.total_findings == 2
        assert summary.by_severity["critical"] == 2
        assert summary.by_severity["low"] == 0
        assert summary.by_tool == {"semgrep": 2}


class TestHelpers:
    def test_category_keywords(self):
        assert pqc_category_for("RSA in use") == PqcCategory.QUANTUM_VULNERABLE
        assert pqc_category_for("Library upgrade advised") == PqcCategory.MIGRATION_REQUIRED
        assert pqc_category_for("weak cipher mode") == PqcCategory.CRYPTO_WEAKNESS

    def test_recommendation_falls_back(self):
        assert "Evaluate" in recommendation_for(None, "nothing to see")
        assert "ML-DSA" in recommendation_for("ECDSA")
