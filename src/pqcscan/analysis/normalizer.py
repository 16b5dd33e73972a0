"""Normalizes raw tool output into uniform findings."""

from collections import Counter
from collections.abc import Iterable
from pathlib import PurePosixPath
from typing import Any

from pydantic import ValidationError

from pqcscan.analysis.algorithms import GENERIC_RECOMMENDATION, find_algorithms, lookup
from pqcscan.core.exceptions import ClassificationError
from pqcscan.core.logging import get_logger
from pqcscan.models import (
    Finding,
    FindingMetadata,
    PqcCategory,
    RawOutput,
    ScanSummary,
    Severity,
)

# Tool-specific severity names; canonical names always pass through.
SEVERITY_TABLES: dict[str, dict[str, Severity]] = {
    "semgrep": {
        "ERROR": Severity.CRITICAL,
        "WARNING": Severity.MEDIUM,
        "INFO": Severity.INFO,
    },
    "bandit": {
        "HIGH": Severity.HIGH,
        "MEDIUM": Severity.MEDIUM,
        "LOW": Severity.LOW,
    },
}
DEFAULT_SEVERITY = Severity.HIGH

# Bandit checks for weak ciphers, hashes, key sizes and pyCrypto imports
BANDIT_CRYPTO_TESTS = {"B303", "B304", "B305", "B324", "B413", "B505"}


def map_severity(tool: str, value: Any) -> Severity:
    """Map a tool severity to a canonical one, ``high`` when unrecognized."""
    if not isinstance(value, str):
        return DEFAULT_SEVERITY
    table = SEVERITY_TABLES.get(tool, {})
    mapped = table.get(value.upper())
    if mapped is not None:
        return mapped
    try:
        return Severity(value.lower())
    except ValueError:
        return DEFAULT_SEVERITY


def pqc_category_for(message: str) -> PqcCategory:
    """Derive the post-quantum category from a finding message."""
    text = message.lower()
    if "rsa" in text or "ecdsa" in text:
        return PqcCategory.QUANTUM_VULNERABLE
    if "migration" in text or "upgrade" in text:
        return PqcCategory.MIGRATION_REQUIRED
    return PqcCategory.CRYPTO_WEAKNESS


def recommendation_for(algorithm: str | None, text: str = "") -> str:
    """Migration advice for an algorithm name, or for the first algorithm named in ``text``."""
    spec = lookup(algorithm) if algorithm else None
    if spec is None and text:
        matches = find_algorithms(text)
        spec = matches[0].spec if matches else None
    return spec.recommendation if spec else GENERIC_RECOMMENDATION


class FindingNormalizer:
    """Maps semgrep-shaped and bandit-shaped results to ``Finding`` records."""

    def __init__(self) -> None:
        self.logger = get_logger("normalizer")

    def normalize(self, raw: RawOutput, tool_name: str | None = None) -> list[Finding]:
        """Convert one tool output; malformed results are skipped with a warning."""
        tool = tool_name or raw.tool
        results = raw.data.get("results") or []
        if not isinstance(results, list):
            self.logger.warning("results_not_a_list", tool=tool)
            return []

        parse = self._from_bandit if self._is_bandit(tool, results) else self._from_semgrep
        findings: list[Finding] = []
        skipped = 0
        for index, result in enumerate(results):
            try:
                finding = parse(result, tool, raw.workspace)
            except ClassificationError as e:
                skipped += 1
                self.logger.warning("result_skipped", tool=tool, index=index, error=e.message)
                continue
            if finding is not None:
                findings.append(finding)

        self.logger.info("results_normalized", tool=tool, findings=len(findings), skipped=skipped)
        return findings

    def normalize_all(self, outputs: Iterable[RawOutput]) -> list[Finding]:
        findings: list[Finding] = []
        for raw in outputs:
            findings.extend(self.normalize(raw))
        return findings

    def summarize(self, findings: list[Finding], outputs: Iterable[RawOutput] = ()) -> ScanSummary:
        """Counts by severity and tool plus the number of files the tools scanned."""
        scanned: set[str] = set()
        for raw in outputs:
            paths = raw.data.get("paths")
            if isinstance(paths, dict) and isinstance(paths.get("scanned"), list):
                scanned.update(
                    _relative(str(p), raw.workspace) for p in paths["scanned"] if p
                )
            metrics = raw.data.get("metrics")
            if isinstance(metrics, dict):
                scanned.update(
                    _relative(str(p), raw.workspace) for p in metrics if p != "_totals"
                )
        if not scanned:
            scanned = {f.file_path for f in findings}

        by_severity = Counter(f.severity.value for f in findings)
        by_tool = Counter(f.tool for f in findings)
        return ScanSummary(
            total_files=len(scanned),
            total_findings=len(findings),
            by_severity={s.value: by_severity.get(s.value, 0) for s in Severity},
            by_tool=dict(by_tool),
        )

    @staticmethod
    def _is_bandit(tool: str, results: list) -> bool:
        if tool == "bandit":
            return True
        first = results[0] if results else None
        return isinstance(first, dict) and "test_id" in first and "check_id" not in first

    def _from_semgrep(self, result: Any, tool: str, workspace: str | None) -> Finding:
        if not isinstance(result, dict):
            raise ClassificationError("Result is not an object")
        check_id = result.get("check_id")
        path = result.get("path")
        if not check_id or not path:
            raise ClassificationError("Result has no check_id or path")

        extra = _dict(result.get("extra"))
        meta = _dict(extra.get("metadata"))
        start = _dict(result.get("start"))
        end = _dict(result.get("end"))
        message = str(extra.get("message") or "")

        metadata = self._metadata(meta)
        return self._build(
            rule_id=str(check_id),
            severity=map_severity(tool, extra.get("severity")),
            message=message,
            file_path=_relative(str(path), workspace),
            start_line=_int(start.get("line")),
            end_line=_int(end.get("line")),
            start_col=_int(start.get("col")),
            code_snippet=str(extra.get("lines") or ""),
            category=str(meta.get("category") or "security"),
            tool=tool,
            pqc_category=_pqc_category(meta.get("pqc_category")) or pqc_category_for(message),
            recommendation=meta.get("recommendation")
            or recommendation_for(metadata.algorithm, f"{message} {check_id}"),
            metadata=metadata,
        )

    def _from_bandit(self, result: Any, tool: str, workspace: str | None) -> Finding | None:
        if not isinstance(result, dict):
            raise ClassificationError("Result is not an object")
        test_id = str(result.get("test_id") or "")
        test_name = str(result.get("test_name") or "")
        issue_text = str(result.get("issue_text") or "")
        filename = result.get("filename")

        if not (
            test_id in BANDIT_CRYPTO_TESTS
            or "crypto" in test_name.lower()
            or "crypt" in issue_text.lower()
        ):
            return None
        if not filename:
            raise ClassificationError("Result has no filename", details={"test_id": test_id})

        name = test_name.lower()
        if "weak" in name or "insecure" in name:
            category = PqcCategory.QUANTUM_VULNERABLE
        else:
            category = pqc_category_for(issue_text)

        matches = find_algorithms(issue_text)
        algorithm = matches[0].spec.name if matches else None
        line = _int(result.get("line_number"))
        return self._build(
            rule_id=test_id or test_name or "bandit",
            severity=map_severity(tool, result.get("issue_severity")),
            message=issue_text,
            file_path=_relative(str(filename), workspace),
            start_line=line,
            end_line=line,
            start_col=_int(result.get("col_offset")),
            code_snippet=str(result.get("code") or ""),
            category="cryptography",
            tool=tool,
            pqc_category=category,
            recommendation=recommendation_for(algorithm, issue_text),
            metadata=FindingMetadata(algorithm=algorithm, technology="python"),
        )

    @staticmethod
    def _metadata(meta: dict) -> FindingMetadata:
        algorithm = meta.get("algorithm")
        if isinstance(algorithm, list):
            algorithm = next((a for a in algorithm if isinstance(a, str)), None)
        technology = meta.get("technology")
        if isinstance(technology, list):
            technology = ", ".join(str(t) for t in technology) or None
        try:
            return FindingMetadata(
                algorithm=algorithm if isinstance(algorithm, str) else None,
                library=_str(meta.get("library")),
                key_size=_int(meta.get("key_size") or meta.get("keySize")),
                nist_standard=_str(meta.get("nist_standard")),
                technology=_str(technology),
            )
        except ValidationError as e:
            raise ClassificationError(f"Invalid finding metadata: {e.error_count()} error(s)") from e

    @staticmethod
    def _build(**fields: Any) -> Finding:
        try:
            return Finding(**fields)
        except ValidationError as e:
            raise ClassificationError(
                f"Invalid finding: {e.error_count()} validation error(s)",
                details={"rule_id": fields.get("rule_id")},
            ) from e


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _str(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None


def _int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _pqc_category(value: Any) -> PqcCategory | None:
    try:
        return PqcCategory(value) if value else None
    except ValueError:
        return None


def _relative(path: str, workspace: str | None) -> str:
    """Strip the workspace prefix so paths survive workspace deletion."""
    if not workspace:
        return path
    try:
        return PurePosixPath(path).relative_to(PurePosixPath(workspace)).as_posix()
    except ValueError:
        return path
