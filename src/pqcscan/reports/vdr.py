"""CycloneDX 1.6 vulnerability disclosure reports (VDR) for single findings."""

from pathlib import PurePosixPath
from typing import Any
from uuid import uuid4

from pqcscan.models import Finding, PqcCategory, RepositoryInfo, Severity, utcnow
from pqcscan.reports.cbom import BOM_FORMAT, SPEC_VERSION
from pqcscan.version import __version__

CVSS_SCORES: dict[Severity, float] = {
    Severity.CRITICAL: 9.0,
    Severity.HIGH: 7.5,
    Severity.MEDIUM: 5.0,
    Severity.LOW: 3.0,
    Severity.INFO: 1.0,
}

CVSS_BASE_VECTOR = "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U"
CVSS_IMPACT: dict[Severity, str] = {
    Severity.CRITICAL: "C:H/I:H/A:H",
    Severity.HIGH: "C:H/I:L/A:L",
    Severity.MEDIUM: "C:L/I:L/A:N",
    Severity.LOW: "C:L/I:N/A:N",
    Severity.INFO: "C:N/I:N/A:N",
}

# triage status -> (VEX status, affected version status, analysis state)
TRIAGE_STATES: dict[str, tuple[str, str, str]] = {
    "new": ("under_investigation", "affected", "in_triage"),
    "reviewing": ("under_investigation", "affected", "in_triage"),
    "fixed": ("fixed", "unaffected", "resolved"),
    "false_positive": ("not_affected", "unaffected", "false_positive"),
    "ignored": ("not_affected", "unaffected", "not_applicable"),
}
DEFAULT_TRIAGE = ("affected", "affected", "in_triage")

SOURCE_URLS = {
    "semgrep": "https://semgrep.dev/",
    "bandit": "https://bandit.readthedocs.io/",
    "pqc-analyzer": "https://csrc.nist.gov/projects/post-quantum-cryptography",
}

LANGUAGES = {
    "py": "Python",
    "java": "Java",
    "js": "JavaScript",
    "ts": "TypeScript",
    "c": "C",
    "cpp": "C++",
    "cs": "C#",
    "go": "Go",
    "rb": "Ruby",
    "php": "PHP",
    "rs": "Rust",
    "kt": "Kotlin",
}

NIST_PQC_ADVISORY = {
    "title": "NIST Post-Quantum Cryptography Standardization",
    "url": "https://csrc.nist.gov/projects/post-quantum-cryptography",
}
NIST_SP_800_208_ADVISORY = {
    "title": "NIST SP 800-208: Recommendation for Stateful Hash-Based Signature Schemes",
    "url": "https://nvlpubs.nist.gov/nistpubs/SpecialPublications/NIST.SP.800-208.pdf",
}


def cvss_score(severity: Severity) -> float:
    return CVSS_SCORES[severity]


def cvss_vector(severity: Severity) -> str:
    return f"{CVSS_BASE_VECTOR}/{CVSS_IMPACT[severity]}"


def vex_status(status: str) -> str:
    return TRIAGE_STATES.get(status, DEFAULT_TRIAGE)[0]


def detect_language(file_path: str) -> str:
    suffix = PurePosixPath(file_path).suffix.lstrip(".").lower()
    return LANGUAGES.get(suffix, "Unknown")


def build_vdr(
    repository: RepositoryInfo,
    finding: Finding,
    status: str = "new",
) -> dict[str, Any]:
    """Build a CycloneDX VDR document describing one finding.

    ``status`` is the triage state of the finding and drives the VEX fields.
    """
    name = repository.display_name
    component_ref = f"{name}-component"
    _, affected, analysis_state = TRIAGE_STATES.get(status, DEFAULT_TRIAGE)
    algorithm = finding.metadata.algorithm

    vulnerability: dict[str, Any] = {
        "id": f"PQC-{finding.rule_id}",
        "source": {
            "name": finding.tool,
            "url": SOURCE_URLS.get(finding.tool, SOURCE_URLS["pqc-analyzer"]),
        },
        "detail": finding.message,
        "recommendation": finding.recommendation,
        "ratings": [
            {
                "source": {"name": "PQC Scanner"},
                "score": cvss_score(finding.severity),
                "severity": finding.severity.value,
                "method": "CVSSv31",
                "vector": cvss_vector(finding.severity),
            }
        ],
        "affects": [
            {
                "ref": component_ref,
                "versions": [{"version": "current", "status": affected}],
            }
        ],
        "analysis": {
            "state": analysis_state,
            "justification": _justification(status),
            "response": ["can_not_fix"] if finding.recommendation else ["update"],
            "detail": _analysis_detail(finding),
        },
        "proofOfConcept": {
            "reproductionSteps": _reproduction_steps(finding),
            "environment": {
                "language": detect_language(finding.file_path),
                "detectionTool": finding.tool,
                "algorithms": [algorithm] if algorithm else [],
            },
        },
        "advisories": _advisories(finding),
        "properties": [
            {"name": "pqc.category", "value": finding.pqc_category.value},
            {"name": "vex.status", "value": vex_status(status)},
        ],
    }

    occurrence: dict[str, Any] = {"location": finding.file_path}
    if finding.start_line is not None:
        occurrence["line"] = finding.start_line
        if finding.end_line is not None:
            occurrence["offset"] = max(finding.end_line - finding.start_line, 0)

    return {
        "bomFormat": BOM_FORMAT,
        "specVersion": SPEC_VERSION,
        "serialNumber": f"urn:uuid:{uuid4()}",
        "version": 1,
        "metadata": {
            "timestamp": utcnow().isoformat(),
            "tools": [{"vendor": "PQC Scanner", "name": "pqcscan", "version": __version__}],
            "component": {
                "type": "application",
                "name": name,
                "description": repository.description or f"Vulnerability report for {name}",
                "scope": "required",
            },
        },
        "vulnerabilities": [vulnerability],
        "components": [
            {
                "type": "application",
                "name": name,
                "version": "current",
                "scope": "required",
                "bom-ref": component_ref,
                "evidence": {"occurrences": [occurrence]},
            }
        ],
    }


def _justification(status: str) -> str:
    if status == "false_positive":
        return "code_not_reachable"
    if status == "ignored":
        return "requires_configuration"
    return "exploitable"


def _analysis_detail(finding: Finding) -> str:
    detail = f"Post-Quantum Cryptography vulnerability detected in {finding.file_path}"
    detail += f" (Category: {finding.pqc_category.value})"
    if finding.metadata.algorithm:
        detail += f". Uses {finding.metadata.algorithm} algorithm"
        if finding.metadata.key_size:
            detail += f" with {finding.metadata.key_size}-bit keys"
    return detail


def _reproduction_steps(finding: Finding) -> str:
    steps = [
        f"1. Navigate to file: {finding.file_path}",
        f"2. Examine lines {finding.start_line}-{finding.end_line or finding.start_line}",
        "3. Review the cryptographic implementation:",
    ]
    if finding.code_snippet:
        steps.append(f"   {finding.code_snippet.strip()}")
    steps.append("4. Verify the algorithm is quantum-vulnerable")
    if finding.metadata.algorithm:
        steps.append(f"5. Confirm usage of {finding.metadata.algorithm}")
    return "\n".join(steps)


def _advisories(finding: Finding) -> list[dict[str, str]]:
    advisories: list[dict[str, str]] = []
    if finding.pqc_category == PqcCategory.QUANTUM_VULNERABLE:
        advisories.append(dict(NIST_PQC_ADVISORY))
    if finding.metadata.algorithm and "RSA" in finding.metadata.algorithm:
        advisories.append(dict(NIST_SP_800_208_ADVISORY))
    return advisories
