"""Compliance aggregation over crypto assets and findings."""

import math
from collections.abc import Sequence

from pqcscan.core.logging import get_logger
from pqcscan.models import (
    ComplianceStatus,
    ComplianceVerdict,
    CryptoAsset,
    Finding,
    PqcCategory,
    QuantumSafety,
    RepositoryInfo,
    ScanReport,
    ScanSummary,
    StandardCompliance,
    StandardStatus,
)
from pqcscan.reports.cbom import build_cbom
from pqcscan.reports.vdr import build_vdr

PARTIAL_THRESHOLD = 0.8

RECOMMEND_RSA = (
    "Migrate RSA key establishment to ML-KEM (CRYSTALS-Kyber) as specified in FIPS 203."
)
RECOMMEND_ECDSA = (
    "Migrate ECDSA signatures to ML-DSA (CRYSTALS-Dilithium) as specified in FIPS 204."
)
RECOMMEND_MIGRATION = (
    "Plan a migration of quantum-vulnerable algorithms to NIST post-quantum "
    "cryptography standards (FIPS 203, FIPS 204, FIPS 205)."
)
RECOMMEND_REVIEW = (
    "Review cryptographic assets with unknown quantum safety and classify them manually."
)

# key -> (name, description, algorithm names that satisfy it)
STANDARDS: dict[str, tuple[str, str, tuple[str, ...]]] = {
    "fips203": ("FIPS 203 (ML-KEM)", "CRYSTALS-KYBER Implementation", ("ML-KEM",)),
    "fips204": ("FIPS 204 (ML-DSA)", "CRYSTALS-Dilithium Implementation", ("ML-DSA",)),
    "fips205": ("FIPS 205 (SLH-DSA)", "SPHINCS+ Implementation", ("SLH-DSA",)),
}


def compliance_score(safe: int, total: int) -> int:
    """round(100 * safe / total) with halves rounded up; 0 when there is nothing to score."""
    if total <= 0:
        return 0
    return int(math.floor(100 * safe / total + 0.5))


class ComplianceAggregator:
    """Folds assets and findings into compliance verdicts and report payloads."""

    def __init__(self) -> None:
        self.logger = get_logger("compliance")

    def aggregate(self, assets: Sequence[CryptoAsset]) -> ComplianceStatus:
        total = len(assets)
        safe = sum(1 for a in assets if a.safety == QuantumSafety.SAFE)
        vulnerable = sum(1 for a in assets if a.safety == QuantumSafety.VULNERABLE)
        unknown = total - safe - vulnerable

        # An empty asset set is never reported as compliant.
        if total == 0:
            verdict = ComplianceVerdict.NOT_COMPLIANT
        elif safe == total:
            verdict = ComplianceVerdict.COMPLIANT
        elif safe / total >= PARTIAL_THRESHOLD:
            verdict = ComplianceVerdict.PARTIAL
        else:
            verdict = ComplianceVerdict.NOT_COMPLIANT

        vulnerable_names = {a.algorithm for a in assets if a.safety == QuantumSafety.VULNERABLE}
        recommendations: list[str] = []
        if "RSA" in vulnerable_names:
            recommendations.append(RECOMMEND_RSA)
        if "ECDSA" in vulnerable_names:
            recommendations.append(RECOMMEND_ECDSA)
        if verdict != ComplianceVerdict.COMPLIANT:
            recommendations.append(RECOMMEND_MIGRATION)
        if unknown:
            recommendations.append(RECOMMEND_REVIEW)

        return ComplianceStatus(
            score=compliance_score(safe, total),
            verdict=verdict,
            total_assets=total,
            safe_count=safe,
            vulnerable_count=vulnerable,
            unknown_count=unknown,
            recommendations=recommendations,
        )

    def check_standards(
        self,
        findings: Sequence[Finding],
        assets: Sequence[CryptoAsset],
    ) -> dict[str, StandardCompliance]:
        """FIPS 203/204/205 adoption.

        A standard is compliant when its algorithm is observed. Otherwise it is
        partial when any quantum-vulnerable finding exists, else missing.
        """
        observed = {a.algorithm for a in assets}
        has_vulnerable = any(f.pqc_category == PqcCategory.QUANTUM_VULNERABLE for f in findings)

        standards: dict[str, StandardCompliance] = {}
        for key, (name, description, algorithms) in STANDARDS.items():
            if observed.intersection(algorithms):
                status = StandardStatus.COMPLIANT
            elif has_vulnerable:
                status = StandardStatus.PARTIAL
            else:
                status = StandardStatus.MISSING
            standards[key] = StandardCompliance(name=name, description=description, status=status)
        return standards

    def build_report(
        self,
        scan_id: str,
        repository: RepositoryInfo,
        findings: Sequence[Finding],
        assets: Sequence[CryptoAsset],
        summary: ScanSummary | None = None,
        source: str = "local",
    ) -> ScanReport:
        """Assemble the full report payload for a scan."""
        compliance = self.aggregate(assets)
        report = ScanReport(
            scan_id=scan_id,
            repository_id=repository.id,
            source=source,
            content=build_cbom(repository, assets),
            crypto_assets=list(assets),
            compliance=compliance,
            standards=self.check_standards(findings, assets),
            summary=summary,
            vulnerability_reports=[build_vdr(repository, f) for f in findings],
        )
        self.logger.info(
            "report_built",
            scan_id=scan_id,
            source=source,
            assets=len(assets),
            score=compliance.score,
            verdict=compliance.verdict.value,
        )
        return report
