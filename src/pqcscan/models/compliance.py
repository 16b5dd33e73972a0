"""Compliance and report models."""

from datetime import datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import Field

from pqcscan.models.base import BaseSchema, ComplianceVerdict, StandardStatus, utcnow
from pqcscan.models.crypto import CryptoAsset
from pqcscan.models.finding import ScanSummary


class ComplianceStatus(BaseSchema):
    """Aggregate post-quantum compliance of a set of assets."""

    score: int = Field(default=0, ge=0, le=100)
    verdict: ComplianceVerdict = ComplianceVerdict.NOT_COMPLIANT
    total_assets: int = 0
    safe_count: int = 0
    vulnerable_count: int = 0
    unknown_count: int = 0
    recommendations: list[str] = Field(default_factory=list)

    @property
    def details(self) -> str:
        return (
            f"{self.safe_count} out of {self.total_assets} cryptographic assets "
            "are quantum-safe"
        )


class StandardCompliance(BaseSchema):
    """Adoption status of one NIST PQC standard."""

    name: str
    description: str
    status: StandardStatus = StandardStatus.MISSING


class ScanReport(BaseSchema):
    """Report payload produced for a scan (local pipeline or external scanner)."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    scan_id: str
    repository_id: str | None = None
    source: Literal["local", "external"] = "local"
    bom_format: str = "CycloneDX"
    spec_version: str = "1.6"
    content: dict[str, Any] = Field(default_factory=dict)
    crypto_assets: list[CryptoAsset] = Field(default_factory=list)
    compliance: ComplianceStatus | None = None
    standards: dict[str, StandardCompliance] = Field(default_factory=dict)
    summary: ScanSummary | None = None
    vulnerability_reports: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
