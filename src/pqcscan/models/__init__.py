"""Pydantic data models for the PQC scanner."""

from pqcscan.models.base import (
    BaseSchema,
    ComplianceVerdict,
    PqcCategory,
    PrimitiveCategory,
    QuantumSafety,
    ScanStatus,
    Severity,
    StandardStatus,
    utcnow,
)
from pqcscan.models.job import RepositoryInfo, ScanConfig, ScanJob
from pqcscan.models.finding import Finding, FindingMetadata, RawOutput, ScanSummary
from pqcscan.models.crypto import CryptoAsset
from pqcscan.models.compliance import ComplianceStatus, ScanReport, StandardCompliance
from pqcscan.models.integration import (
    ExternalScanHandle,
    ExternalScannerIntegration,
    ExternalScanStatus,
    ExternalScanStatusResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "ComplianceVerdict",
    "PqcCategory",
    "PrimitiveCategory",
    "QuantumSafety",
    "ScanStatus",
    "Severity",
    "StandardStatus",
    "utcnow",
    # Jobs
    "RepositoryInfo",
    "ScanConfig",
    "ScanJob",
    # Findings
    "Finding",
    "FindingMetadata",
    "RawOutput",
    "ScanSummary",
    # Crypto assets
    "CryptoAsset",
    # Compliance
    "ComplianceStatus",
    "ScanReport",
    "StandardCompliance",
    # External scanners
    "ExternalScanHandle",
    "ExternalScannerIntegration",
    "ExternalScanStatus",
    "ExternalScanStatusResponse",
]
