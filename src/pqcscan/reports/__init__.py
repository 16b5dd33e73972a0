"""Compliance aggregation and CycloneDX report payloads."""

from pqcscan.reports.cbom import build_cbom
from pqcscan.reports.compliance import ComplianceAggregator, compliance_score
from pqcscan.reports.vdr import build_vdr

__all__ = ["ComplianceAggregator", "build_cbom", "build_vdr", "compliance_score"]
