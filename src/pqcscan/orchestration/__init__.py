"""Scan orchestration: pipeline stages, job scheduler and external scanners."""

from pqcscan.orchestration.external import ExternalScannerPoller
from pqcscan.orchestration.pipeline import ScanPipeline
from pqcscan.orchestration.scheduler import JobScheduler

__all__ = ["ExternalScannerPoller", "JobScheduler", "ScanPipeline"]
