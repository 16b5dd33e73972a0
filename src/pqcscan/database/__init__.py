"""Scan persistence: SQLModel tables and scan store implementations."""

from pqcscan.database.connection import Database
from pqcscan.database.models import CryptoAssetRecord, FindingRecord, ReportRecord, ScanRecord
from pqcscan.database.repository import ScanRepository
from pqcscan.database.store import MemoryScanStore, SQLScanStore

__all__ = [
    "CryptoAssetRecord",
    "Database",
    "FindingRecord",
    "MemoryScanStore",
    "ReportRecord",
    "SQLScanStore",
    "ScanRecord",
    "ScanRepository",
]
