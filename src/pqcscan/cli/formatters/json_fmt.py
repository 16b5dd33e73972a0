"""JSON formatter for CLI output."""

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from rich.console import Console

from pqcscan.models import CryptoAsset, Finding, ScanJob, ScanReport


def to_dict(
    job: ScanJob,
    findings: Sequence[Finding],
    assets: Sequence[CryptoAsset],
    report: ScanReport | None,
) -> dict[str, Any]:
    """Convert a finished scan to a dictionary."""
    return {
        "job": job.model_dump(mode="json"),
        "findings": [f.model_dump(mode="json") for f in findings],
        "crypto_assets": [a.model_dump(mode="json") for a in assets],
        "report": report.model_dump(mode="json") if report else None,
    }


def format_json(console: Console, data: dict[str, Any]) -> None:
    """Display results as JSON."""
    console.print_json(json.dumps(data, default=str))


def export_json(data: dict[str, Any], path: Path | str) -> None:
    """Export results to a JSON file."""
    with open(path, "w") as f:
        json.dump(data, f, indent=2, default=str)
