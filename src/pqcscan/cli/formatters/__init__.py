"""CLI output formatters."""

from pqcscan.cli.formatters.json_fmt import export_json, format_json, to_dict
from pqcscan.cli.formatters.table import format_assets, format_compliance, format_scan_result

__all__ = [
    "export_json",
    "format_assets",
    "format_compliance",
    "format_json",
    "format_scan_result",
    "to_dict",
]
