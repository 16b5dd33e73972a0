"""Table formatter for CLI output."""

from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pqcscan.models import (
    ComplianceStatus,
    ComplianceVerdict,
    CryptoAsset,
    Finding,
    QuantumSafety,
    ScanJob,
    ScanReport,
    ScanStatus,
    StandardStatus,
)

SEVERITY_STYLES = {
    "critical": "[red]CRITICAL[/red]",
    "high": "[orange1]HIGH[/orange1]",
    "medium": "[yellow]MEDIUM[/yellow]",
    "low": "[green]LOW[/green]",
    "info": "[blue]INFO[/blue]",
}

SAFETY_STYLES = {
    QuantumSafety.SAFE: "[green]safe[/green]",
    QuantumSafety.VULNERABLE: "[red]vulnerable[/red]",
    QuantumSafety.UNKNOWN: "[yellow]unknown[/yellow]",
}

VERDICT_COLORS = {
    ComplianceVerdict.COMPLIANT: "green",
    ComplianceVerdict.PARTIAL: "yellow",
    ComplianceVerdict.NOT_COMPLIANT: "red",
}

MAX_ROWS = 50


def _truncate(value: str, width: int = 60) -> str:
    value = " ".join(value.split())
    return value[:width] + "..." if len(value) > width else value


def format_scan_result(
    console: Console,
    job: ScanJob,
    findings: Sequence[Finding],
    assets: Sequence[CryptoAsset],
    report: ScanReport | None,
) -> None:
    """Format and display a finished scan as tables."""
    console.print()
    ok = job.status == ScanStatus.COMPLETED
    lines = [
        f"[bold {'green' if ok else 'red'}]Scan {job.status.value.title()}[/]",
        f"Repository: [cyan]{job.repository.url}[/cyan]",
        f"Branch: {job.resolved_branch or job.branch}",
    ]
    if job.duration_seconds is not None:
        lines.append(f"Duration: {job.duration_seconds:.1f}s")
    if job.error_message:
        lines.append(f"[red]Error: {job.error_message}[/red]")
    console.print(Panel("\n".join(lines), title="Results"))

    for warning in job.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    if not ok:
        return

    _format_findings(console, findings)
    format_assets(console, assets)
    if report and report.compliance:
        format_compliance(console, report.compliance)
        _format_standards(console, report)


def _format_findings(console: Console, findings: Sequence[Finding]) -> None:
    if not findings:
        console.print("[green]No cryptographic findings[/green]")
        return

    table = Table(title=f"Findings ({len(findings)})", show_header=True)
    table.add_column("Severity")
    table.add_column("Location", style="cyan")
    table.add_column("Rule")
    table.add_column("Category")
    table.add_column("Message")

    for finding in findings[:MAX_ROWS]:
        table.add_row(
            SEVERITY_STYLES.get(finding.severity.value, finding.severity.value),
            finding.location,
            finding.rule_id,
            finding.pqc_category.value,
            _truncate(finding.message),
        )
    console.print(table)
    if len(findings) > MAX_ROWS:
        console.print(f"[dim]... and {len(findings) - MAX_ROWS} more[/dim]")


def format_assets(console: Console, assets: Sequence[CryptoAsset]) -> None:
    """Display crypto assets."""
    if not assets:
        console.print("[yellow]No cryptographic assets detected[/yellow]")
        return

    table = Table(title=f"Crypto Assets ({len(assets)})", show_header=True)
    table.add_column("Algorithm", style="cyan")
    table.add_column("Primitive")
    table.add_column("Quantum Safety")
    table.add_column("Location")
    table.add_column("Key Size")

    for asset in assets[:MAX_ROWS]:
        table.add_row(
            asset.algorithm,
            asset.primitive.value,
            SAFETY_STYLES[asset.safety],
            asset.location,
            str(asset.key_size) if asset.key_size else "-",
        )
    console.print(table)
    if len(assets) > MAX_ROWS:
        console.print(f"[dim]... and {len(assets) - MAX_ROWS} more[/dim]")


def format_compliance(console: Console, compliance: ComplianceStatus) -> None:
    """Display the compliance score, verdict and recommendations."""
    color = VERDICT_COLORS[compliance.verdict]
    body = [
        f"Score: [{color}]{compliance.score}/100[/{color}]",
        f"Verdict: [{color}]{compliance.verdict.value}[/{color}]",
        compliance.details,
    ]
    if compliance.unknown_count:
        body.append(f"[yellow]{compliance.unknown_count} asset(s) of unknown quantum safety[/yellow]")
    if compliance.recommendations:
        body.append("")
        body.extend(f"- {rec}" for rec in compliance.recommendations)
    console.print(Panel("\n".join(body), title="Post-Quantum Compliance"))


def _format_standards(console: Console, report: ScanReport) -> None:
    if not report.standards:
        return
    table = Table(title="NIST PQC Standards", show_header=True)
    table.add_column("Standard", style="cyan")
    table.add_column("Description")
    table.add_column("Status")

    colors = {
        StandardStatus.COMPLIANT: "green",
        StandardStatus.PARTIAL: "yellow",
        StandardStatus.MISSING: "red",
    }
    for standard in report.standards.values():
        color = colors[standard.status]
        table.add_row(
            standard.name,
            standard.description,
            f"[{color}]{standard.status.value}[/{color}]",
        )
    console.print(table)
