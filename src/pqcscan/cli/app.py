"""Main CLI application using Typer."""

import asyncio
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from pqcscan.analysis import CryptoClassifier
from pqcscan.cli.formatters import (
    export_json,
    format_assets,
    format_compliance,
    format_json,
    format_scan_result,
    to_dict,
)
from pqcscan.core.config import get_settings
from pqcscan.core.interfaces import IScanStore
from pqcscan.core.logging import setup_logging
from pqcscan.database import MemoryScanStore, SQLScanStore
from pqcscan.models import (
    ExternalScannerIntegration,
    RepositoryInfo,
    ScanConfig,
    ScanJob,
    ScanStatus,
)
from pqcscan.orchestration import ExternalScannerPoller, JobScheduler
from pqcscan.reports import ComplianceAggregator
from pqcscan.tools import ToolRegistry
from pqcscan.version import __version__

app = typer.Typer(
    name="pqcscan",
    help="PQC Scanner - post-quantum cryptography readiness scanner",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"pqcscan version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """PQC Scanner - find quantum-vulnerable cryptography in your code."""
    setup_logging()


def _repository_url(target: str) -> str:
    """Local directories are cloned through a file:// URL."""
    path = Path(target)
    if "://" not in target and path.exists():
        return path.resolve().as_uri()
    return target


def _parse_tools(tools: Optional[str]) -> list[str] | None:
    if not tools:
        return None
    names = [t.strip() for t in tools.split(",") if t.strip()]
    available = ToolRegistry.list_all()
    unknown = [n for n in names if n not in available]
    if unknown:
        console.print(f"[red]Unknown tools: {', '.join(unknown)}[/red]")
        console.print(f"Available: {', '.join(sorted(available))}")
        raise typer.Exit(1)
    return names


@app.command()
def scan(
    target: Annotated[str, typer.Argument(help="Repository URL or local git repository path")],
    branch: Annotated[
        str,
        typer.Option("--branch", "-b", help="Branch to scan (falls back to the default branch)"),
    ] = "main",
    tools: Annotated[
        Optional[str],
        typer.Option("--tools", "-t", help="Tools: semgrep,bandit,pqc-analyzer"),
    ] = None,
    external: Annotated[
        Optional[list[str]],
        typer.Option("--external", "-e", help="External scanner endpoint URL (repeatable)"),
    ] = None,
    persist: Annotated[
        bool,
        typer.Option("--persist", help="Store results in the configured database"),
    ] = False,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file path (JSON)"),
    ] = None,
    format_type: Annotated[
        str,
        typer.Option("--format", help="Output format: json, table"),
    ] = "table",
) -> None:
    """
    Scan a repository for quantum-vulnerable cryptography.

    Examples:
        pqcscan scan https://github.com/org/repo
        pqcscan scan ./my-repo --tools pqc-analyzer
        pqcscan scan https://github.com/org/repo -b develop -o report.json
    """
    config = ScanConfig()
    selected = _parse_tools(tools)
    if selected:
        config.tools = selected

    job = ScanJob(
        repository=RepositoryInfo(url=_repository_url(target)),
        branch=branch,
        config=config,
    )
    integrations = [
        ExternalScannerIntegration(name=f"external-{i}", scan_url=url)
        for i, url in enumerate(external or [], start=1)
    ]

    console.print(f"[bold blue]PQC Scanner[/bold blue] v{__version__}")
    console.print(f"Repository: [cyan]{job.repository.url}[/cyan]")
    console.print(f"Tools: {', '.join(config.tools)}")
    console.print()

    try:
        with console.status("[bold green]Scanning...[/bold green]"):
            result = asyncio.run(_run_scan(job, integrations, persist))
    except Exception as e:
        console.print(f"[red]Scan failed: {e}[/red]")
        raise typer.Exit(1) from None

    finished = result["job"]
    if format_type == "json":
        format_json(console, _result_dict(result))
    else:
        format_scan_result(
            console,
            finished,
            result["findings"],
            result["assets"],
            result["report"],
        )
        for report in result["external_reports"]:
            if report.compliance:
                console.print("[bold]External scanner[/bold]")
                format_compliance(console, report.compliance)

    if output:
        export_json(_result_dict(result), output)
        console.print(f"\n[green]Results saved to {output}[/green]")

    if finished.status == ScanStatus.FAILED:
        raise typer.Exit(1)


async def _run_scan(
    job: ScanJob,
    integrations: list[ExternalScannerIntegration],
    persist: bool,
) -> dict[str, Any]:
    """Run a single job through the scheduler and collect its results."""
    store: IScanStore
    if persist:
        store = SQLScanStore()
        await store.init()
    else:
        store = MemoryScanStore()

    try:
        async with ExternalScannerPoller(store) as poller:
            async with JobScheduler(store, poller=poller) as scheduler:
                job_id = await scheduler.submit(job, integrations)
                finished = await scheduler.wait(job_id)
            await poller.wait_all()

        reports = await store.get_reports(job_id)
        return {
            "job": finished,
            "findings": await store.get_findings(job_id),
            "assets": await store.get_assets(job_id),
            "report": next((r for r in reports if r.source == "local"), None),
            "external_reports": [r for r in reports if r.source == "external"],
        }
    finally:
        if isinstance(store, SQLScanStore):
            await store.close()


def _result_dict(result: dict[str, Any]) -> dict[str, Any]:
    data = to_dict(result["job"], result["findings"], result["assets"], result["report"])
    data["external_reports"] = [r.model_dump(mode="json") for r in result["external_reports"]]
    return data


@app.command()
def classify(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to inventory", exists=True, file_okay=False),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file path (JSON)"),
    ] = None,
    format_type: Annotated[
        str,
        typer.Option("--format", help="Output format: json, table"),
    ] = "table",
) -> None:
    """Inventory cryptographic algorithms in a local directory without cloning."""
    assets = CryptoClassifier().classify_workspace(path)
    compliance = ComplianceAggregator().aggregate(assets)

    data = {
        "path": str(path.resolve()),
        "crypto_assets": [a.model_dump(mode="json") for a in assets],
        "compliance": compliance.model_dump(mode="json"),
    }
    if format_type == "json":
        format_json(console, data)
    else:
        format_assets(console, assets)
        format_compliance(console, compliance)

    if output:
        export_json(data, output)
        console.print(f"\n[green]Results saved to {output}[/green]")


@app.command()
def history(
    status: Annotated[
        Optional[ScanStatus],
        typer.Option("--status", "-s", help="Only show jobs with this status"),
    ] = None,
) -> None:
    """List scan jobs stored in the configured database."""

    async def load() -> list[ScanJob]:
        store = SQLScanStore()
        await store.init()
        try:
            return await store.list_jobs(status)
        finally:
            await store.close()

    try:
        jobs = asyncio.run(load())
    except Exception as e:
        console.print(f"[red]Could not read scan history: {e}[/red]")
        raise typer.Exit(1) from None

    if not jobs:
        console.print("[yellow]No scans recorded[/yellow]")
        return

    table = Table(title="Scan History", show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Repository")
    table.add_column("Branch")
    table.add_column("Status")
    table.add_column("Created")

    colors = {
        ScanStatus.PENDING: "dim",
        ScanStatus.RUNNING: "blue",
        ScanStatus.COMPLETED: "green",
        ScanStatus.FAILED: "red",
    }
    for job in jobs:
        color = colors[job.status]
        table.add_row(
            job.id[:12],
            job.repository.url,
            job.resolved_branch or job.branch,
            f"[{color}]{job.status.value}[/{color}]",
            job.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command("check-scanner")
def check_scanner(
    url: Annotated[str, typer.Argument(help="External scanner endpoint URL")],
) -> None:
    """Check that an external scanner endpoint is reachable."""
    integration = ExternalScannerIntegration(name="external", scan_url=url)

    async def check() -> tuple[bool, str | None]:
        async with ExternalScannerPoller(MemoryScanStore()) as poller:
            return await poller.test_connection(integration)

    ok, error = asyncio.run(check())
    if ok:
        console.print(f"[green]{url} is reachable[/green]")
    else:
        console.print(f"[red]{url} is not reachable: {error}[/red]")
        raise typer.Exit(1)


@app.command()
def config(
    show: Annotated[
        bool,
        typer.Option("--show", "-s", help="Show current configuration"),
    ] = False,
    validate: Annotated[
        bool,
        typer.Option("--validate", help="Validate configuration"),
    ] = False,
) -> None:
    """Manage configuration."""
    settings = get_settings()

    if show:
        table = Table(title="Current Configuration", show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value")

        table.add_row("Database URL", settings.database_url)
        table.add_row("Workspace Root", str(settings.workspace_root))
        table.add_row("Max Concurrent Jobs", str(settings.max_concurrent_jobs))
        table.add_row("Scheduler Tick", f"{settings.scheduler_tick_seconds}s")
        table.add_row("Tool Timeout", f"{settings.tool_timeout_seconds}s")
        table.add_row("Tool Output Limit", f"{settings.tool_max_output_bytes} bytes")
        table.add_row("Semgrep Rules", settings.semgrep_rules)
        table.add_row("External Poll Interval", f"{settings.external_poll_interval}s")
        table.add_row("External Max Attempts", str(settings.external_max_attempts))
        table.add_row("Log Level", settings.log_level)

        console.print(table)

    if validate:
        errors = []

        rules = Path(settings.semgrep_rules)
        if not settings.semgrep_rules.startswith(("p/", "r/")) and not rules.exists():
            errors.append(f"SEMGREP_RULES points to a missing file: {rules}")
        if settings.workspace_root.exists() and not settings.workspace_root.is_dir():
            errors.append(f"WORKSPACE_ROOT is not a directory: {settings.workspace_root}")

        if errors:
            console.print("[red]Configuration errors:[/red]")
            for error in errors:
                console.print(f"  - {error}")
            raise typer.Exit(1)
        else:
            console.print("[green]Configuration is valid[/green]")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
