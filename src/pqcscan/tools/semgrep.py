"""Semgrep analysis tool."""

from pathlib import Path

from pqcscan.core.config import get_settings
from pqcscan.infrastructure.process import ProcessRunner
from pqcscan.models import ScanConfig
from pqcscan.tools.base import BaseTool
from pqcscan.tools.registry import ToolRegistry


@ToolRegistry.register
class SemgrepTool(BaseTool):
    """Semgrep with the bundled post-quantum rule set."""

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        executable: str | None = None,
        rules: str | None = None,
    ) -> None:
        super().__init__(runner)
        settings = get_settings()
        self.executable = executable or settings.semgrep_executable
        self.rules = rules or settings.semgrep_rules

    @property
    def name(self) -> str:
        return "semgrep"

    @property
    def description(self) -> str:
        return "Semgrep static analysis with post-quantum cryptography rules"

    def build_command(self, workspace: Path, config: ScanConfig) -> list[str]:
        args = [self.executable, "--config", self.rules]
        for rule in config.custom_rules:
            args.extend(["--config", rule])
        args.extend(["--json", "--no-git-ignore", "--metrics=off", str(workspace)])
        return args
