"""Bandit analysis tool (Python only)."""

from pathlib import Path

from pqcscan.core.config import get_settings
from pqcscan.infrastructure.process import ProcessRunner
from pqcscan.models import ScanConfig
from pqcscan.tools.base import BaseTool
from pqcscan.tools.registry import ToolRegistry


@ToolRegistry.register
class BanditTool(BaseTool):
    """Bandit security linter. Non-crypto results are dropped by the normalizer."""

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        executable: str | None = None,
    ) -> None:
        super().__init__(runner)
        self.executable = executable or get_settings().bandit_executable

    @property
    def name(self) -> str:
        return "bandit"

    @property
    def description(self) -> str:
        return "Bandit Python security linter (cryptography checks)"

    def applies_to(self, workspace: Path, config: ScanConfig) -> bool:
        if config.languages:
            return "python" in (lang.lower() for lang in config.languages)
        return any(
            not any(part.startswith(".") for part in path.relative_to(workspace).parts)
            for path in workspace.rglob("*.py")
        )

    def build_command(self, workspace: Path, config: ScanConfig) -> list[str]:
        return [self.executable, "-r", "-f", "json", "-q", str(workspace)]
