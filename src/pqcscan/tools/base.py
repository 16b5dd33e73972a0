"""Base analysis tool class."""

import json
from abc import abstractmethod
from pathlib import Path

from pqcscan.core.config import get_settings
from pqcscan.core.exceptions import (
    ExecutableNotFoundError,
    OutputLimitError,
    ProcessTimeoutError,
    ToolError,
)
from pqcscan.core.interfaces import IAnalysisTool
from pqcscan.core.logging import get_logger
from pqcscan.infrastructure.process import ProcessResult, ProcessRunner, run_process
from pqcscan.models import RawOutput, ScanConfig


class BaseTool(IAnalysisTool):
    """Base class for tools that run as a subprocess and print JSON on stdout."""

    def __init__(self, runner: ProcessRunner | None = None) -> None:
        self.logger = get_logger(self.name)
        self._runner = runner or run_process

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @abstractmethod
    def build_command(self, workspace: Path, config: ScanConfig) -> list[str]:
        """Argument vector for one run against ``workspace``."""
        ...

    def applies_to(self, workspace: Path, config: ScanConfig) -> bool:
        return True

    async def run(self, workspace: Path, config: ScanConfig) -> RawOutput:
        """Run the tool and parse its JSON output.

        The exit status is recorded but never decides success: linters exit
        non-zero when they find something.
        """
        settings = get_settings()
        timeout = config.timeout_seconds or settings.tool_timeout_seconds
        limit = config.max_output_bytes or settings.tool_max_output_bytes
        args = self.build_command(workspace, config)

        self.logger.info("tool_started", workspace=str(workspace), timeout=timeout)
        try:
            result = await self._runner(
                args, timeout=timeout, max_output_bytes=limit, cwd=workspace
            )
        except ProcessTimeoutError as e:
            raise ToolError(
                f"{self.name} timed out after {timeout}s", tool=self.name, details=e.details
            ) from e
        except OutputLimitError as e:
            raise ToolError(
                f"{self.name} output exceeded {limit} bytes", tool=self.name, details=e.details
            ) from e
        except ExecutableNotFoundError as e:
            raise ToolError(
                f"{self.name} is not installed ({args[0]})", tool=self.name, details=e.details
            ) from e

        data = self.parse_output(result)
        self.logger.info(
            "tool_completed",
            exit_code=result.returncode,
            duration=round(result.duration_seconds, 3),
        )
        return RawOutput(
            tool=self.name,
            exit_code=result.returncode,
            data=data,
            stderr=result.stderr_text[-4000:],
            workspace=str(workspace),
            duration_seconds=result.duration_seconds,
        )

    def parse_output(self, result: ProcessResult) -> dict:
        text = result.stdout_text.strip()
        if not text:
            raise ToolError(
                f"{self.name} produced no output (exit code {result.returncode})",
                tool=self.name,
                details={"stderr": result.stderr_text[-2000:]},
            )
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ToolError(
                f"{self.name} produced invalid JSON: {e}",
                tool=self.name,
                details={"exit_code": result.returncode},
            ) from e
        if not isinstance(data, dict):
            raise ToolError(f"{self.name} output is not a JSON object", tool=self.name)
        return data
