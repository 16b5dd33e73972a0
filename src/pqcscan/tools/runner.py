"""Runs analysis tools against a workspace."""

from pathlib import Path

from pqcscan.core.exceptions import ToolError
from pqcscan.core.interfaces import IAnalysisTool
from pqcscan.core.logging import get_logger
from pqcscan.models import RawOutput, ScanConfig
from pqcscan.tools.registry import ToolRegistry


class ToolRunner:
    """Resolves tool names and runs them one after another."""

    def __init__(self, tools: dict[str, IAnalysisTool] | None = None) -> None:
        self.logger = get_logger("tool_runner")
        self._tools = dict(tools) if tools else {}

    def resolve(self, name: str) -> IAnalysisTool:
        """Return the tool instance for ``name``."""
        tool = self._tools.get(name)
        if tool is None:
            tool = ToolRegistry.get_instance(name)
            if tool is None:
                raise ToolError(f"Unknown tool: {name}", tool=name)
            self._tools[name] = tool
        return tool

    async def run(self, tool: IAnalysisTool | str, workspace: Path, config: ScanConfig) -> RawOutput:
        """Run one tool. Raises ``ToolError`` on any tool failure."""
        if isinstance(tool, str):
            tool = self.resolve(tool)
        return await tool.run(workspace, config)

    async def run_all(
        self,
        workspace: Path,
        config: ScanConfig,
    ) -> tuple[list[RawOutput], dict[str, str]]:
        """Run every configured tool that applies to the workspace.

        Returns the successful outputs and an error message per failed tool.
        A failing tool never stops the others.
        """
        outputs: list[RawOutput] = []
        errors: dict[str, str] = {}

        for name in dict.fromkeys(config.tools):
            try:
                tool = self.resolve(name)
                if not tool.applies_to(workspace, config):
                    self.logger.info("tool_skipped", tool=name, reason="not_applicable")
                    continue
                outputs.append(await self.run(tool, workspace, config))
            except ToolError as e:
                self.logger.warning("tool_failed", tool=name, error=e.message)
                errors[name] = e.message

        return outputs, errors
