"""Analysis tools: semgrep, bandit and the in-process pattern analyzer."""

from pqcscan.tools.base import BaseTool
from pqcscan.tools.registry import ToolRegistry
from pqcscan.tools.runner import ToolRunner

# Import tool modules to register them
from pqcscan.tools import bandit, pqc_analyzer, semgrep  # noqa: F401
from pqcscan.tools.bandit import BanditTool
from pqcscan.tools.pqc_analyzer import PQCAnalyzerTool
from pqcscan.tools.semgrep import SemgrepTool

__all__ = [
    "BanditTool",
    "BaseTool",
    "PQCAnalyzerTool",
    "SemgrepTool",
    "ToolRegistry",
    "ToolRunner",
]
