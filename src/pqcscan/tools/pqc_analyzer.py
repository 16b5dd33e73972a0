"""In-process pattern analyzer.

Runs the classifier's regex pass over the workspace and reports every
algorithm it sees in the same result shape semgrep uses, so the normalizer
handles both identically.
"""

import asyncio
import time
from pathlib import Path

from pqcscan.analysis.algorithms import find_algorithms
from pqcscan.analysis.classifier import PATTERN_TOOL, CryptoClassifier, iter_source_files
from pqcscan.core.interfaces import IAnalysisTool
from pqcscan.core.logging import get_logger
from pqcscan.models import CryptoAsset, PqcCategory, QuantumSafety, RawOutput, ScanConfig
from pqcscan.tools.registry import ToolRegistry


@ToolRegistry.register
class PQCAnalyzerTool(IAnalysisTool):
    """Regex-based detector for classical and post-quantum primitives."""

    def __init__(self, classifier: CryptoClassifier | None = None) -> None:
        self.logger = get_logger(self.name)
        self._classifier = classifier

    @property
    def name(self) -> str:
        return PATTERN_TOOL

    @property
    def description(self) -> str:
        return "Pattern-based detection of quantum-vulnerable cryptography"

    def applies_to(self, workspace: Path, config: ScanConfig) -> bool:
        return True

    async def run(self, workspace: Path, config: ScanConfig) -> RawOutput:
        start = time.monotonic()
        data = await asyncio.to_thread(self.analyze, Path(workspace), config)
        duration = time.monotonic() - start
        self.logger.info(
            "tool_completed",
            results=len(data["results"]),
            files=len(data["paths"]["scanned"]),
            duration=round(duration, 3),
        )
        return RawOutput(
            tool=self.name,
            exit_code=0,
            data=data,
            workspace=str(workspace),
            duration_seconds=duration,
        )

    def analyze(self, workspace: Path, config: ScanConfig) -> dict:
        classifier = self._classifier or CryptoClassifier(max_file_size=config.max_file_size)
        scanned: list[str] = []
        results: list[dict] = []
        for path, text in iter_source_files(workspace, classifier.max_file_size):
            rel = path.relative_to(workspace).as_posix()
            scanned.append(rel)
            lines = text.splitlines()
            for asset in classifier.classify_content(rel, text):
                line = asset.line or 1
                snippet = lines[line - 1] if 0 < line <= len(lines) else ""
                results.append(self._result(asset, snippet))
        return {"results": results, "errors": [], "paths": {"scanned": scanned}}

    def _result(self, asset: CryptoAsset, snippet: str) -> dict:
        if asset.safety == QuantumSafety.SAFE:
            severity = "info"
            category = PqcCategory.PQC_COMPLIANT
            message = f"Quantum-resistant algorithm in use: {asset.algorithm}"
        else:
            severity = "critical" if asset.algorithm == "RSA" else "high"
            category = PqcCategory.QUANTUM_VULNERABLE
            message = f"Quantum-vulnerable algorithm detected: {asset.algorithm}"

        col, end_col = 1, 1 + len(asset.algorithm)
        for match in find_algorithms(snippet, source=True):
            if match.spec.name == asset.algorithm:
                col, end_col = match.start + 1, match.end + 1
                break

        return {
            "check_id": f"{self.name}.{asset.algorithm.lower()}",
            "path": asset.file_path,
            "start": {"line": asset.line, "col": col},
            "end": {"line": asset.line, "col": end_col},
            "extra": {
                "severity": severity,
                "message": message,
                "lines": snippet,
                "metadata": {
                    "category": "cryptography",
                    "technology": "pqc",
                    "algorithm": asset.algorithm,
                    "key_size": asset.key_size,
                    "nist_standard": asset.nist_standard,
                    "pqc_category": category.value,
                    "recommendation": asset.recommendation,
                },
            },
        }
