"""Crypto asset classifier.

Turns findings and raw source text into ``CryptoAsset`` records. Both paths
consult the same ordered table in ``pqcscan.analysis.algorithms``.
"""

import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from pydantic import ValidationError

from pqcscan.analysis.algorithms import (
    GENERIC_RECOMMENDATION,
    AlgorithmMatch,
    AlgorithmSpec,
    extract_key_size,
    find_algorithms,
    lookup,
)
from pqcscan.core.config import get_settings
from pqcscan.core.exceptions import ClassificationError
from pqcscan.core.logging import get_logger
from pqcscan.models import CryptoAsset, Finding, PrimitiveCategory, QuantumSafety

PATTERN_TOOL = "pqc-analyzer"
BINARY_SNIFF_BYTES = 8192

# Only these primitives carry a meaningful key length
_SIZED_PRIMITIVES = {
    PrimitiveCategory.PUBLIC_KEY_ENCRYPTION,
    PrimitiveCategory.DIGITAL_SIGNATURE,
    PrimitiveCategory.KEY_AGREEMENT,
    PrimitiveCategory.SYMMETRIC,
}


def iter_source_files(root: Path, max_file_size: int) -> Iterator[tuple[Path, str]]:
    """Yield ``(path, text)`` for every readable text file under ``root``.

    Hidden directories and files, binaries and files larger than
    ``max_file_size`` are skipped. Order is deterministic.
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for filename in sorted(filenames):
            if filename.startswith("."):
                continue
            path = Path(dirpath) / filename
            try:
                if not path.is_file() or path.stat().st_size > max_file_size:
                    continue
                raw = path.read_bytes()
            except OSError:
                continue
            if b"\0" in raw[:BINARY_SNIFF_BYTES]:
                continue
            yield path, raw.decode("utf-8", errors="replace")


class CryptoClassifier:
    """Extracts cryptographic assets and assigns their quantum safety."""

    def __init__(self, max_file_size: int | None = None) -> None:
        self.logger = get_logger("classifier")
        self.max_file_size = max_file_size or get_settings().pattern_max_file_size

    def classify_findings(self, findings: Iterable[Finding]) -> list[CryptoAsset]:
        """Extract assets from findings; malformed findings are skipped."""
        assets: list[CryptoAsset] = []
        for finding in findings:
            try:
                assets.extend(self._assets_for_finding(finding))
            except ClassificationError as e:
                self.logger.warning(
                    "finding_classification_skipped",
                    rule_id=finding.rule_id,
                    file_path=finding.file_path,
                    error=e.message,
                )
        return self.deduplicate(assets)

    def classify_content(self, path: str, text: str) -> list[CryptoAsset]:
        """Scan file content line by line for algorithm names."""
        assets: list[CryptoAsset] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            for match in find_algorithms(line, source=True):
                assets.append(
                    self._asset(
                        match.spec,
                        file_path=path,
                        line=lineno,
                        key_size=self._key_size(match, line),
                        source="pattern",
                    )
                )
        return assets

    def classify_workspace(self, root: Path) -> list[CryptoAsset]:
        """Run the pattern pass over every eligible file under ``root``."""
        root = Path(root)
        assets: list[CryptoAsset] = []
        for path, text in iter_source_files(root, self.max_file_size):
            assets.extend(self.classify_content(path.relative_to(root).as_posix(), text))
        return self.deduplicate(assets)

    @staticmethod
    def deduplicate(assets: Iterable[CryptoAsset]) -> list[CryptoAsset]:
        """Keep the first asset per (algorithm, file, line), sorted by location."""
        unique: dict[tuple[str, str, int], CryptoAsset] = {}
        for asset in assets:
            unique.setdefault(asset.key, asset)
        return sorted(
            unique.values(),
            key=lambda a: (a.file_path, a.line or 0, a.algorithm),
        )

    def _assets_for_finding(self, finding: Finding) -> list[CryptoAsset]:
        source = "pattern" if finding.tool == PATTERN_TOOL else "finding"
        meta = finding.metadata

        if meta.algorithm is not None:
            name = meta.algorithm.strip()
            if not name:
                raise ClassificationError(
                    "Finding metadata has an empty algorithm",
                    details={"rule_id": finding.rule_id},
                )
            spec = lookup(name)
            if spec is None:
                return [
                    self._build(
                        algorithm=name,
                        file_path=finding.file_path,
                        line=finding.start_line,
                        key_size=meta.key_size,
                        library=meta.library,
                        nist_standard=meta.nist_standard,
                        recommendation=GENERIC_RECOMMENDATION,
                        source=source,
                    )
                ]
            key_size = meta.key_size or extract_key_size(name) or self._snippet_key_size(
                spec, finding.code_snippet
            )
            return [
                self._asset(
                    spec,
                    file_path=finding.file_path,
                    line=finding.start_line,
                    key_size=key_size,
                    library=meta.library,
                    nist_standard=meta.nist_standard,
                    source=source,
                )
            ]

        text = f"{finding.message} {finding.rule_id}"
        return [
            self._asset(
                match.spec,
                file_path=finding.file_path,
                line=finding.start_line,
                key_size=meta.key_size or self._key_size(match, finding.code_snippet),
                library=meta.library,
                nist_standard=meta.nist_standard,
                source=source,
            )
            for match in find_algorithms(text)
        ]

    def _asset(
        self,
        spec: AlgorithmSpec,
        file_path: str,
        line: int | None,
        key_size: int | None = None,
        library: str | None = None,
        nist_standard: str | None = None,
        source: str = "finding",
    ) -> CryptoAsset:
        return self._build(
            algorithm=spec.name,
            primitive=spec.primitive,
            safety=spec.safety,
            file_path=file_path,
            line=line,
            key_size=key_size,
            library=library,
            nist_standard=nist_standard or spec.nist_standard,
            recommendation=spec.recommendation,
            source=source,
        )

    @staticmethod
    def _build(**fields) -> CryptoAsset:
        fields.setdefault("primitive", PrimitiveCategory.UNKNOWN)
        fields.setdefault("safety", QuantumSafety.UNKNOWN)
        try:
            return CryptoAsset(**fields)
        except ValidationError as e:
            raise ClassificationError(
                f"Invalid crypto asset: {e.error_count()} validation error(s)",
                details={"algorithm": fields.get("algorithm"), "file_path": fields.get("file_path")},
            ) from e

    def _key_size(self, match: AlgorithmMatch, line: str) -> int | None:
        return extract_key_size(match.text) or self._snippet_key_size(match.spec, line)

    @staticmethod
    def _snippet_key_size(spec: AlgorithmSpec, snippet: str) -> int | None:
        if spec.primitive not in _SIZED_PRIMITIVES or not snippet:
            return None
        return extract_key_size(snippet)
