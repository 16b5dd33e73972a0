"""Cryptographic asset models."""

from typing import Literal

from pydantic import ConfigDict, Field

from pqcscan.models.base import BaseSchema, PrimitiveCategory, QuantumSafety


class CryptoAsset(BaseSchema):
    """A cryptographic primitive observed at one location."""

    model_config = ConfigDict(frozen=True)

    algorithm: str = Field(min_length=1)
    primitive: PrimitiveCategory = PrimitiveCategory.UNKNOWN
    safety: QuantumSafety = QuantumSafety.UNKNOWN
    file_path: str
    line: int | None = None
    key_size: int | None = None
    library: str | None = None
    nist_standard: str | None = None
    recommendation: str | None = None
    source: Literal["finding", "pattern"] = "finding"

    @property
    def quantum_safe(self) -> bool | None:
        """True, False, or None when quantum safety is unknown."""
        if self.safety == QuantumSafety.UNKNOWN:
            return None
        return self.safety == QuantumSafety.SAFE

    @property
    def location(self) -> str:
        if self.line is None:
            return self.file_path
        return f"{self.file_path}:{self.line}"

    @property
    def key(self) -> tuple[str, str, int]:
        """Deduplication key."""
        return (self.algorithm, self.file_path, self.line or 0)
