"""Base models and enums."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )


class ScanStatus(str, Enum):
    """Scan job execution status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.FAILED)


class Severity(str, Enum):
    """Canonical finding severity levels."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class PqcCategory(str, Enum):
    """Post-quantum classification of a finding."""

    QUANTUM_VULNERABLE = "quantum_vulnerable"
    MIGRATION_REQUIRED = "migration_required"
    CRYPTO_WEAKNESS = "crypto_weakness"
    PQC_COMPLIANT = "pqc_compliant"


class QuantumSafety(str, Enum):
    """Quantum-safety tri-state. UNKNOWN is a real verdict, not a default."""

    SAFE = "safe"
    VULNERABLE = "vulnerable"
    UNKNOWN = "unknown"


class PrimitiveCategory(str, Enum):
    """Cryptographic primitive category."""

    DIGITAL_SIGNATURE = "digital-signature"
    KEY_AGREEMENT = "key-agreement"
    KEY_ENCAPSULATION = "key-encapsulation"
    PUBLIC_KEY_ENCRYPTION = "public-key-encryption"
    HASH = "hash"
    XOF = "xof"
    SYMMETRIC = "symmetric"
    STREAM_CIPHER = "stream-cipher"
    UNKNOWN = "unknown"


class ComplianceVerdict(str, Enum):
    """Aggregate compliance verdict."""

    COMPLIANT = "compliant"
    PARTIAL = "partial"
    NOT_COMPLIANT = "not_compliant"


class StandardStatus(str, Enum):
    """Per-standard (FIPS 203/204/205) adoption status."""

    COMPLIANT = "compliant"
    PARTIAL = "partial"
    MISSING = "missing"
