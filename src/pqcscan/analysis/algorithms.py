"""Cryptographic algorithm table shared by every classification path.

Entries are ordered: more specific names come before names they contain
(``ML-DSA`` before ``DSA``, ``3DES`` before ``DES``, ``ECDH`` before ``DH``), and
a match claimed by an earlier entry hides overlapping matches of later ones.
"""

import re
from typing import NamedTuple

from pqcscan.models.base import PrimitiveCategory, QuantumSafety


class AlgorithmSpec(NamedTuple):
    """One row of the algorithm table."""

    name: str
    pattern: str
    primitive: PrimitiveCategory
    safety: QuantumSafety
    nist_standard: str | None
    recommendation: str
    # Short names that are common identifiers in source code only match
    # in their upper-case spelling there.
    strict_case_in_source: bool = False


class AlgorithmMatch(NamedTuple):
    spec: AlgorithmSpec
    text: str
    start: int
    end: int


def _word(pattern: str) -> str:
    return rf"(?<![A-Za-z0-9])(?:{pattern})(?![A-Za-z0-9])"


_SAFE = QuantumSafety.SAFE
_VULNERABLE = QuantumSafety.VULNERABLE
_P = PrimitiveCategory

MIGRATE_KEM = (
    "Replace with ML-KEM (CRYSTALS-Kyber) for key establishment as specified in FIPS 203."
)
MIGRATE_DSA = (
    "Migrate to ML-DSA (CRYSTALS-Dilithium) for digital signatures as specified in FIPS 204."
)
NO_ACTION = "Quantum-resistant; no migration required."
GENERIC_RECOMMENDATION = (
    "Evaluate quantum-safety and migrate to NIST-approved post-quantum algorithms."
)

ALGORITHMS: tuple[AlgorithmSpec, ...] = (
    # Post-quantum standards
    AlgorithmSpec(
        "ML-KEM",
        r"ML[-_]?KEM(?:[-_]?(?:512|768|1024))?|(?:CRYSTALS[-_])?KYBER(?:[-_]?(?:512|768|1024))?",
        _P.KEY_ENCAPSULATION, _SAFE, "FIPS 203", NO_ACTION,
    ),
    AlgorithmSpec(
        "ML-DSA",
        r"ML[-_]?DSA(?:[-_]?(?:44|65|87))?|(?:CRYSTALS[-_])?DILITHIUM[235]?",
        _P.DIGITAL_SIGNATURE, _SAFE, "FIPS 204", NO_ACTION,
    ),
    AlgorithmSpec(
        "SLH-DSA",
        r"SLH[-_]?DSA|SPHINCS(?:\+|PLUS)?",
        _P.DIGITAL_SIGNATURE, _SAFE, "FIPS 205", NO_ACTION,
    ),
    # Classical elliptic curve
    AlgorithmSpec(
        "X25519", r"X25519", _P.KEY_AGREEMENT, _VULNERABLE, None, MIGRATE_KEM,
    ),
    AlgorithmSpec(
        "X448", r"X448", _P.KEY_AGREEMENT, _VULNERABLE, None, MIGRATE_KEM,
    ),
    AlgorithmSpec(
        "Ed25519", r"Ed25519", _P.DIGITAL_SIGNATURE, _VULNERABLE, None, MIGRATE_DSA,
    ),
    AlgorithmSpec(
        "Ed448", r"Ed448", _P.DIGITAL_SIGNATURE, _VULNERABLE, None, MIGRATE_DSA,
    ),
    AlgorithmSpec(
        "ECDSA", r"ECDSA", _P.DIGITAL_SIGNATURE, _VULNERABLE, None, MIGRATE_DSA,
    ),
    AlgorithmSpec(
        "ECDH", r"ECDHE?", _P.KEY_AGREEMENT, _VULNERABLE, None, MIGRATE_KEM,
    ),
    # Classical finite field / factoring
    AlgorithmSpec(
        "RSA",
        r"RSA(?:[-_]?(?:\d{3,5}|OAEP|PSS|PKCS1))?",
        _P.PUBLIC_KEY_ENCRYPTION, _VULNERABLE, None,
        "Replace RSA with ML-KEM (CRYSTALS-Kyber) for key encapsulation (FIPS 203) "
        "and ML-DSA for signatures (FIPS 204).",
    ),
    AlgorithmSpec(
        "DSA", r"DSA", _P.DIGITAL_SIGNATURE, _VULNERABLE, None, MIGRATE_DSA,
        strict_case_in_source=True,
    ),
    AlgorithmSpec(
        "DH", r"DHE?|Diffie[-_ ]?Hellman", _P.KEY_AGREEMENT, _VULNERABLE, None, MIGRATE_KEM,
        strict_case_in_source=True,
    ),
    # Symmetric
    AlgorithmSpec(
        "3DES",
        r"3DES|TripleDES|Triple[-_ ]DES|DES[-_]?EDE3?",
        _P.SYMMETRIC, _VULNERABLE, None,
        "Replace DES/3DES with AES-256 and plan migration to quantum-safe symmetric algorithms.",
    ),
    AlgorithmSpec(
        "DES", r"DES", _P.SYMMETRIC, _VULNERABLE, None,
        "Replace DES/3DES with AES-256 and plan migration to quantum-safe symmetric algorithms.",
        strict_case_in_source=True,
    ),
    AlgorithmSpec(
        "RC4", r"A?RC4|ARCFOUR", _P.STREAM_CIPHER, _VULNERABLE, None,
        "Replace RC4 with AES-256-GCM or ChaCha20-Poly1305.",
    ),
    # Key length is not inspected: AES-128 and AES-256 classify the same.
    AlgorithmSpec(
        "AES",
        r"AES(?:[-_]?(?:128|192|256))?(?:[-_]?(?:GCM|CBC|CTR|ECB|CCM|OFB|CFB|SIV))?",
        _P.SYMMETRIC, _SAFE, None,
        "Use 256-bit keys to keep a quantum security margin.",
    ),
    # Hashes
    AlgorithmSpec(
        "SHA-3", r"SHA-?3(?:[-_]?(?:224|256|384|512))?", _P.HASH, _SAFE, "FIPS 202", NO_ACTION,
    ),
    AlgorithmSpec(
        "SHAKE", r"SHAKE[-_]?(?:128|256)", _P.XOF, _SAFE, "FIPS 202", NO_ACTION,
    ),
    AlgorithmSpec(
        "BLAKE2", r"BLAKE2[bs]?(?:[-_]?\d{3})?", _P.HASH, _SAFE, None, NO_ACTION,
    ),
    AlgorithmSpec(
        "SHA-512", r"SHA[-_]?512", _P.HASH, _SAFE, "FIPS 180-4", NO_ACTION,
    ),
    AlgorithmSpec(
        "SHA-256", r"SHA[-_]?256", _P.HASH, _SAFE, "FIPS 180-4", NO_ACTION,
    ),
    AlgorithmSpec(
        "SHA-1", r"SHA[-_]?1", _P.HASH, _VULNERABLE, None,
        "Replace MD5/SHA-1 with SHA-3 or other quantum-resistant hash functions.",
    ),
    AlgorithmSpec(
        "MD5", r"MD5", _P.HASH, _VULNERABLE, None,
        "Replace MD5/SHA-1 with SHA-3 or other quantum-resistant hash functions.",
    ),
)

_TEXT_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(_word(spec.pattern), re.IGNORECASE) for spec in ALGORITHMS
)
_SOURCE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(_word(spec.pattern), 0 if spec.strict_case_in_source else re.IGNORECASE)
    for spec in ALGORITHMS
)
_NAME_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(spec.pattern, re.IGNORECASE) for spec in ALGORITHMS
)

# Calls whose first numeric argument is a key size, e.g. RSA.generate(1024)
KEY_SIZE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"RSA\.generate\(\s*(\d{3,5})"),
    re.compile(r"generate_private_key\([^)]*key_size\s*=\s*(\d{3,5})"),
    re.compile(r"\.initialize\(\s*(\d{3,5})"),
    re.compile(r"RSA_generate_key(?:_ex)?\([^,)]*,\s*(\d{3,5})"),
    re.compile(r"GenerateKey\([^,)]*,\s*(\d{3,5})"),
    re.compile(r"(?:RSA|AES|DSA|DH)[-_](\d{3,5})", re.IGNORECASE),
)


def lookup(name: str) -> AlgorithmSpec | None:
    """Find the table entry for an algorithm name (e.g. ``"ECDSA"``, ``"kyber768"``)."""
    candidate = name.strip()
    if not candidate:
        return None
    for spec, pattern in zip(ALGORITHMS, _NAME_PATTERNS):
        if pattern.fullmatch(candidate):
            return spec
    for spec, pattern in zip(ALGORITHMS, _TEXT_PATTERNS):
        if pattern.search(candidate):
            return spec
    return None


def safety_of(name: str) -> QuantumSafety:
    """Quantum-safety verdict for an algorithm name; UNKNOWN outside the table."""
    spec = lookup(name)
    return spec.safety if spec else QuantumSafety.UNKNOWN


def find_algorithms(text: str, source: bool = False) -> list[AlgorithmMatch]:
    """Find every algorithm mentioned in ``text``, at most once per entry.

    With ``source=True`` the short ambiguous names (DSA, DH, DES) must be
    upper-case to count.
    """
    patterns = _SOURCE_PATTERNS if source else _TEXT_PATTERNS
    claimed: list[tuple[int, int]] = []
    matches: list[AlgorithmMatch] = []
    for spec, pattern in zip(ALGORITHMS, patterns):
        for match in pattern.finditer(text):
            start, end = match.span()
            if any(start < c_end and c_start < end for c_start, c_end in claimed):
                continue
            claimed.append((start, end))
            matches.append(AlgorithmMatch(spec, match.group(0), start, end))
            break
    return matches


def extract_key_size(text: str) -> int | None:
    """Pull an explicit key size out of a line of code or an algorithm name."""
    for pattern in KEY_SIZE_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return None
