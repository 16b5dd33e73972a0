"""CycloneDX 1.6 cryptography bill of materials (CBOM)."""

from collections.abc import Sequence
from typing import Any
from uuid import uuid4

from pqcscan.models import CryptoAsset, PrimitiveCategory, QuantumSafety, RepositoryInfo, utcnow
from pqcscan.version import __version__

BOM_FORMAT = "CycloneDX"
SPEC_VERSION = "1.6"
PQC_STANDARDS = {"FIPS 203", "FIPS 204", "FIPS 205"}
KDF_NAMES = ("PBKDF2", "scrypt", "Argon2", "HKDF")

_ASYMMETRIC = {
    PrimitiveCategory.DIGITAL_SIGNATURE,
    PrimitiveCategory.PUBLIC_KEY_ENCRYPTION,
    PrimitiveCategory.KEY_ENCAPSULATION,
}
_SYMMETRIC = {PrimitiveCategory.SYMMETRIC, PrimitiveCategory.STREAM_CIPHER}
_HASH = {PrimitiveCategory.HASH, PrimitiveCategory.XOF}
_KEY_AGREEMENT = {PrimitiveCategory.KEY_AGREEMENT, PrimitiveCategory.KEY_ENCAPSULATION}

_HASH_OUTPUT_BITS = {
    "MD5": 128,
    "SHA-1": 160,
    "SHA-256": 256,
    "SHA-512": 512,
    "SHA-3": 256,
    "BLAKE2": 512,
}


def _clean(entry: dict[str, Any]) -> dict[str, Any]:
    """Drop unset values, as CycloneDX omits absent properties."""
    return {k: v for k, v in entry.items() if v is not None}


def _ref(index: int) -> str:
    return f"crypto-component-{index}"


def unique_assets(assets: Sequence[CryptoAsset]) -> list[CryptoAsset]:
    """Deduplicate by algorithm and location, keeping first-seen order."""
    seen: set[tuple[str, str]] = set()
    unique: list[CryptoAsset] = []
    for asset in assets:
        key = (asset.algorithm, asset.location)
        if key in seen:
            continue
        seen.add(key)
        unique.append(asset)
    return unique


def build_cbom(repository: RepositoryInfo, assets: Sequence[CryptoAsset]) -> dict[str, Any]:
    """Build a CycloneDX 1.6 CBOM document for a repository's crypto assets."""
    assets = unique_assets(assets)
    name = repository.display_name
    return {
        "bomFormat": BOM_FORMAT,
        "specVersion": SPEC_VERSION,
        "serialNumber": f"urn:uuid:{uuid4()}",
        "version": 1,
        "metadata": {
            "timestamp": utcnow().isoformat(),
            "tools": [
                {
                    "vendor": "PQC Scanner",
                    "name": "pqcscan",
                    "version": __version__,
                }
            ],
            "component": {
                "type": "application",
                "name": name,
                "description": repository.description
                or f"Cryptographic analysis of {name}",
                "scope": "required",
            },
        },
        "cryptographyProperties": _groupings(assets),
        "components": [_component(i, a) for i, a in enumerate(assets)],
        "dependencies": _dependencies(assets),
    }


def _groupings(assets: list[CryptoAsset]) -> dict[str, list[dict[str, Any]]]:
    return {
        "asymmetricCryptography": [
            _clean({
                "algorithm": a.algorithm,
                "keySize": a.key_size,
                "quantumSafe": a.quantum_safe,
            })
            for a in assets
            if a.primitive in _ASYMMETRIC
        ],
        "symmetricCryptography": [
            _clean({
                "algorithm": a.algorithm,
                "keySize": a.key_size,
                "quantumSafe": a.quantum_safe,
            })
            for a in assets
            if a.primitive in _SYMMETRIC
        ],
        "hashFunctions": [
            _clean({
                "algorithm": a.algorithm,
                "outputSize": _HASH_OUTPUT_BITS.get(a.algorithm),
                "quantumSafe": a.quantum_safe,
            })
            for a in assets
            if a.primitive in _HASH
        ],
        "keyAgreement": [
            _clean({
                "algorithm": a.algorithm,
                "keySize": a.key_size,
                "quantumSafe": a.quantum_safe,
            })
            for a in assets
            if a.primitive in _KEY_AGREEMENT
        ],
        "keyDerivation": [
            {"algorithm": a.algorithm, "quantumSafe": True}
            for a in assets
            if any(kdf.lower() in a.algorithm.lower() for kdf in KDF_NAMES)
        ],
        "postQuantumCryptography": [
            {"algorithm": a.algorithm, "nistStandard": a.nist_standard}
            for a in assets
            if a.nist_standard in PQC_STANDARDS
        ],
        "nistApproved": [
            {"algorithm": a.algorithm, "fipsApproved": True, "standard": a.nist_standard}
            for a in assets
            if a.nist_standard
        ],
    }


def _component(index: int, asset: CryptoAsset) -> dict[str, Any]:
    component: dict[str, Any] = {
        "type": "cryptographic-asset",
        "bom-ref": _ref(index),
        "name": asset.algorithm,
        "scope": "required",
        "cryptoProperties": _clean({
            "assetType": "algorithm",
            "algorithmProperties": {"primitive": asset.primitive.value},
            "algorithm": asset.algorithm,
            "keySize": asset.key_size,
            "quantumSafe": asset.quantum_safe,
            "nistApproved": asset.nist_standard is not None,
        }),
        "evidence": {"occurrences": [{"location": asset.location}]},
        "properties": [
            {"name": "quantum.safety", "value": asset.safety.value},
            {"name": "detection.source", "value": asset.source},
        ],
    }
    if asset.recommendation and asset.safety != QuantumSafety.SAFE:
        component["properties"].append(
            {"name": "quantum.safe.alternative", "value": asset.recommendation}
        )
    if asset.library:
        component["properties"].append({"name": "library", "value": asset.library})
    return component


def _dependencies(assets: list[CryptoAsset]) -> list[dict[str, Any]]:
    refs_by_library: dict[str, list[str]] = {}
    for index, asset in enumerate(assets):
        if asset.library:
            refs_by_library.setdefault(asset.library, []).append(_ref(index))
    return [{"ref": lib, "dependsOn": refs} for lib, refs in refs_by_library.items()]
