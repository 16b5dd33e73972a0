"""PQC Scanner - post-quantum cryptography scan orchestration engine."""

from pqcscan.version import __version__

__all__ = ["__version__"]
