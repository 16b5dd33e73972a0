"""Finding normalization and crypto asset classification."""

from pqcscan.analysis.algorithms import ALGORITHMS, AlgorithmSpec, find_algorithms, safety_of
from pqcscan.analysis.classifier import CryptoClassifier
from pqcscan.analysis.normalizer import FindingNormalizer, map_severity

__all__ = [
    "ALGORITHMS",
    "AlgorithmSpec",
    "CryptoClassifier",
    "FindingNormalizer",
    "find_algorithms",
    "map_severity",
    "safety_of",
]
