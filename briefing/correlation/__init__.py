"""
Cross-domain correlation: deterministic rules plus the deep/fast engine.
"""

from .detector import CorrelationDetector, reference_tokens, semantic_confidence
from .engine import CorrelationEngine

__all__ = [
    "CorrelationDetector",
    "CorrelationEngine",
    "reference_tokens",
    "semantic_confidence",
]
