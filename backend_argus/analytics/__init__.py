"""
Argus analytics: rule-based scoring, risk flags and model health checks.

Modules: flags (registry), rule_classifier, flag_generator, collapse_detector.
"""

from backend_argus.analytics.collapse_detector import QuantizationCollapseWarning, detect_quantization_collapse
from backend_argus.analytics.flag_generator import FlagGenerator
from backend_argus.analytics.rule_classifier import RuleBasedClassifier, score_vector

__all__ = [
    "FlagGenerator",
    "QuantizationCollapseWarning",
    "RuleBasedClassifier",
    "detect_quantization_collapse",
    "score_vector",
]
