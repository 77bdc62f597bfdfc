"""Classifier facade: lazy model load, neural/rule-based dispatch, stats and metrics."""

from backend_argus.classifier.engine import EngineState, TokenRiskClassifier

__all__ = ["EngineState", "TokenRiskClassifier"]
